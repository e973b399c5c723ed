"""Tests for Task and UserMetrics models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from nudge_engine.models.task import Task, UserMetrics
from nudge_engine.taxonomy.task_taxonomy import TaskCategory, TimeGate


class TestTask:
    def test_valid_construction(self, sample_task):
        assert sample_task.category == TaskCategory.HYDRATION
        assert sample_task.ignores == 0
        assert sample_task.completedToday is False
        assert sample_task.time_gate is None

    def test_string_enums_coerced(self):
        t = Task(
            id="x", title="x", category="sleep", impact_weight=1, effort_min=1,
            time_gate="evening",
        )
        assert t.category is TaskCategory.SLEEP
        assert t.time_gate is TimeGate.EVENING

    def test_unknown_category_raises(self):
        with pytest.raises(ValidationError, match="category"):
            Task(id="x", title="x", category="nutrition", impact_weight=1, effort_min=1)

    def test_non_positive_impact_raises(self):
        with pytest.raises(ValidationError, match="impact_weight"):
            Task(id="x", title="x", category="mood", impact_weight=0, effort_min=1)

    def test_non_positive_effort_raises(self):
        with pytest.raises(ValidationError, match="effort_min"):
            Task(id="x", title="x", category="mood", impact_weight=1, effort_min=0)

    def test_empty_id_raises(self):
        with pytest.raises(ValidationError):
            Task(id="", title="x", category="mood", impact_weight=1, effort_min=1)

    def test_negative_ignores_rejected_on_assignment(self, sample_task):
        with pytest.raises(ValidationError, match="ignores"):
            sample_task.ignores = -1

    def test_bad_date_format_raises(self, sample_task):
        with pytest.raises(ValidationError, match="YYYY-MM-DD"):
            sample_task.lastIgnoreDate = "20/12/2023"

    def test_empty_micro_alt_normalised(self):
        t = Task(id="x", title="x", category="mood", impact_weight=1, effort_min=1, micro_alt="")
        assert t.micro_alt is None

    def test_json_dump_uses_wire_names(self, evening_task):
        d = evening_task.model_dump(mode="json")
        assert d["time_gate"] == "evening"
        assert d["category"] == "sleep"
        assert "completedToday" in d
        assert "lastCompleteDate" in d

    def test_json_dump_whole_numbers_as_ints(self, sample_task):
        d = sample_task.model_dump(mode="json")
        assert d["impact_weight"] == 4 and isinstance(d["impact_weight"], int)
        assert isinstance(d["effort_min"], int)

    def test_json_dump_keeps_fractions(self):
        t = Task(id="x", title="x", category="mood", impact_weight=1.5, effort_min=2)
        assert t.model_dump(mode="json")["impact_weight"] == 1.5


class TestUserMetrics:
    def test_valid_construction(self, reference_metrics):
        assert reference_metrics.water_ml == 900
        assert reference_metrics.mood_1to5 == 2

    def test_frozen(self, reference_metrics):
        with pytest.raises(ValidationError):
            reference_metrics.water_ml = 100

    @pytest.mark.parametrize("mood", [0, 6, -1])
    def test_mood_out_of_range_raises(self, mood):
        with pytest.raises(ValidationError, match="mood_1to5"):
            UserMetrics(water_ml=0, steps=0, sleep_hours=0, screen_time_min=0, mood_1to5=mood)

    @pytest.mark.parametrize("field", ["water_ml", "steps", "sleep_hours", "screen_time_min"])
    def test_negative_metric_raises(self, field):
        values = dict(water_ml=0, steps=0, sleep_hours=0, screen_time_min=0, mood_1to5=3)
        values[field] = -1
        with pytest.raises(ValidationError, match=field):
            UserMetrics(**values)

    def test_missing_field_raises(self):
        with pytest.raises(ValidationError):
            UserMetrics(water_ml=0, steps=0, sleep_hours=0, mood_1to5=3)

    def test_fractional_mood_raises(self):
        with pytest.raises(ValidationError):
            UserMetrics(water_ml=0, steps=0, sleep_hours=0, screen_time_min=0, mood_1to5=2.5)
