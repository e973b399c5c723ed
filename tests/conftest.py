"""
Shared pytest fixtures for the Nudge Engine test suite.

Provides:
  - ``recommender``: a fresh ``Recommender`` loaded with the starter catalog.
    Created anew for each test that requests it.
  - Reference metrics / time / date used by the ranking scenarios.
  - Sample domain object factories for use in multiple test modules.
"""

from __future__ import annotations

import pytest

from nudge_engine.models.task import Task, UserMetrics
from nudge_engine.recommendations.recommender import Recommender
from nudge_engine.taxonomy.task_taxonomy import TaskCategory, TimeGate

REFERENCE_TIME = "2023-12-20T15:00:00Z"   # inside the "day" window
EVENING_TIME = "2023-12-20T20:00:00Z"
REFERENCE_DATE = "2023-12-20"
NEXT_DATE = "2023-12-21"


# ── Engine fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def recommender() -> Recommender:
    """A ``Recommender`` with the seven-task starter catalog loaded."""
    r = Recommender()
    r.load_seed_data()
    return r


@pytest.fixture
def empty_recommender() -> Recommender:
    return Recommender()


# ── Sample domain objects ─────────────────────────────────────────────────────

@pytest.fixture
def reference_metrics() -> UserMetrics:
    """Metrics of the reference ranking scenario."""
    return UserMetrics(
        water_ml=900,
        steps=4000,
        sleep_hours=6,
        screen_time_min=150,
        mood_1to5=2,
    )


@pytest.fixture
def goals_met_metrics() -> UserMetrics:
    """Every metric at or past its goal (mood neutral)."""
    return UserMetrics(
        water_ml=2000,
        steps=8000,
        sleep_hours=8,
        screen_time_min=60,
        mood_1to5=4,
    )


@pytest.fixture
def sample_task() -> Task:
    """A valid ungated hydration ``Task``."""
    return Task(
        id="water-500",
        title="Drink 500 ml water",
        category=TaskCategory.HYDRATION,
        impact_weight=4,
        effort_min=5,
        micro_alt="water-250",
    )


@pytest.fixture
def evening_task() -> Task:
    """A valid evening-gated sleep ``Task``."""
    return Task(
        id="sleep-winddown-15",
        title="15-min wind-down routine",
        category=TaskCategory.SLEEP,
        impact_weight=5,
        effort_min=15,
        time_gate=TimeGate.EVENING,
    )
