"""
Task scoring: converts a (Task, UserMetrics, current time) triple into a
scored recommendation with a component breakdown and rationale.

Score formula (weighted sum)
----------------------------
    score = (
        urgency          * 0.50   # distance of the metric from its goal
        + impact_weight  * 0.30   # static task importance
        + inverse_effort * 0.15   # small tasks get a slight boost
        + time_of_day    * 0.15   # 1 inside the task's window, 0.2 outside
        - ignores        * 0.20   # same-day dismissals
    )

Component explanations
----------------------
urgency (0–1), by category:
    hydration: (2000 − water_ml) / 2000, clamped at 0.
    movement:  (8000 − steps) / 8000, clamped at 0.
    sleep:     1 if sleep_hours < 7 else 0.
    screen:    1 if screen_time_min > 120 else 0.
    mood:      1 if mood_1to5 <= 2 else 0.3 (never zero).

inverse_effort:
    1 / log2(max(effort_min, 1) + 2). Monotonically decreasing, convex.
    effort 3 → 0.4307, effort 15 → 0.2447.

time_of_day:
    1 when the task has no gate (or an unknown one) or the wall-clock time
    falls within its window; 0.2 otherwise. A soft penalty, not an exclusion.

Every reported number is rounded to 4 decimals, half away from zero, so
output is reproducible across platforms.

All functions here are pure: no state, no I/O.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from nudge_engine.models.task import Task, UserMetrics, whole_number
from nudge_engine.taxonomy.task_taxonomy import TIME_WINDOWS, TaskCategory, TimeGate
from nudge_engine.utils.time_utils import minute_of_day

HYDRATION_GOAL_ML = 2000.0
STEPS_GOAL = 8000.0
SLEEP_MIN_HOURS = 7.0
SCREEN_MAX_MIN = 120.0
LOW_MOOD_MAX = 2
MOOD_FLOOR_URGENCY = 0.3

OUT_OF_WINDOW_FACTOR = 0.2


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the five score components."""

    w_urgency: float = 0.5
    w_impact:  float = 0.3
    w_effort:  float = 0.15
    w_tod:     float = 0.15
    w_penalty: float = 0.2


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class TaskScore:
    """A task snapshot coupled with its score and component breakdown.

    Contribution fields carry the *unweighted* component values; ``score``
    is their weighted combination.

    Attributes:
        task:                  Copy of the scored task (never the catalog entry).
        score:                 Weighted total.
        rationale:             Human-readable breakdown of the components.
        urgencyContribution:   0–1 urgency for the task's category.
        impactContribution:    The task's impact_weight.
        effortContribution:    inverse_effort(effort_min).
        timeOfDayContribution: 1 or 0.2 (always 1 for relaxed entries).
        ignoresPenalty:        The task's ignores count.
    """

    task:                  Task
    score:                 float
    rationale:             str
    urgencyContribution:   float
    impactContribution:    float
    effortContribution:    float
    timeOfDayContribution: float
    ignoresPenalty:        float

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the wire shape used by the HTTP API and CLI ``--json``.

        ``time_gate`` is present only for gated tasks.
        """
        out: dict[str, Any] = {
            "id":                    self.task.id,
            "title":                 self.task.title,
            "category":              self.task.category.value,
            "impact_weight":         whole_number(self.task.impact_weight),
            "effort_min":            whole_number(self.task.effort_min),
        }
        if self.task.time_gate is not None:
            out["time_gate"] = self.task.time_gate.value
        out.update({
            "score":                 self.score,
            "rationale":             self.rationale,
            "urgencyContribution":   self.urgencyContribution,
            "impactContribution":    self.impactContribution,
            "effortContribution":    self.effortContribution,
            "timeOfDayContribution": self.timeOfDayContribution,
            "ignoresPenalty":        self.ignoresPenalty,
        })
        return out


def urgency_contribution(task: Task, metrics: UserMetrics) -> float:
    """Return the 0–1 urgency of ``task`` given the user's current metrics."""
    category = task.category
    if category == TaskCategory.HYDRATION:
        return max(0.0, (HYDRATION_GOAL_ML - metrics.water_ml) / HYDRATION_GOAL_ML)
    if category == TaskCategory.MOVEMENT:
        return max(0.0, (STEPS_GOAL - metrics.steps) / STEPS_GOAL)
    if category == TaskCategory.SLEEP:
        return 1.0 if metrics.sleep_hours < SLEEP_MIN_HOURS else 0.0
    if category == TaskCategory.SCREEN:
        return 1.0 if metrics.screen_time_min > SCREEN_MAX_MIN else 0.0
    if category == TaskCategory.MOOD:
        return 1.0 if metrics.mood_1to5 <= LOW_MOOD_MAX else MOOD_FLOOR_URGENCY
    return 0.0


def inverse_effort(effort_min: float) -> float:
    """``1 / log2(max(effort_min, 1) + 2)``; the floor keeps the log argument >= 3."""
    return 1.0 / math.log2(max(effort_min, 1.0) + 2.0)


def time_of_day_factor(
    time_gate:    TimeGate | str | None,
    current_time: str | datetime,
) -> float:
    """Return 1.0 when ``current_time`` is inside the gate's window, else 0.2.

    Absent or unrecognised gates always return 1.0. The window check uses the
    wall-clock hour:minute of ``current_time`` with no timezone conversion.
    """
    if not time_gate:
        return 1.0
    try:
        window = TIME_WINDOWS[TimeGate(time_gate)]
    except ValueError:
        return 1.0

    start, end = window
    if start <= minute_of_day(current_time) <= end:
        return 1.0
    return OUT_OF_WINDOW_FACTOR


def calculate_score(
    task:         Task,
    metrics:      UserMetrics,
    current_time: str | datetime,
    weights:      ScoringWeights = DEFAULT_WEIGHTS,
) -> TaskScore:
    """Score one task.

    Args:
        task:         Catalog task (not mutated; the result holds a copy).
        metrics:      Validated user metrics.
        current_time: ISO-8601 datetime string or ``datetime``.
        weights:      Component weights (defaults to the fixed engine weights).

    Returns:
        TaskScore with all numeric fields rounded to 4 decimals.
    """
    urgency   = urgency_contribution(task, metrics)
    impact    = task.impact_weight
    effort    = inverse_effort(task.effort_min)
    tod       = time_of_day_factor(task.time_gate, current_time)
    penalty   = float(task.ignores)

    score = (
        weights.w_urgency * urgency
        + weights.w_impact  * impact
        + weights.w_effort  * effort
        + weights.w_tod     * tod
        - weights.w_penalty * penalty
    )

    return TaskScore(
        task=task.model_copy(deep=True),
        score=round_half_away(score),
        rationale=build_rationale(task, metrics, urgency, impact, effort, tod, penalty),
        urgencyContribution=round_half_away(urgency),
        impactContribution=round_half_away(impact),
        effortContribution=round_half_away(effort),
        timeOfDayContribution=round_half_away(tod),
        ignoresPenalty=round_half_away(penalty),
    )


def build_rationale(
    task:    Task,
    metrics: UserMetrics,
    urgency: float,
    impact:  float,
    effort:  float,
    tod:     float,
    penalty: float,
) -> str:
    """Assemble a comma-separated explanation of each score component, e.g.::

        urgency: 0.5500 (900ml/2000ml water), impact: 4.0000,
        effort: 0.3562 (5 mins), time: 1.0000 (no gate),
        penalty: -0.0000 (0 ignores)
    """
    gate = f"({task.time_gate.value} window)" if task.time_gate else "(no gate)"
    parts = [
        f"urgency: {urgency:.4f} ({urgency_reason(task, metrics)})",
        f"impact: {impact:.4f}",
        f"effort: {effort:.4f} ({_num(task.effort_min)} mins)",
        f"time: {tod:.4f} {gate}",
        f"penalty: -{penalty:.4f} ({task.ignores} ignores)",
    ]
    return ", ".join(parts)


def urgency_reason(task: Task, metrics: UserMetrics) -> str:
    """Short category-specific clause describing the metric behind the urgency."""
    category = task.category
    if category == TaskCategory.HYDRATION:
        return f"{_num(metrics.water_ml)}ml/{_num(HYDRATION_GOAL_ML)}ml water"
    if category == TaskCategory.MOVEMENT:
        return f"{_num(metrics.steps)}/{_num(STEPS_GOAL)} steps"
    if category == TaskCategory.SLEEP:
        return f"{_num(metrics.sleep_hours)}h sleep"
    if category == TaskCategory.SCREEN:
        return f"{_num(metrics.screen_time_min)} mins screen time"
    if category == TaskCategory.MOOD:
        return f"mood: {metrics.mood_1to5}/5"
    return "unknown"


# ── Helpers ───────────────────────────────────────────────────────────────────

def round_half_away(value: float, places: int = 4) -> float:
    """Round to ``places`` decimals with halves rounded away from zero.

    Python's ``round()`` uses banker's rounding; scores must not.
    """
    scale = 10 ** places
    rounded = math.floor(abs(value) * scale + 0.5) / scale
    return math.copysign(rounded, value) if rounded else 0.0


def _num(value: float) -> str:
    """Render whole numbers without a trailing ``.0``."""
    return str(int(value)) if float(value).is_integer() else str(value)
