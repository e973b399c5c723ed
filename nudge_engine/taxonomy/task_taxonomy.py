"""
Task taxonomy for wellness nudges.

Two orthogonal dimensions describe every catalog task:
  - ``TaskCategory``: which user metric the task addresses; selects the
    urgency formula used by the scorer.
  - ``TimeGate``: optional time-of-day window in which the task is
    most appropriate.

``TIME_WINDOWS`` is the canonical gate → minute-of-day mapping. Both ends of
every window are inclusive (``05:00`` and ``11:59`` are both "morning").

Usage example::

    from nudge_engine.taxonomy.task_taxonomy import TaskCategory, TimeGate

    category = TaskCategory.HYDRATION
    gate     = TimeGate.EVENING

This module has NO imports from any other ``nudge_engine`` package.
"""

from enum import StrEnum


class TaskCategory(StrEnum):
    """Wellness area a task addresses."""

    HYDRATION = "hydration"
    """Water intake; urgency grows linearly with the deficit against 2000 ml."""

    MOVEMENT = "movement"
    """Step count; urgency grows linearly with the deficit against 8000 steps."""

    SCREEN = "screen"
    """Screen time; urgent once daily screen time exceeds 120 minutes."""

    SLEEP = "sleep"
    """Sleep hygiene; urgent after a night of less than 7 hours."""

    MOOD = "mood"
    """Mood check-ins; never fully non-urgent."""


class TimeGate(StrEnum):
    """Time-of-day window attached to a task."""

    MORNING = "morning"
    DAY = "day"
    EVENING = "evening"


def _hm(hour: int, minute: int) -> int:
    return hour * 60 + minute


# Gate → (start minute-of-day, end minute-of-day), both inclusive.
TIME_WINDOWS: dict[TimeGate, tuple[int, int]] = {
    TimeGate.MORNING: (_hm(5, 0),  _hm(11, 59)),
    TimeGate.DAY:     (_hm(12, 0), _hm(17, 59)),
    TimeGate.EVENING: (_hm(18, 0), _hm(23, 59)),
}
