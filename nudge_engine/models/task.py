"""
Catalog task and user metric models.

``Task`` is a mutable catalog entry: the recommender updates its
``ignores`` / ``completedToday`` bookkeeping in place as the user completes or
dismisses nudges. It is the only model in the system that is NOT frozen, and
it validates on assignment so in-place updates cannot break its invariants.

``UserMetrics`` is a request-scoped, immutable snapshot of the user's day so
far. Range checks live here so the scorer can assume well-formed input.

Field names mirror the JSON wire format (``impact_weight``, ``completedToday``,
``lastIgnoreDate`` …) so models round-trip through the HTTP API unchanged.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from nudge_engine.taxonomy.task_taxonomy import TaskCategory, TimeGate
from nudge_engine.utils.time_utils import is_iso_date


def whole_number(value: float) -> Union[int, float]:
    """Return ``value`` as an ``int`` when it has no fractional part (4.0 -> 4)."""
    return int(value) if float(value).is_integer() else value


class Task(BaseModel):
    """A wellness nudge in the catalog, with its per-day bookkeeping.

    Attributes:
        id: Unique, stable key. Also the final sort tie-break.
        title: Display label; opaque to the scoring logic.
        category: Selects the urgency formula.
        impact_weight: Static importance (> 0).
        effort_min: Minutes required (> 0); drives the inverse-effort bonus.
        time_gate: Optional time-of-day window; ``None`` = always eligible.
        micro_alt: Optional id of a lower-effort substitute in the same catalog.
        ignores: Same-day dismissal count.
        completedToday: Hidden from recommendations until the next reset.
        lastIgnoreDate: ``YYYY-MM-DD`` of the last dismissal.
        lastCompleteDate: ``YYYY-MM-DD`` of the last completion.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(min_length=1)
    title: str
    category: TaskCategory
    impact_weight: float = Field(gt=0)
    effort_min: float = Field(gt=0)
    time_gate: Optional[TimeGate] = None
    micro_alt: Optional[str] = None
    ignores: int = Field(default=0, ge=0)
    completedToday: bool = False
    lastIgnoreDate: Optional[str] = None
    lastCompleteDate: Optional[str] = None

    @field_validator("lastIgnoreDate", "lastCompleteDate")
    @classmethod
    def validate_date_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_iso_date(v):
            raise ValueError(f"Dates must be YYYY-MM-DD, got '{v}'.")
        return v

    @field_validator("micro_alt")
    @classmethod
    def validate_micro_alt(cls, v: Optional[str]) -> Optional[str]:
        # Empty string on the wire means "no substitute".
        return v or None

    @field_serializer("impact_weight", "effort_min")
    def serialize_whole_numbers(self, v: float) -> Union[int, float]:
        return whole_number(v)


class UserMetrics(BaseModel):
    """Snapshot of the user's wellness metrics for one recommendation request.

    Attributes:
        water_ml: Water consumed today, in millilitres.
        steps: Steps walked today.
        sleep_hours: Hours slept last night.
        screen_time_min: Screen time today, in minutes.
        mood_1to5: Self-reported mood, integer 1 (low) to 5 (high).
    """

    model_config = ConfigDict(frozen=True)

    water_ml: float = Field(ge=0)
    steps: float = Field(ge=0)
    sleep_hours: float = Field(ge=0)
    screen_time_min: float = Field(ge=0)
    mood_1to5: int

    @field_validator("mood_1to5")
    @classmethod
    def validate_mood_range(cls, v: int) -> int:
        if not 1 <= v <= 5:
            raise ValueError(f"mood_1to5 must be in [1, 5], got {v}.")
        return v
