"""
Built-in starter catalog.

The seven tasks below are fixture data: ids, weights and efforts are relied
upon by the reference ranking tests and by API clients, so change them only
together with those tests.
"""

from __future__ import annotations

from typing import Any

from nudge_engine.models.task import Task

SEED_TASKS: tuple[dict[str, Any], ...] = (
    {
        "id": "water-500",
        "title": "Drink 500 ml water",
        "category": "hydration",
        "impact_weight": 4,
        "effort_min": 5,
        "micro_alt": "water-250",
    },
    {
        "id": "water-250",
        "title": "Drink 250 ml water",
        "category": "hydration",
        "impact_weight": 3,
        "effort_min": 3,
    },
    {
        "id": "steps-1k",
        "title": "Walk 1,000 steps",
        "category": "movement",
        "impact_weight": 4,
        "effort_min": 10,
        "micro_alt": "steps-300",
    },
    {
        "id": "steps-300",
        "title": "Walk 300 steps (indoors ok)",
        "category": "movement",
        "impact_weight": 3,
        "effort_min": 5,
    },
    {
        "id": "screen-break-10",
        "title": "Take a 10-min screen break",
        "category": "screen",
        "impact_weight": 5,
        "effort_min": 10,
    },
    {
        "id": "sleep-winddown-15",
        "title": "15-min wind-down routine",
        "category": "sleep",
        "impact_weight": 5,
        "effort_min": 15,
        "time_gate": "evening",
    },
    {
        "id": "mood-check-quick",
        "title": "Quick mood check-in",
        "category": "mood",
        "impact_weight": 2,
        "effort_min": 3,
    },
)


def seed_tasks() -> list[Task]:
    """Return fresh ``Task`` objects for the starter catalog (zeroed counters)."""
    return [Task(**row) for row in SEED_TASKS]
