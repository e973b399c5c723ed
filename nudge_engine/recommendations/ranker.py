"""
Recommendation ranker: the pure steps of the selection pipeline.

Usage flow
----------
1. apply_substitutions(candidates, catalog, threshold)
   -> SubstitutionResult  (micro alternatives swapped in for
                           repeatedly dismissed parents)

2. score_tasks(tasks, metrics, current_time, weights)
   -> list[TaskScore]

3. rank(scored)
   -> list[TaskScore]     (score desc, impact desc, effort asc, id asc)

4. relax_time_gates(pool, exclude_ids, metrics, current_time, weights, limit)
   -> list[TaskScore]     (backfill scored with time gates ignored)

Nothing here mutates its inputs or holds state; ``Recommender`` owns the
catalog and strings these steps together.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime

from nudge_engine.models.task import Task, UserMetrics
from nudge_engine.recommendations.scorer import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    TaskScore,
    calculate_score,
)


@dataclass(frozen=True)
class SubstitutionResult:
    """Output of the substitution pass.

    Attributes:
        tasks:         Post-substitution candidates, in catalog order, unique ids.
        substitutions: parent id -> micro id for every swap performed.
        broken_refs:   parent id -> micro id for references that could not be
                       honoured (missing, completed or self-referencing micro).
    """

    tasks:         list[Task]
    substitutions: dict[str, str] = field(default_factory=dict)
    broken_refs:   dict[str, str] = field(default_factory=dict)


def apply_substitutions(
    candidates: list[Task],
    catalog:    Mapping[str, Task],
    threshold:  int = 3,
) -> SubstitutionResult:
    """Replace each candidate dismissed ``threshold``+ times by its micro alternative.

    A parent is swapped out only when its ``micro_alt`` exists in ``catalog``,
    is not completed today and is not the parent itself; otherwise it passes
    through unchanged. Each candidate fills one slot with either itself or
    its micro. A micro swapped in is not itself re-substituted, so with
    a -> b -> c the result is ``[b, c]`` and with a <-> b it is ``[b, a]``.
    Ids appear at most once; later slots repeating an id are dropped.

    Args:
        candidates: Not-completed catalog tasks, in catalog order.
        catalog:    Full catalog (id -> task), used to resolve ``micro_alt``.
        threshold:  Minimum ``ignores`` that triggers substitution.

    Returns:
        SubstitutionResult.
    """
    substitutions: dict[str, str] = {}
    broken_refs:   dict[str, str] = {}
    replacement:   dict[str, Task] = {}

    for task in candidates:
        if not task.micro_alt or task.ignores < threshold:
            continue
        micro = catalog.get(task.micro_alt)
        if micro is None or micro.completedToday or micro.id == task.id:
            broken_refs[task.id] = task.micro_alt
            continue
        substitutions[task.id] = micro.id
        replacement[task.id] = micro

    # One slot per candidate; swapped-in micros are never substituted again.
    tasks: list[Task] = []
    seen:  set[str] = set()
    for task in candidates:
        chosen = replacement.get(task.id, task)
        if chosen.id in seen:
            continue
        seen.add(chosen.id)
        tasks.append(chosen)

    return SubstitutionResult(
        tasks=tasks, substitutions=substitutions, broken_refs=broken_refs
    )


def score_tasks(
    tasks:        Iterable[Task],
    metrics:      UserMetrics,
    current_time: str | datetime,
    weights:      ScoringWeights = DEFAULT_WEIGHTS,
) -> list[TaskScore]:
    """Score every task in ``tasks`` (order preserved)."""
    return [calculate_score(t, metrics, current_time, weights) for t in tasks]


def sort_key(scored: TaskScore) -> tuple[float, float, float, str]:
    """Ascending key for: score desc, impact_weight desc, effort_min asc, id asc."""
    return (
        -scored.score,
        -scored.task.impact_weight,
        scored.task.effort_min,
        scored.task.id,
    )


def rank(scored: Iterable[TaskScore]) -> list[TaskScore]:
    """Return ``scored`` ordered by ``sort_key`` (total, stable order)."""
    return sorted(scored, key=sort_key)


def relax_time_gates(
    pool:         Iterable[Task],
    exclude_ids:  set[str],
    metrics:      UserMetrics,
    current_time: str | datetime,
    weights:      ScoringWeights = DEFAULT_WEIGHTS,
    limit:        int | None = None,
) -> list[TaskScore]:
    """Rescore ``pool`` as if no task had a time gate, for backfilling.

    Tasks whose id is in ``exclude_ids`` (already selected, or dismissed in
    this cycle) are skipped. Each result keeps the task's original
    ``time_gate`` for display and reports ``timeOfDayContribution == 1``.

    Args:
        pool:         Post-substitution candidates.
        exclude_ids:  Ids that must not be returned.
        metrics:      Validated user metrics.
        current_time: ISO-8601 datetime string or ``datetime``.
        weights:      Component weights.
        limit:        Max results; ``None`` = all.

    Returns:
        Ranked list of relaxed TaskScore objects.
    """
    relaxed: list[TaskScore] = []
    for task in pool:
        if task.id in exclude_ids:
            continue
        ungated = task.model_copy(update={"time_gate": None})
        scored = calculate_score(ungated, metrics, current_time, weights)
        rationale = scored.rationale
        if task.time_gate is not None:
            rationale += f" [relaxed: {task.time_gate.value} gate ignored]"
        relaxed.append(
            replace(
                scored,
                task=task.model_copy(deep=True),
                rationale=rationale,
                timeOfDayContribution=1.0,
            )
        )

    ranked = rank(relaxed)
    return ranked if limit is None else ranked[:limit]
