"""
Recommender: owns the task catalog and produces ranked recommendations.

Recommendation flow (``get_recommendations``)
---------------------------------------------
  1. Clear the transient dismissed-this-cycle set.
  2. Run the daily-reset check against ``local_date``.
  3. Candidates = catalog tasks with ``completedToday == False``.
  4. Substitution: parents dismissed ``substitution_threshold``+ times are
     replaced by their micro alternative (see ``ranker.apply_substitutions``).
  5. Score every candidate; drop ids dismissed in this cycle.
  6. Sort by score desc, impact desc, effort asc, id asc.
  7. Keep the top ``max_results``. If that is fewer than ``max_results``,
     backfill from the remaining candidates rescored with time gates relaxed.

Catalog state
-------------
Tasks are copied on the way in (``add_task``) and on the way out
(``get_task``, ``get_all_tasks``, every ``TaskScore.task``), so no caller
ever holds a reference into the catalog.

The day-rollover check is deliberately coarse: a reset only fires when some
task is still ``completedToday`` with a ``lastCompleteDate`` different from
the request date. Dismissal activity alone never triggers a catalog-wide
reset; per-task ``ignores`` roll over lazily inside ``dismiss_task``.

Not thread-safe: callers must serialise access to one instance.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from nudge_engine.catalog.seed import seed_tasks
from nudge_engine.models.task import Task, UserMetrics
from nudge_engine.recommendations.ranker import (
    apply_substitutions,
    rank,
    relax_time_gates,
    score_tasks,
)
from nudge_engine.recommendations.scorer import DEFAULT_WEIGHTS, ScoringWeights, TaskScore

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 4
DEFAULT_SUBSTITUTION_THRESHOLD = 3


class Recommender:
    """Task catalog plus the deterministic selection algorithm.

    Attributes:
        max_results:            Upper bound on recommendations per call.
        substitution_threshold: Same-day dismissals that trigger a micro swap.
        weights:                Scoring weights passed to the scorer.
    """

    def __init__(
        self,
        max_results:            int = DEFAULT_MAX_RESULTS,
        substitution_threshold: int = DEFAULT_SUBSTITUTION_THRESHOLD,
        weights:                ScoringWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self.max_results = max_results
        self.substitution_threshold = substitution_threshold
        self.weights = weights
        self._tasks: dict[str, Task] = {}
        self._dismissed_in_cycle: set[str] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    # ── Catalog ───────────────────────────────────────────────────────────────

    def add_task(self, task: Task) -> None:
        """Insert or fully replace the entry for ``task.id`` (stores a copy)."""
        self._tasks[task.id] = task.model_copy(deep=True)

    def load_tasks(self, tasks: Iterable[Task]) -> None:
        for task in tasks:
            self.add_task(task)

    def get_task(self, task_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        return task.model_copy(deep=True) if task is not None else None

    def get_all_tasks(self) -> list[Task]:
        """Snapshot copies of every catalog entry, in insertion order."""
        return [t.model_copy(deep=True) for t in self._tasks.values()]

    def load_seed_data(self) -> None:
        """Add the built-in starter catalog (replacing same-id entries)."""
        self.load_tasks(seed_tasks())

    def clear_all_tasks(self) -> None:
        self._tasks.clear()
        self._dismissed_in_cycle.clear()

    # ── Actions ───────────────────────────────────────────────────────────────

    def complete_task(self, task_id: str, date: str) -> bool:
        """Mark ``task_id`` completed on ``date``. Returns False if unknown."""
        task = self._tasks.get(task_id)
        if task is None:
            logger.warning("complete_task: unknown task id '%s'", task_id)
            return False

        task.completedToday = True
        task.lastCompleteDate = date
        logger.debug("Completed %s on %s", task_id, date)
        return True

    def dismiss_task(self, task_id: str, date: str) -> bool:
        """Record one dismissal of ``task_id`` on ``date``. Returns False if unknown.

        The ``ignores`` counter restarts from zero when the previous dismissal
        happened on a different date.
        """
        task = self._tasks.get(task_id)
        if task is None:
            logger.warning("dismiss_task: unknown task id '%s'", task_id)
            return False

        if task.lastIgnoreDate != date:
            task.ignores = 0
        task.ignores += 1
        task.lastIgnoreDate = date
        self._dismissed_in_cycle.add(task_id)

        logger.debug("Dismissed %s on %s (ignores=%d)", task_id, date, task.ignores)
        return True

    # ── Daily bookkeeping ─────────────────────────────────────────────────────

    def reset_daily_state(self) -> None:
        """Clear ``completedToday`` and ``ignores`` on every task.

        ``lastIgnoreDate`` / ``lastCompleteDate`` are left untouched.
        """
        for task in self._tasks.values():
            task.completedToday = False
            task.ignores = 0
        self._dismissed_in_cycle.clear()

    def check_and_perform_daily_reset(self, current_date: str) -> bool:
        """Reset daily state if a task completed on an earlier date is still hidden.

        Returns:
            True if a reset was performed.
        """
        for task in self._tasks.values():
            if (
                task.completedToday
                and task.lastCompleteDate
                and task.lastCompleteDate != current_date
            ):
                logger.info(
                    "Day rollover detected (%s completed on %s, now %s); resetting daily state.",
                    task.id, task.lastCompleteDate, current_date,
                )
                self.reset_daily_state()
                return True
        return False

    # ── Selection ─────────────────────────────────────────────────────────────

    def get_recommendations(
        self,
        metrics:      UserMetrics,
        current_time: str | datetime,
        local_date:   str,
    ) -> list[TaskScore]:
        """Return at most ``max_results`` ranked recommendations, unique by id.

        Args:
            metrics:      Validated user metrics.
            current_time: ISO-8601 datetime; its wall-clock time drives gates.
            local_date:   ``YYYY-MM-DD`` used for the daily-reset check.

        Returns:
            Ranked TaskScore list (empty for an empty catalog).
        """
        self._dismissed_in_cycle.clear()
        self.check_and_perform_daily_reset(local_date)

        candidates = [t for t in self._tasks.values() if not t.completedToday]

        subs = apply_substitutions(candidates, self._tasks, self.substitution_threshold)
        for parent_id, micro_id in subs.substitutions.items():
            logger.debug(
                "Substituting %s -> %s", parent_id, micro_id,
                extra={"parent_id": parent_id, "micro_id": micro_id},
            )
        for parent_id, micro_id in subs.broken_refs.items():
            logger.warning(
                "Cannot substitute %s: micro_alt '%s' is missing, completed or the task itself; keeping parent.",
                parent_id, micro_id,
                extra={"parent_id": parent_id, "micro_id": micro_id},
            )

        scored = [
            s for s in score_tasks(subs.tasks, metrics, current_time, self.weights)
            if s.task.id not in self._dismissed_in_cycle
        ]
        result = rank(scored)[: self.max_results]

        shortfall = self.max_results - len(result)
        if shortfall > 0:
            exclude = {s.task.id for s in result} | self._dismissed_in_cycle
            backfill = relax_time_gates(
                subs.tasks,
                exclude,
                metrics,
                current_time,
                self.weights,
                limit=shortfall,
            )
            if backfill:
                logger.debug(
                    "Relaxed time gates to backfill %d slot(s): %s",
                    len(backfill), [s.task.id for s in backfill],
                )
            result.extend(backfill)

        result = result[: self.max_results]
        logger.debug(
            "Ranked %d of %d candidate(s)", len(result), len(subs.tasks),
            extra={
                "local_date": local_date,
                "task_ids": [s.task.id for s in result],
                "scores": [s.score for s in result],
            },
        )
        return result
