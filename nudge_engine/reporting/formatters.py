"""
ASCII terminal formatters for CLI commands.

All formatters accept engine objects (``TaskScore``, ``Task``) and return
plain multi-line strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).
"""

from __future__ import annotations

from nudge_engine.models.task import Task, UserMetrics
from nudge_engine.recommendations.scorer import ScoringWeights, TaskScore


def _gate(task: Task) -> str:
    return task.time_gate.value if task.time_gate else "-"


def _num(value: float) -> str:
    return f"{value:g}"


# ── Recommendations ───────────────────────────────────────────────────────────


def format_recommendations_table(
    ranked:       list[TaskScore],
    current_time: str,
    local_date:   str,
) -> str:
    """Format ranked recommendations as an ASCII table::

        Rank  Task                Category   Impact  Effort  Gate      Score
        --------------------------------------------------------------------
           1  screen-break-10     screen          5      10  -        2.1918

    Returns:
        Multi-line string.
    """
    lines: list[str] = []
    lines.append("")
    lines.append("=== Recommended Nudges ===")
    lines.append(f"  Time: {current_time}")
    lines.append(f"  Date: {local_date}")
    lines.append("")

    if not ranked:
        lines.append("  (no tasks available: catalog empty or everything completed)")
        return "\n".join(lines)

    header = (
        f"  {'Rank':>4}  {'Task':<20}  {'Category':<10}  {'Impact':>6}  "
        f"{'Effort':>6}  {'Gate':<8}  {'Score':>7}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for rank, s in enumerate(ranked, start=1):
        lines.append(
            f"  {rank:>4}  {s.task.id[:20]:<20}  {s.task.category.value:<10}  "
            f"{_num(s.task.impact_weight):>6}  {_num(s.task.effort_min):>6}  "
            f"{_gate(s.task):<8}  {s.score:>7.4f}"
        )
    lines.append("")
    for rank, s in enumerate(ranked, start=1):
        lines.append(f"  {rank}. {s.task.title}")
        lines.append(f"     {s.rationale}")
    return "\n".join(lines)


# ── Score breakdown ───────────────────────────────────────────────────────────


def format_score_breakdown(
    scored:       TaskScore,
    metrics:      UserMetrics,
    current_time: str,
    weights:      ScoringWeights,
) -> str:
    """Show each component, its weight and weighted value for one task.

    The weighted column sums (before rounding) to the reported score.
    """
    rows = [
        ("urgency",     scored.urgencyContribution,   weights.w_urgency),
        ("impact",      scored.impactContribution,    weights.w_impact),
        ("effort",      scored.effortContribution,    weights.w_effort),
        ("time of day", scored.timeOfDayContribution, weights.w_tod),
        ("ignores",     scored.ignoresPenalty,        -weights.w_penalty),
    ]

    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Score Breakdown: {scored.task.id} ===")
    lines.append(f"  Title:    {scored.task.title}")
    lines.append(f"  Category: {scored.task.category.value}   Gate: {_gate(scored.task)}")
    lines.append(f"  Time:     {current_time}")
    lines.append(
        f"  Metrics:  water={_num(metrics.water_ml)}ml steps={_num(metrics.steps)} "
        f"sleep={_num(metrics.sleep_hours)}h screen={_num(metrics.screen_time_min)}min "
        f"mood={metrics.mood_1to5}/5"
    )
    lines.append("")
    header = f"  {'Component':<12}  {'Value':>8}  {'Weight':>7}  {'Weighted':>9}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for name, value, weight in rows:
        lines.append(
            f"  {name:<12}  {value:>8.4f}  {weight:>+7.2f}  {value * weight:>+9.4f}"
        )
    lines.append("  " + "-" * (len(header) - 2))
    lines.append(f"  {'score':<12}  {'':>8}  {'':>7}  {scored.score:>+9.4f}")
    lines.append("")
    lines.append(f"  {scored.rationale}")
    return "\n".join(lines)


# ── Catalog ───────────────────────────────────────────────────────────────────


def format_task_catalog(tasks: list[Task]) -> str:
    """List catalog tasks with their static fields and daily counters."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Task Catalog ({len(tasks)} tasks) ===")
    if not tasks:
        lines.append("  (empty)")
        return "\n".join(lines)

    header = (
        f"  {'Task':<20}  {'Category':<10}  {'Impact':>6}  {'Effort':>6}  "
        f"{'Gate':<8}  {'Micro alt':<12}  {'Ignores':>7}  {'Done':>4}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for t in tasks:
        lines.append(
            f"  {t.id[:20]:<20}  {t.category.value:<10}  {_num(t.impact_weight):>6}  "
            f"{_num(t.effort_min):>6}  {_gate(t):<8}  {(t.micro_alt or '-')[:12]:<12}  "
            f"{t.ignores:>7}  {'yes' if t.completedToday else 'no':>4}"
        )
    return "\n".join(lines)
