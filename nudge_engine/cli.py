"""
Nudge Engine CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (serve, rank, explain, list).
  5. Report result to stdout.

Install and run::

    pip install -e .
    nudge-engine --help
    nudge-engine validate-config
    nudge-engine serve --port 3000
    nudge-engine recommend --water-ml 900 --steps 4000 --sleep-hours 6 \\
        --screen-time-min 150 --mood 2 --time 2023-12-20T15:00:00Z
    nudge-engine explain sleep-winddown-15 --sleep-hours 6 --time 2023-12-20T20:00:00Z
    nudge-engine list-tasks
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="nudge-engine",
    help="Deterministic wellness nudge prioritization engine.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from nudge_engine.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config; ``debug = true`` forces DEBUG output."""
    from nudge_engine.utils.logging import configure_logging
    configure_logging(config.logging, debug=config.debug)


def _build_recommender_or_exit(config, catalog_path: Optional[str]):
    """Recommender loaded with ``--catalog`` (or the configured/built-in catalog)."""
    from nudge_engine.catalog.seed_loader import load_tasks_file
    from nudge_engine.errors import CatalogError
    from nudge_engine.recommendations.recommender import Recommender

    recommender = Recommender(
        max_results=config.recommender.max_results,
        substitution_threshold=config.recommender.substitution_threshold,
        weights=config.scoring.to_weights(),
    )
    source = catalog_path or config.server.catalog_file
    if source:
        try:
            recommender.load_tasks(load_tasks_file(Path(source)))
        except (FileNotFoundError, CatalogError) as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)
    else:
        recommender.load_seed_data()
    return recommender


def _metrics_or_exit(water_ml, steps, sleep_hours, screen_time_min, mood):
    from pydantic import ValidationError

    from nudge_engine.models.task import UserMetrics

    try:
        return UserMetrics(
            water_ml=water_ml,
            steps=steps,
            sleep_hours=sleep_hours,
            screen_time_min=screen_time_min,
            mood_1to5=mood,
        )
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid metrics:\n{exc}", err=True)
        raise typer.Exit(code=1)


def _time_and_date_or_exit(time: Optional[str], date: Optional[str]) -> tuple[str, str]:
    """Resolve ``--time`` / ``--date``; the date defaults to the date of ``--time``."""
    from nudge_engine.utils.time_utils import is_iso_date, parse_iso_datetime, utcnow

    current_time = time or utcnow().isoformat().replace("+00:00", "Z")
    try:
        parsed = parse_iso_datetime(current_time)
    except ValueError:
        typer.echo(f"[ERROR] --time is not an ISO-8601 datetime: {current_time}", err=True)
        raise typer.Exit(code=1)

    local_date = date or parsed.date().isoformat()
    if not is_iso_date(local_date):
        typer.echo(f"[ERROR] --date must be YYYY-MM-DD, got: {local_date}", err=True)
        raise typer.Exit(code=1)
    return current_time, local_date


_WATER = typer.Option(0.0, "--water-ml", min=0, help="Water consumed today (ml).")
_STEPS = typer.Option(0.0, "--steps", min=0, help="Steps walked today.")
_SLEEP = typer.Option(8.0, "--sleep-hours", min=0, help="Hours slept last night.")
_SCREEN = typer.Option(0.0, "--screen-time-min", min=0, help="Screen time today (minutes).")
_MOOD = typer.Option(3, "--mood", help="Mood, 1 (low) to 5 (high).")
_TIME = typer.Option(None, "--time", help="ISO-8601 datetime (default: now, UTC).")
_DATE = typer.Option(None, "--date", help="Local date YYYY-MM-DD (default: date of --time).")
_CATALOG = typer.Option(None, "--catalog", help="JSON task catalog (default: built-in seed).")
_CONFIG = typer.Option(None, "--config", help="Path to TOML config file.")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (overrides config)."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (overrides config)."),
    config_path: Optional[str] = _CONFIG,
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from nudge_engine.api.app import create_app
    from nudge_engine.errors import CatalogError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        api = create_app(config)
    except (FileNotFoundError, CatalogError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    typer.echo(f"Serving Nudge Engine API on http://{bind_host}:{bind_port}")
    uvicorn.run(api, host=bind_host, port=bind_port, log_config=None)


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG,
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Max results:      {config.recommender.max_results}")
    typer.echo(f"  Substitute after: {config.recommender.substitution_threshold} dismissals")
    typer.echo(f"  Server:           {config.server.host}:{config.server.port}")
    typer.echo(f"  Catalog:          {config.server.catalog_file or '(built-in seed)'}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("recommend")
def recommend(
    water_ml: float = _WATER,
    steps: float = _STEPS,
    sleep_hours: float = _SLEEP,
    screen_time_min: float = _SCREEN,
    mood: int = _MOOD,
    time: Optional[str] = _TIME,
    date: Optional[str] = _DATE,
    catalog_path: Optional[str] = _CATALOG,
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config_path: Optional[str] = _CONFIG,
) -> None:
    """Rank the catalog for one metrics snapshot and print the result."""
    from nudge_engine.reporting.formatters import format_recommendations_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    metrics = _metrics_or_exit(water_ml, steps, sleep_hours, screen_time_min, mood)
    current_time, local_date = _time_and_date_or_exit(time, date)
    recommender = _build_recommender_or_exit(config, catalog_path)

    ranked = recommender.get_recommendations(metrics, current_time, local_date)

    if as_json:
        payload = {
            "tasks": [s.to_dict() for s in ranked],
            "timestamp": current_time,
            "localDate": local_date,
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        typer.echo(format_recommendations_table(ranked, current_time, local_date))


@app.command("explain")
def explain(
    task_id: str = typer.Argument(..., help="Catalog task id, e.g. water-500."),
    water_ml: float = _WATER,
    steps: float = _STEPS,
    sleep_hours: float = _SLEEP,
    screen_time_min: float = _SCREEN,
    mood: int = _MOOD,
    time: Optional[str] = _TIME,
    catalog_path: Optional[str] = _CATALOG,
    config_path: Optional[str] = _CONFIG,
) -> None:
    """Show the per-component score calculation for one task."""
    from nudge_engine.recommendations.scorer import calculate_score
    from nudge_engine.reporting.formatters import format_score_breakdown

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    metrics = _metrics_or_exit(water_ml, steps, sleep_hours, screen_time_min, mood)
    current_time, _ = _time_and_date_or_exit(time, None)
    recommender = _build_recommender_or_exit(config, catalog_path)

    task = recommender.get_task(task_id)
    if task is None:
        typer.echo(f"[ERROR] Unknown task id: {task_id}", err=True)
        raise typer.Exit(code=1)

    weights = config.scoring.to_weights()
    scored = calculate_score(task, metrics, current_time, weights)
    typer.echo(format_score_breakdown(scored, metrics, current_time, weights))


@app.command("list-tasks")
def list_tasks(
    catalog_path: Optional[str] = _CATALOG,
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config_path: Optional[str] = _CONFIG,
) -> None:
    """Print the task catalog, unscored."""
    from nudge_engine.reporting.formatters import format_task_catalog

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    tasks = _build_recommender_or_exit(config, catalog_path).get_all_tasks()
    if as_json:
        typer.echo(json.dumps([t.model_dump(mode="json", exclude_none=True) for t in tasks], indent=2))
    else:
        typer.echo(format_task_catalog(tasks))


if __name__ == "__main__":
    app()
