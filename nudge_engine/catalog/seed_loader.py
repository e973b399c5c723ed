"""
Custom catalog loader: JSON file → validated ``Task`` list.

Lets a deployment replace the built-in starter catalog with its own nudges.
The file is a JSON array of task objects using the wire field names::

    [
      {"id": "stretch-5", "title": "Stretch for 5 minutes",
       "category": "movement", "impact_weight": 3, "effort_min": 5,
       "time_gate": "morning"}
    ]

Validation rules
----------------
- The top-level value must be a JSON array of objects.
- Every object must validate as a ``Task`` (categories, gates, ranges).
- Duplicate ids are rejected.
- ``micro_alt`` references to ids missing from the file, or to the task
  itself, are kept (they degrade to "no substitute" at ranking time) but
  logged as warnings.

Usage
-----
    from nudge_engine.catalog.seed_loader import load_tasks_file

    tasks = load_tasks_file(Path("config/catalog.json"))
    recommender.load_tasks(tasks)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from nudge_engine.errors import CatalogError
from nudge_engine.models.task import Task

log = logging.getLogger(__name__)


def load_tasks_file(path: Path) -> list[Task]:
    """Load and validate a catalog JSON file.

    Args:
        path: Path to a JSON array of task objects.

    Returns:
        Validated tasks in file order.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        CatalogError: If the file is not valid JSON, is not an array, contains
            an invalid task, or repeats an id.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{path}: invalid JSON ({exc.msg} at line {exc.lineno}).") from exc

    return parse_tasks(raw, source=str(path))


def parse_tasks(raw: Any, source: str = "<catalog>") -> list[Task]:
    """Validate already-decoded catalog data. See ``load_tasks_file``."""
    if not isinstance(raw, list):
        raise CatalogError(f"{source}: expected a JSON array of tasks, got {type(raw).__name__}.")

    tasks: list[Task] = []
    seen: set[str] = set()
    for idx, row in enumerate(raw):
        if not isinstance(row, dict):
            raise CatalogError(f"{source}: entry {idx} is not an object.")
        try:
            task = Task(**row)
        except ValidationError as exc:
            raise CatalogError(f"{source}: entry {idx} is invalid: {exc}") from exc
        if task.id in seen:
            raise CatalogError(f"{source}: duplicate task id '{task.id}'.")
        seen.add(task.id)
        tasks.append(task)

    for task in tasks:
        if task.micro_alt and task.micro_alt not in seen:
            log.warning(
                "Task '%s' references unknown micro_alt '%s'; it will never be substituted.",
                task.id, task.micro_alt,
            )
        elif task.micro_alt == task.id:
            log.warning(
                "Task '%s' lists itself as micro_alt; it will never be substituted.",
                task.id,
            )

    log.info("Loaded %d tasks from %s", len(tasks), source)
    return tasks
