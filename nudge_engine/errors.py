"""
Exception hierarchy.

Engine operations report unknown task ids through their boolean return
value and never raise for degraded catalog data; these exceptions are raised
at the boundaries (HTTP adapter, CLI, catalog loading) and mapped there to
status codes or exit codes.
"""

from __future__ import annotations


class NudgeEngineError(Exception):
    """Base class for all nudge engine errors."""


class InvalidRequestError(NudgeEngineError, ValueError):
    """Caller input failed validation before reaching the engine."""


class TaskNotFoundError(NudgeEngineError, KeyError):
    """An action referenced a task id that is not in the catalog."""

    def __init__(self, task_id: str) -> None:
        super().__init__(task_id)
        self.task_id = task_id

    def __str__(self) -> str:
        return f"Task not found: {self.task_id}"


class CatalogError(NudgeEngineError, ValueError):
    """A catalog file or payload could not be loaded."""
