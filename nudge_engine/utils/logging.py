"""
Logging setup for the Nudge Engine.

``configure_logging(config)`` is called once by the CLI (``serve``,
``recommend`` ...) before any engine work; library modules only ever call
``logging.getLogger(__name__)``.

Engine and HTTP log calls attach structured context through ``extra=``:

    request     method, path, status, duration_ms
    ranking     local_date, task_ids, scores
    action      action, task_id, action_date, ignores

In text mode those fields are appended to the message as ``key=value`` pairs;
with ``json_format = true`` in the ``[logging]`` section they become
top-level keys of a one-object-per-line record::

    {"ts": "2023-12-20T15:00:00Z", "level": "INFO",
     "logger": "nudge_engine.api.app", "msg": "POST /recommendations -> 200 (3.1ms)",
     "method": "POST", "path": "/recommendations", "status": 200, "duration_ms": 3.1}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from nudge_engine.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else came from ``extra=``.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the ``extra=`` context attached to ``record``, in insertion order."""
    return {
        key: val
        for key, val in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class _TextFormatter(logging.Formatter):
    """Plain log line followed by `` key=value`` for each extra field."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = extra_fields(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


class _JsonFormatter(logging.Formatter):
    """One JSON object per line: ``ts``, ``level``, ``logger``, ``msg`` + extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        payload.update(extra_fields(record))
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig", debug: bool = False) -> None:
    """Configure the root logger from the ``[logging]`` config section.

    Args:
        config: Logging section of ``AppConfig``.
        debug:  ``AppConfig.debug``; forces DEBUG regardless of ``config.level``.
    """
    level = logging.DEBUG if debug else getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter
    if config.json_format:
        formatter = _JsonFormatter()
    else:
        formatter = _TextFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # uvicorn's own access log duplicates the request middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
