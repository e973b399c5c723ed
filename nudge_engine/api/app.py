"""
FastAPI application exposing the recommender over JSON/HTTP.

Endpoints
---------
    GET  /                    service banner + endpoint map
    GET  /health              liveness
    POST /recommendations     ranked nudges for a metrics snapshot
    POST /actions/complete    mark a task completed today
    POST /actions/dismiss     record one dismissal of a task
    POST /admin/seed          clear + reload the starter catalog
    GET  /admin/tasks         dump the catalog, unscored
    POST /admin/reset         clear every task's daily counters

Every engine call runs under a single lock: the recommender is not
thread-safe and FastAPI runs these sync handlers in a threadpool.

Run with ``nudge-engine serve`` or::

    uvicorn nudge_engine.api.app:create_app --factory --port 3000
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from nudge_engine import __version__
from nudge_engine.api.schemas import (
    ActionRequest,
    ActionResponse,
    CatalogResponse,
    RecommendationRequest,
    RecommendationResponse,
)
from nudge_engine.catalog.seed_loader import load_tasks_file
from nudge_engine.config import AppConfig
from nudge_engine.errors import InvalidRequestError, TaskNotFoundError
from nudge_engine.models.task import Task, UserMetrics
from nudge_engine.recommendations.recommender import Recommender
from nudge_engine.utils.time_utils import (
    date_from_timestamp,
    is_iso_date,
    parse_iso_datetime,
    utcnow,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "Nudge Engine API"

INVALID_METRICS_MESSAGE = (
    "Invalid metrics provided. Required: water_ml, steps, sleep_hours, "
    "screen_time_min, mood_1to5"
)

ENDPOINTS = {
    "health": "GET /health",
    "recommendations": "POST /recommendations",
    "complete": "POST /actions/complete",
    "dismiss": "POST /actions/dismiss",
    "seed": "POST /admin/seed",
    "tasks": "GET /admin/tasks",
    "reset": "POST /admin/reset",
}


def build_recommender(config: AppConfig) -> Recommender:
    """Construct a recommender from config and load its starting catalog."""
    recommender = Recommender(
        max_results=config.recommender.max_results,
        substitution_threshold=config.recommender.substitution_threshold,
        weights=config.scoring.to_weights(),
    )
    if config.server.seed_on_startup:
        _seed(recommender, config)
    return recommender


def _seed(recommender: Recommender, config: AppConfig) -> None:
    if config.server.catalog_file:
        recommender.load_tasks(load_tasks_file(config.server.catalog_file))
    else:
        recommender.load_seed_data()


def _task_dict(task: Task) -> dict[str, Any]:
    return task.model_dump(mode="json", exclude_none=True)


def create_app(
    config:      Optional[AppConfig] = None,
    recommender: Optional[Recommender] = None,
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        config:      Application config; built-in defaults when ``None``.
        recommender: Pre-built engine (tests inject one); otherwise built from
                     ``config`` and seeded per ``config.server``.
    """
    config = config or AppConfig()
    engine = recommender if recommender is not None else build_recommender(config)
    lock = threading.Lock()

    app = FastAPI(title=SERVICE_NAME, version=__version__)
    app.state.config = config
    app.state.recommender = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.server.cors_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # ── Middleware & error mapping ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000.0
        status = response.status_code
        level = logging.INFO
        if 400 <= status < 500:
            level = logging.WARNING
        elif status >= 500:
            level = logging.ERROR
        logger.log(
            level, "%s %s -> %d (%.1fms)",
            request.method, request.url.path, status, duration_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 1),
            },
        )
        return response

    @app.exception_handler(InvalidRequestError)
    async def handle_invalid_request(request: Request, exc: InvalidRequestError):
        logger.warning("Rejected %s: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(TaskNotFoundError)
    async def handle_not_found(request: Request, exc: TaskNotFoundError):
        logger.warning("Unknown task id '%s' on %s", exc.task_id, request.url.path)
        return JSONResponse(status_code=404, content={"error": "Task not found"})

    @app.exception_handler(RequestValidationError)
    async def handle_body_validation(request: Request, exc: RequestValidationError):
        logger.warning("Malformed body on %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": "Malformed request body"})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Endpoint not found",
                    "path": request.url.path,
                    "method": request.method,
                },
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # ── Service endpoints ─────────────────────────────────────────────────────

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "name": SERVICE_NAME,
            "version": __version__,
            "description": "Deterministic prioritization engine for wellness tasks",
            "endpoints": ENDPOINTS,
        }

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "message": f"{SERVICE_NAME} is running",
            "timestamp": utcnow().isoformat(),
        }

    # ── Engine endpoints ──────────────────────────────────────────────────────

    @app.post("/recommendations", response_model=RecommendationResponse)
    def recommendations(body: RecommendationRequest) -> RecommendationResponse:
        """Return up to ``max_results`` ranked nudges for the given metrics."""
        metrics = _parse_metrics(body.metrics)

        now = utcnow()
        current_time = body.currentTime or now.isoformat().replace("+00:00", "Z")
        local_date = body.localDate or now.date().isoformat()
        try:
            parse_iso_datetime(current_time)
        except ValueError as exc:
            raise InvalidRequestError(f"currentTime is not ISO-8601: '{current_time}'") from exc
        if not is_iso_date(local_date):
            raise InvalidRequestError(f"localDate must be YYYY-MM-DD, got '{local_date}'")

        with lock:
            ranked = engine.get_recommendations(metrics, current_time, local_date)

        logger.info(
            "Recommendations generated: %d task(s)", len(ranked),
            extra={
                "local_date": local_date,
                "task_ids": [s.task.id for s in ranked],
                "scores": [s.score for s in ranked],
            },
        )
        return RecommendationResponse(
            tasks=[s.to_dict() for s in ranked],
            timestamp=current_time,
            localDate=local_date,
        )

    @app.post("/actions/complete", response_model=ActionResponse)
    def complete(body: ActionRequest) -> ActionResponse:
        """Mark a task completed for the day of ``timestamp`` (UTC)."""
        task_id, action_date = _parse_action(body)
        with lock:
            require_task(engine, task_id)
            engine.complete_task(task_id, action_date)
            task = engine.get_task(task_id)

        logger.info(
            "Task %s completed on %s", task_id, action_date,
            extra={"action": "complete", "task_id": task_id, "action_date": action_date},
        )
        return ActionResponse(
            success=True,
            message=f"Task {task_id} marked as completed",
            task=_task_dict(task),
        )

    @app.post("/actions/dismiss", response_model=ActionResponse)
    def dismiss(body: ActionRequest) -> ActionResponse:
        """Record a dismissal; reports the updated same-day ignores count."""
        task_id, action_date = _parse_action(body)
        with lock:
            require_task(engine, task_id)
            engine.dismiss_task(task_id, action_date)
            task = engine.get_task(task_id)

        if task.micro_alt and task.ignores >= engine.substitution_threshold:
            logger.warning(
                "Substitution threshold reached for %s (ignores=%d); will offer %s",
                task_id, task.ignores, task.micro_alt,
            )
        logger.info(
            "Task %s dismissed on %s", task_id, action_date,
            extra={
                "action": "dismiss",
                "task_id": task_id,
                "action_date": action_date,
                "ignores": task.ignores,
            },
        )
        return ActionResponse(
            success=True,
            message=f"Task {task_id} dismissed (ignores: {task.ignores})",
            task=_task_dict(task),
        )

    # ── Admin endpoints ───────────────────────────────────────────────────────

    @app.post("/admin/seed", response_model=CatalogResponse)
    def seed() -> CatalogResponse:
        with lock:
            engine.clear_all_tasks()
            _seed(engine, config)
            tasks = engine.get_all_tasks()
        logger.info("Catalog seeded with %d tasks", len(tasks))
        return CatalogResponse(
            message=f"Loaded {len(tasks)} seed tasks",
            tasks=[_task_dict(t) for t in tasks],
        )

    @app.get("/admin/tasks")
    def list_tasks() -> dict[str, Any]:
        with lock:
            tasks = engine.get_all_tasks()
        return {"tasks": [_task_dict(t) for t in tasks]}

    @app.post("/admin/reset", response_model=CatalogResponse)
    def reset() -> CatalogResponse:
        with lock:
            engine.reset_daily_state()
        logger.info("Daily state reset for all tasks")
        return CatalogResponse(message="Daily state reset for all tasks")

    return app


# ── Request helpers ───────────────────────────────────────────────────────────

def _parse_metrics(raw: Optional[dict[str, Any]]) -> UserMetrics:
    """Validate the metrics payload strictly: numbers only, mood in 1–5."""
    if not raw:
        raise InvalidRequestError(INVALID_METRICS_MESSAGE)
    try:
        return UserMetrics.model_validate(raw, strict=True)
    except ValidationError as exc:
        raise InvalidRequestError(INVALID_METRICS_MESSAGE) from exc


def _parse_action(body: ActionRequest) -> tuple[str, str]:
    """Return ``(task_id, YYYY-MM-DD)`` for a complete/dismiss request."""
    if not body.taskId:
        raise InvalidRequestError("taskId is required")
    try:
        action_date = date_from_timestamp(body.timestamp)
    except ValueError as exc:
        raise InvalidRequestError(f"timestamp is not ISO-8601: '{body.timestamp}'") from exc
    return body.taskId, action_date


def require_task(engine: Recommender, task_id: str) -> Task:
    """Return the task or raise ``TaskNotFoundError``."""
    task = engine.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task
