"""Request and response envelopes for the HTTP API."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class RecommendationRequest(BaseModel):
    # ``metrics`` stays a raw dict so a malformed payload produces the
    # endpoint's own 400 message instead of a generic validation error.
    metrics: Optional[dict[str, Any]] = None
    currentTime: Optional[str] = None
    localDate: Optional[str] = None


class RecommendationResponse(BaseModel):
    tasks: list[dict[str, Any]]
    timestamp: str
    localDate: str


class ActionRequest(BaseModel):
    taskId: Optional[str] = None
    timestamp: Optional[str] = None


class ActionResponse(BaseModel):
    success: bool
    message: str
    task: Optional[dict[str, Any]] = None


class CatalogResponse(BaseModel):
    success: bool = True
    message: str = ""
    tasks: list[dict[str, Any]] = Field(default_factory=list)
