"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      : committed static defaults
  2. ``config/local.toml``        : optional local overrides (gitignored)
  3. ``.env``                     : local env overrides (gitignored)
  4. Environment variables        : ``NUDGE_ENGINE_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The HTTP app and CLI commands receive an ``AppConfig`` instance, never raw
dicts or individual env var lookups scattered through the codebase. The
engine itself only sees the plain values (``max_results``, weights) it is
constructed with.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from nudge_engine.recommendations.scorer import ScoringWeights

# ── Sub-config models ─────────────────────────────────────────────────────────


class RecommenderConfig(BaseModel):
    """Selection parameters."""

    model_config = ConfigDict(frozen=True)

    max_results: int = 4
    substitution_threshold: int = 3

    @field_validator("max_results", "substitution_threshold")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}.")
        return v


class ScoringConfig(BaseModel):
    """Score component weights."""

    model_config = ConfigDict(frozen=True)

    w_urgency: float = 0.5
    w_impact: float = 0.3
    w_effort: float = 0.15
    w_tod: float = 0.15
    w_penalty: float = 0.2

    @field_validator("w_urgency", "w_impact", "w_effort", "w_tod", "w_penalty")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"weights must be non-negative, got {v}.")
        return v

    def to_weights(self) -> ScoringWeights:
        return ScoringWeights(**self.model_dump())


class ServerConfig(BaseModel):
    """HTTP adapter settings."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:3001"]
    seed_on_startup: bool = True
    catalog_file: Optional[str] = None

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError(f"port must be in [1, 65535], got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration, the single source of truth."""

    model_config = ConfigDict(frozen=True)

    recommender: RecommenderConfig = RecommenderConfig()
    scoring: ScoringConfig = ScoringConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``; when that default file is
            absent (e.g. an installed wheel) built-in defaults are used.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.

    A relative ``server.catalog_file`` is resolved against the project root.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    raw: dict[str, Any] = {}
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        config_path = root / "config" / "default.toml"

    if config_path.exists():
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)

        # Also merge local.toml if present (gitignored local overrides)
        local_config_path = config_path.parent / "local.toml"
        if local_config_path.exists():
            with open(local_config_path, "rb") as f:
                raw = _deep_merge(raw, tomllib.load(f))

    # 3. Apply NUDGE_ENGINE_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Anchor a relative catalog path at the project root, not the CWD
    server = raw.get("server", {})
    if isinstance(server.get("catalog_file"), str) and server["catalog_file"]:
        server["catalog_file"] = str(_resolve_path(server["catalog_file"], root))

    # 5. Build and validate AppConfig
    return _build_app_config(raw)


def _resolve_path(value: str, root: Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply NUDGE_ENGINE_* env vars to the raw config dict.

    Supported overrides:
      NUDGE_ENGINE_HOST       → raw["server"]["host"]
      NUDGE_ENGINE_PORT       → raw["server"]["port"]
      NUDGE_ENGINE_CATALOG    → raw["server"]["catalog_file"]
      NUDGE_ENGINE_LOG_LEVEL  → raw["logging"]["level"]
      NUDGE_ENGINE_DEBUG      → raw["debug"]
    """
    if host := os.environ.get("NUDGE_ENGINE_HOST"):
        raw.setdefault("server", {})["host"] = host

    if port := os.environ.get("NUDGE_ENGINE_PORT"):
        raw.setdefault("server", {})["port"] = port

    if catalog := os.environ.get("NUDGE_ENGINE_CATALOG"):
        raw.setdefault("server", {})["catalog_file"] = catalog

    if log_level := os.environ.get("NUDGE_ENGINE_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("NUDGE_ENGINE_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    return AppConfig(
        recommender=RecommenderConfig(**raw.get("recommender", {})),
        scoring=ScoringConfig(**raw.get("scoring", {})),
        server=ServerConfig(**raw.get("server", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", False),
    )
