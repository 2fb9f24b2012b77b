"""
Configuration for latebind.

Settings come from LATEBIND_* environment variables:

    LATEBIND_BASE_DIR      Directory for relative resource paths (default ".")
    LATEBIND_LOG_LEVEL     Root log level for configure_logging (default "INFO")
    LATEBIND_JSON_LOGS     "true" to emit structured JSON resolver events
    LATEBIND_LOGGER_NAME   Logger name for resolver events (default "latebind.resolver")
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ResolverSettings(BaseModel):
    """Settings model for resolvers and loaders."""

    base_dir: str = Field(".", description="Base directory for relative resource paths")
    log_level: str = Field("INFO", description="Root log level")
    json_logs: bool = Field(False, description="Emit resolver events as JSON lines")
    logger_name: str = Field("latebind.resolver", description="Logger for resolver events")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value!r}")
        return level


@lru_cache()
def get_settings() -> ResolverSettings:
    """
    Get settings from the environment.

    Uses lru_cache for singleton pattern; call ``get_settings.cache_clear()``
    after changing the environment.
    """
    return ResolverSettings(
        base_dir=os.getenv("LATEBIND_BASE_DIR", "."),
        log_level=os.getenv("LATEBIND_LOG_LEVEL", "INFO"),
        json_logs=os.getenv("LATEBIND_JSON_LOGS", "false").strip().lower() in _TRUE_VALUES,
        logger_name=os.getenv("LATEBIND_LOGGER_NAME", "latebind.resolver"),
    )


def configure_logging(settings: ResolverSettings | None = None, *, force: bool = False) -> None:
    """Initialise the root logger for applications and scripts."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=force,
    )
