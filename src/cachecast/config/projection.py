"""Projection and logging defaults for optimistic cache updates."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .env import env_flag
from .errors import ConfigurationError

DEFAULT_LOG_LEVEL = logging.INFO


@dataclass(frozen=True, slots=True)
class ProjectionConfig:
    log_changes: bool = False
    log_level: int = DEFAULT_LOG_LEVEL


def _parse_log_level(value: str | None) -> int:
    if value is None or not value.strip():
        return DEFAULT_LOG_LEVEL
    normalized = value.strip()
    if normalized.isdigit():
        return int(normalized)
    level = logging.getLevelNamesMapping().get(normalized.upper())
    if level is None:
        raise ConfigurationError(f"Unknown log level: {value}")
    return level


def get_projection_config() -> ProjectionConfig:
    return ProjectionConfig(
        log_changes=env_flag("CACHECAST_LOG_CHANGES"),
        log_level=_parse_log_level(os.getenv("CACHECAST_LOG_LEVEL")),
    )
