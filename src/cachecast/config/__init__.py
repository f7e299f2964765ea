"""Application configuration helpers."""

from __future__ import annotations

from cachecast.common.logging import configure_logging

from .env import env_flag, require_env_var, require_env_vars
from .errors import ConfigurationError, MetadataError, MissingConfigurationError
from .meta import MetaConfig, get_meta_config
from .projection import ProjectionConfig, get_projection_config

__all__ = [
    "ConfigurationError",
    "MetaConfig",
    "MetadataError",
    "MissingConfigurationError",
    "ProjectionConfig",
    "configure_logging",
    "env_flag",
    "get_meta_config",
    "get_projection_config",
    "require_env_var",
    "require_env_vars",
]
