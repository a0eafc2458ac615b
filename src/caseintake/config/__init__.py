"""Application configuration helpers."""

from __future__ import annotations

from .detection import DetectionConfig, get_detection_config
from .env import float_from_env, require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConfigurationValueError,
    MissingConfigurationError,
)
from .logging import configure_logging
from .reviewer import ReviewerConfig, get_reviewer_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "DetectionConfig",
    "InvalidConfigurationValueError",
    "MissingConfigurationError",
    "ReviewerConfig",
    "StorageConfig",
    "configure_logging",
    "float_from_env",
    "get_database_config",
    "get_detection_config",
    "get_reviewer_config",
    "get_storage_config",
    "require_env_vars",
]
