"""Application configuration helpers."""

from __future__ import annotations

from .analysis import EXACT_MATCH_SCORE, AnalysisConfig, get_analysis_config
from .env import (
    optional_bool_env_var,
    optional_int_env_var,
    require_env_var,
    require_env_vars,
)
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging, resolve_log_level
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "EXACT_MATCH_SCORE",
    "AnalysisConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "configure_logging",
    "get_analysis_config",
    "get_database_config",
    "get_storage_config",
    "optional_bool_env_var",
    "optional_int_env_var",
    "require_env_var",
    "require_env_vars",
    "resolve_log_level",
]
