"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError, UnsupportedBackendError
from .firebase import FirebaseConfig, get_firebase_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging, resolve_log_level
from .report import ReportConfig, StoreBackend, get_report_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "FirebaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReportConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "StoreBackend",
    "UnsupportedBackendError",
    "configure_logging",
    "get_database_config",
    "get_firebase_config",
    "get_report_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
    "resolve_log_level",
]
