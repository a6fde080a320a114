"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""


class UnsupportedBackendError(ConfigurationError):
    """Raised when the configured document store backend is unknown."""

    def __init__(self, backend: str) -> None:
        super().__init__(f"Unsupported document store backend: {backend!r}")
        self.backend = backend
