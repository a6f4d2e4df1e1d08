"""Vaultline - remote secrets with resilient local fallback.

This package loads application configuration from a remote secrets
service at startup, merges it with locally available environment data,
validates the result and serves it as a single queryable snapshot.
"""

__version__ = "0.1.0"
SCRIPT_NAME = "VAULTLINE"

from vaultline.manager import ConfigManager, HealthStatus, ManagerState, ManagerStats
from vaultline.models import ConfigSnapshot, ConfigSource
from vaultline.sources.errors import ConfigError, ConfigValidationError, ErrorKind
from vaultline.validation import ValidationResult, ValidationRule

__all__ = [
    "__version__",
    "SCRIPT_NAME",
    "ConfigError",
    "ConfigManager",
    "ConfigSnapshot",
    "ConfigSource",
    "ConfigValidationError",
    "ErrorKind",
    "HealthStatus",
    "ManagerState",
    "ManagerStats",
    "ValidationResult",
    "ValidationRule",
]
