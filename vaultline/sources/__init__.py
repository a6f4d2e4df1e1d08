"""Configuration sources for VAULTLINE.

This package contains:
- cache: Single-entry TTL cache for the last remote fetch
- errors: Typed configuration errors and the error classifier
- local: .env file and process variable loading
- remote: Remote secrets client with retry and cache fallback
"""

from vaultline.sources.cache import DEFAULT_CACHE_TTL, CacheEntry, ConfigCache
from vaultline.sources.errors import (
    ConfigError,
    ConfigValidationError,
    ErrorKind,
    classify_error,
    classify_status,
)
from vaultline.sources.local import DotEnvSource, LocalEnvironment, LocalSource
from vaultline.sources.remote import RemoteConfigClient, parse_secrets

__all__ = [
    # Cache
    "DEFAULT_CACHE_TTL",
    "CacheEntry",
    "ConfigCache",
    # Errors
    "ConfigError",
    "ConfigValidationError",
    "ErrorKind",
    "classify_error",
    "classify_status",
    # Local
    "DotEnvSource",
    "LocalEnvironment",
    "LocalSource",
    # Remote
    "RemoteConfigClient",
    "parse_secrets",
]
