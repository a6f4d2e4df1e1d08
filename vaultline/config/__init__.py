"""Configuration for VAULTLINE itself.

This package contains:
- fetch_config: RemoteSourceConfig and RetryPolicy value objects
- settings: Settings dataclass read from the local environment
- display: Rich rendering of snapshots, health and stats
"""

from vaultline.config.fetch_config import RemoteSourceConfig, RetryPolicy
from vaultline.config.settings import ACCESS_TOKEN_KEY, Settings

__all__ = [
    "ACCESS_TOKEN_KEY",
    "RemoteSourceConfig",
    "RetryPolicy",
    "Settings",
]
