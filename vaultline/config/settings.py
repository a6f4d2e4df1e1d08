"""Settings dataclass for VAULTLINE.

This module defines the Settings dataclass that holds the manager's own
tuning knobs. Values are read from the local environment (env files and
process variables) so that the remote source can be configured before
anything is fetched.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from vaultline.config.fetch_config import RemoteSourceConfig, RetryPolicy

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "VAULTLINE_ACCESS_TOKEN"


@dataclass
class Settings:
    """Configuration settings for VAULTLINE.

    All settings have sensible defaults. An empty access token means the
    remote source is not configured and the manager runs local-only.

    Attributes:
        access_token: Bearer token for the secrets service
        app_name: Application name sent to the secrets service
        environment: Environment name sent to the secrets service
        base_url: Root URL of the secrets service
        timeout_seconds: Per-attempt request deadline
        max_attempts: Total fetch attempts, including the first
        retry_base_delay_seconds: Delay before the first retry
        retry_max_delay_seconds: Upper bound for any single retry delay
        retry_backoff_multiplier: Delay growth factor per attempt
    """

    access_token: str = field(default="", repr=False)
    app_name: str = ""
    environment: str = "development"
    base_url: str = "http://localhost:8080"

    timeout_seconds: float = 10.0
    max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 10.0
    retry_backoff_multiplier: float = 2.0

    # Config key to attribute mapping
    _key_mapping: dict[str, str] = field(
        default_factory=lambda: {
            ACCESS_TOKEN_KEY: "access_token",
            "VAULTLINE_APP_NAME": "app_name",
            "VAULTLINE_ENVIRONMENT": "environment",
            "VAULTLINE_BASE_URL": "base_url",
            "VAULTLINE_TIMEOUT_SECONDS": "timeout_seconds",
            "VAULTLINE_MAX_ATTEMPTS": "max_attempts",
            "VAULTLINE_RETRY_BASE_DELAY_SECONDS": "retry_base_delay_seconds",
            "VAULTLINE_RETRY_MAX_DELAY_SECONDS": "retry_max_delay_seconds",
            "VAULTLINE_RETRY_BACKOFF_MULTIPLIER": "retry_backoff_multiplier",
        },
        repr=False,
    )

    # Lower bounds for numeric settings: (minimum, inclusive)
    _bounds: dict[str, tuple[float, bool]] = field(
        default_factory=lambda: {
            "timeout_seconds": (0.0, False),
            "max_attempts": (1, True),
            "retry_base_delay_seconds": (0.0, True),
            "retry_max_delay_seconds": (0.0, True),
            "retry_backoff_multiplier": (1.0, True),
        },
        repr=False,
    )

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> Settings:
        """Build settings from raw key/value pairs.

        Unknown keys are ignored. Values that fail to parse or fall out of
        bounds are logged and the default is kept.
        """
        settings = cls()
        for key, value in values.items():
            settings.apply_value(key, value)
        return settings

    def apply_value(self, key: str, value: str) -> None:
        """Apply a raw config value to the matching attribute.

        Args:
            key: Configuration key
            value: Raw string value
        """
        attr = self.get_attribute_for_key(key)
        if attr is None:
            return  # Unknown key, ignore

        value = value.strip()
        current_value = getattr(self, attr)

        if isinstance(current_value, int):
            try:
                parsed: float = int(value)
            except ValueError:
                logger.warning("Invalid integer for %s: '%s', using default %s", key, value, current_value)
                return
        elif isinstance(current_value, float):
            try:
                parsed = float(value)
            except ValueError:
                logger.warning("Invalid number for %s: '%s', using default %s", key, value, current_value)
                return
            if not math.isfinite(parsed):
                logger.warning("%s must be a finite number, got %s, using default %s", key, value, current_value)
                return
        else:
            setattr(self, attr, value)
            return

        minimum, inclusive = self._bounds[attr]
        if parsed < minimum or (not inclusive and parsed == minimum):
            bound = ">=" if inclusive else ">"
            logger.warning(
                "%s must be %s %s, got %s, using default %s", key, bound, minimum, parsed, current_value
            )
            return
        setattr(self, attr, parsed)

    def get_attribute_for_key(self, key: str) -> str | None:
        """Get the attribute name for a config key, or None if unknown."""
        return self._key_mapping.get(key)

    @classmethod
    def get_config_keys(cls) -> list[str]:
        """Get list of all valid configuration keys."""
        temp = cls()
        return list(temp._key_mapping.keys())

    @property
    def remote_configured(self) -> bool:
        """Whether an access token is available."""
        return bool(self.access_token.strip())

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy for the remote client.

        A max delay below the base delay is raised to the base delay.
        """
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay_seconds=self.retry_base_delay_seconds,
            max_delay_seconds=max(self.retry_max_delay_seconds, self.retry_base_delay_seconds),
            backoff_multiplier=self.retry_backoff_multiplier,
        )

    def remote_source_config(self, default_app_name: str = "") -> RemoteSourceConfig | None:
        """Build the remote source identity, or None when no token is set.

        Args:
            default_app_name: Used when VAULTLINE_APP_NAME is not set
        """
        if not self.remote_configured:
            return None
        app_name = self.app_name.strip() or default_app_name.strip()
        if not app_name:
            logger.warning("No application name available; remote fetch disabled")
            return None
        return RemoteSourceConfig(
            access_token=self.access_token.strip(),
            application_name=app_name,
            environment=self.environment.strip(),
        )


__all__ = [
    "ACCESS_TOKEN_KEY",
    "Settings",
]
