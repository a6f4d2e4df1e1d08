"""Remote fetch configuration for VAULTLINE.

This module defines the immutable value objects handed to the remote
client: where to fetch from (RemoteSourceConfig) and how hard to try
(RetryPolicy).

Validation:
    - RetryPolicy bounds are enforced at construction so a bad value
      fails fast instead of hanging startup
    - RemoteSourceConfig requires a non-empty token and application name
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings shared by all fetch attempts.

    Attributes:
        max_attempts: Total number of attempts, including the first one
        base_delay_seconds: Delay before the first retry
        max_delay_seconds: Upper bound for any single delay
        backoff_multiplier: Growth factor applied per attempt
        jitter_factor: Extra random delay as a fraction of the computed delay
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    backoff_multiplier: float = 2.0
    jitter_factor: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay_seconds < 0:
            raise ValueError(f"base_delay_seconds must be >= 0, got {self.base_delay_seconds}")
        if self.max_delay_seconds < 0:
            raise ValueError(f"max_delay_seconds must be >= 0, got {self.max_delay_seconds}")
        if self.backoff_multiplier < 1:
            raise ValueError(f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}")
        if self.jitter_factor < 0:
            raise ValueError(f"jitter_factor must be >= 0, got {self.jitter_factor}")


@dataclass(frozen=True)
class RemoteSourceConfig:
    """Identity of the remote configuration to fetch.

    Built once from the local environment at startup and never mutated.
    The access token is excluded from repr() to keep it out of logs.

    Attributes:
        access_token: Bearer token for the secrets service
        application_name: Application whose secrets are requested
        environment: Environment name (development, staging, production)
    """

    access_token: str = field(repr=False)
    application_name: str
    environment: str = ""

    def __post_init__(self) -> None:
        if not self.access_token.strip():
            raise ValueError("access_token must not be empty")
        if not self.application_name.strip():
            raise ValueError("application_name must not be empty")


__all__ = [
    "RemoteSourceConfig",
    "RetryPolicy",
]
