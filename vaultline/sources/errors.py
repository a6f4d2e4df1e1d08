"""Typed configuration errors and the error classifier.

This module defines the error taxonomy for configuration acquisition:
- ErrorKind: Category of a failure
- ConfigError: Typed error carrying kind, HTTP status and retryability
- ConfigValidationError: Aggregated validation failure

and the pure mapping functions that turn transport failures and HTTP
status codes into ConfigError values:
- classify_status: HTTP status code -> ConfigError
- classify_error: Any raised exception -> ConfigError
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import ClassVar

import httpx

from vaultline.utils.errors import ExitCode, VaultlineError
from vaultline.utils.retry import parse_retry_after

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_TOO_MANY_REQUESTS = 429

# Gateway and availability failures worth retrying
RETRYABLE_SERVER_STATUSES = frozenset({500, 502, 503, 504})


class ErrorKind(Enum):
    """Category of a configuration acquisition failure."""

    AUTHENTICATION = "authentication"
    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class ConfigError(VaultlineError):
    """Raised when configuration cannot be acquired.

    Instances are produced by the classifier and never mutated afterwards.

    Attributes:
        kind: Category of the failure
        http_status: HTTP status code, if the failure was an HTTP response
        retryable: Whether another attempt may succeed
        occurred_at: When the failure was classified (UTC)
        retry_after: Server-requested delay in seconds (429 responses)
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.REMOTE_UNAVAILABLE

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        http_status: int | None = None,
        retryable: bool = False,
        occurred_at: datetime | None = None,
        retry_after: float | None = None,
    ) -> None:
        """Initialize ConfigError.

        Args:
            message: Human-readable description
            kind: Category of the failure
            http_status: Optional HTTP status code
            retryable: Whether the failure is transient
            occurred_at: Optional timestamp (defaults to now)
            retry_after: Optional server-requested delay in seconds
        """
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.http_status = http_status
        self.retryable = retryable
        self.occurred_at = occurred_at or datetime.now(UTC)
        self.retry_after = retry_after

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"http_status={self.http_status!r}, retryable={self.retryable!r}, "
            f"message={self.message!r})"
        )


class ConfigValidationError(ConfigError):
    """Raised when a configuration snapshot violates validation rules.

    The message lists every violated rule, one per line.

    Attributes:
        errors: All validation messages, in rule order
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.CONFIG_INVALID

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        message = "Configuration validation failed:\n" + "\n".join(self.errors)
        super().__init__(message, kind=ErrorKind.VALIDATION, retryable=False)


def classify_status(status_code: int, retry_after: float | None = None) -> ConfigError:
    """Map a non-2xx HTTP status code to a ConfigError.

    Args:
        status_code: HTTP status code of the response
        retry_after: Parsed Retry-After delay, kept for 429 responses

    Returns:
        Classified ConfigError
    """
    if status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
        return ConfigError(
            f"Authentication failed ({status_code}); check the access token and its permissions",
            kind=ErrorKind.AUTHENTICATION,
            http_status=status_code,
            retryable=False,
        )
    if status_code == HTTP_TOO_MANY_REQUESTS:
        return ConfigError(
            "Rate limit exceeded on the secrets service",
            kind=ErrorKind.RATE_LIMIT,
            http_status=status_code,
            retryable=True,
            retry_after=retry_after,
        )
    if status_code in RETRYABLE_SERVER_STATUSES:
        return ConfigError(
            f"Secrets service unavailable ({status_code})",
            kind=ErrorKind.SERVER_ERROR,
            http_status=status_code,
            retryable=True,
        )
    return ConfigError(
        f"Unexpected response from secrets service ({status_code})",
        kind=ErrorKind.UNKNOWN,
        http_status=status_code,
        retryable=status_code >= 500,
    )


def classify_error(error: BaseException) -> ConfigError:
    """Map a raised exception to a ConfigError.

    Rules:
        - ConfigError: returned unchanged
        - Deadline exceeded (httpx or asyncio timeout): TIMEOUT, retryable
        - Connection refused, name resolution and other transport
          failures: NETWORK, retryable
        - HTTP status errors: see classify_status
        - Anything else (e.g. malformed body): UNKNOWN, not retryable

    No side effects.
    """
    if isinstance(error, ConfigError):
        return error

    # httpx.TimeoutException is a TransportError, so check it first
    if isinstance(error, httpx.TimeoutException | TimeoutError):
        return ConfigError(
            "Request to secrets service timed out",
            kind=ErrorKind.TIMEOUT,
            retryable=True,
        )

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return classify_status(
            response.status_code,
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
        )

    if isinstance(error, httpx.TransportError):
        return ConfigError(
            f"Network error contacting secrets service: {error}",
            kind=ErrorKind.NETWORK,
            retryable=True,
        )

    return ConfigError(
        f"Unexpected error fetching configuration: {error}",
        kind=ErrorKind.UNKNOWN,
        retryable=False,
    )


__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "ErrorKind",
    "HTTP_TOO_MANY_REQUESTS",
    "RETRYABLE_SERVER_STATUSES",
    "classify_error",
    "classify_status",
]
