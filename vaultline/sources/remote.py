"""Remote secrets client with bounded retry and cache fallback.

This module provides RemoteConfigClient for fetching an application's
secrets from the remote secrets service over HTTPS.

Fetch flow:
    1. A fresh cache entry is returned without any network call
    2. Otherwise up to RetryPolicy.max_attempts requests are made, each
       bounded by its own deadline, with exponential backoff between
       retryable failures
    3. If every attempt fails and a cached entry exists (even expired),
       the cached values are served and the failure is recorded
    4. Otherwise the classified ConfigError is raised

Resource Management:
    RemoteConfigClient manages a shared HTTP client for connection pooling.
    Use as an async context manager for proper cleanup:

        async with RemoteConfigClient(base_url) as client:
            snapshot = await client.fetch(remote_config)

Testability:
    The client supports an injected sleeper callable and an httpx
    transport, so tests run without real delays or sockets.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx

from vaultline.config.fetch_config import RemoteSourceConfig, RetryPolicy
from vaultline.models import ConfigSnapshot, ConfigSource
from vaultline.sources.cache import ConfigCache
from vaultline.sources.errors import ConfigError, ErrorKind, classify_error
from vaultline.utils.retry import calculate_backoff_delay

logger = logging.getLogger(__name__)

SECRETS_PATH = "/v1/secrets"
DEFAULT_TIMEOUT_SECONDS = 10.0

# Type alias for async sleep functions (for dependency injection in tests)
AsyncSleeper = Callable[[float], Awaitable[None]]


def parse_secrets(payload: Any) -> dict[str, str]:
    """Extract key/value pairs from a secrets response body.

    Expected shape: ``{"secrets": [{"key": "...", "value": "..."}, ...]}``.
    Entries with an empty key or value are skipped; values are coerced to str.

    Raises:
        ValueError: If the body does not have the expected shape
    """
    if not isinstance(payload, Mapping):
        raise ValueError("Malformed secrets response: expected a JSON object")

    secrets = payload.get("secrets")
    if not isinstance(secrets, list):
        raise ValueError("Malformed secrets response: 'secrets' must be a list")

    values: dict[str, str] = {}
    for item in secrets:
        if not isinstance(item, Mapping):
            continue
        key = item.get("key")
        value = item.get("value")
        if not key or value is None or value == "":
            continue
        values[str(key)] = str(value)
    return values


class RemoteConfigClient:
    """Fetches secrets for one application from the remote service.

    Attributes:
        base_url: Root URL of the secrets service
        retry_policy: Attempt count and backoff settings
        timeout_seconds: Deadline for a single attempt
        last_error: Failure recorded when stale cached values were served
    """

    def __init__(
        self,
        base_url: str,
        *,
        retry_policy: RetryPolicy | None = None,
        cache: ConfigCache | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        sleeper: AsyncSleeper | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Root URL of the secrets service
            retry_policy: Retry settings (default: RetryPolicy())
            cache: Cache for the last successful fetch (default: new 5 minute cache)
            timeout_seconds: Per-attempt deadline in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
            sleeper: Async sleep function for backoff delays (default: asyncio.sleep)
        """
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {timeout_seconds}")
        self.base_url = base_url.rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout_seconds = timeout_seconds
        self.last_error: ConfigError | None = None
        self._cache = cache if cache is not None else ConfigCache()
        self._transport = transport
        self._sleeper = sleeper or asyncio.sleep
        self._http_client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._requests = 0
        self._failures = 0
        self._stale_served = 0
        self._empty_responses = 0

    async def __aenter__(self) -> RemoteConfigClient:
        """Enter async context manager, ensuring HTTP client is initialized."""
        await self._get_http_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, closing HTTP client."""
        await self.close()

    async def close(self) -> None:
        """Close the shared HTTP client. Safe to call multiple times."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        Uses double-check locking so concurrent first fetches share one client.
        """
        if self._http_client is None:
            async with self._client_lock:
                if self._http_client is None:
                    self._http_client = httpx.AsyncClient(
                        timeout=httpx.Timeout(self.timeout_seconds),
                        transport=self._transport,
                    )
        return self._http_client

    @property
    def cache(self) -> ConfigCache:
        """Cache holding the last successful fetch."""
        return self._cache

    async def fetch(
        self,
        config: RemoteSourceConfig,
        *,
        force_refresh: bool = False,
    ) -> ConfigSnapshot:
        """Fetch the application's secrets.

        Args:
            config: Token, application and environment to fetch for
            force_refresh: Skip the fresh-cache shortcut

        Returns:
            Snapshot with source REMOTE (fresh or cache-fresh) or CACHED
            (stale values served after every attempt failed)

        Raises:
            ConfigError: If every attempt failed and no usable cache entry exists
        """
        if not force_refresh and self._cache.is_fresh():
            entry = self._cache.get()
            if entry is not None:
                logger.debug("Serving %d remote values from fresh cache", len(entry.snapshot))
                return ConfigSnapshot(entry.snapshot, ConfigSource.REMOTE, entry.fetched_at)

        try:
            values = await self._fetch_with_retry(config)
        except ConfigError as error:
            self._failures += 1
            entry = self._cache.get()
            if entry is None or not error.retryable:
                raise

            self.last_error = error
            self._stale_served += 1
            logger.warning(
                "Serving cached configuration (age %s) after fetch failure: %s",
                entry.age(),
                error.message,
            )
            return ConfigSnapshot(entry.snapshot, ConfigSource.CACHED, entry.fetched_at)

        self.last_error = None
        entry = self._cache.put(values)
        if not values:
            self._empty_responses += 1
            logger.info(
                "Secrets service returned no secrets for %s (%s)",
                config.application_name,
                config.environment or "default environment",
            )
        else:
            logger.info("Fetched %d secrets for %s", len(values), config.application_name)
        return ConfigSnapshot(entry.snapshot, ConfigSource.REMOTE, entry.fetched_at)

    async def _fetch_with_retry(self, config: RemoteSourceConfig) -> dict[str, str]:
        """Execute the request with exponential backoff retry.

        Retry Policy:
            - Retries on timeouts, network errors and 500/502/503/504
            - Retries on 429 Too Many Requests (respects Retry-After header)
            - Does NOT retry on authentication failures, other client
              errors or malformed bodies

        Raises:
            ConfigError: The last classified failure, chained to its cause
        """
        http_client = await self._get_http_client()
        max_attempts = self.retry_policy.max_attempts

        for attempt in range(1, max_attempts + 1):
            try:
                return await self._request(http_client, config)
            except (httpx.HTTPError, TimeoutError, ValueError) as e:
                error = classify_error(e)
                if not error.retryable or attempt == max_attempts:
                    logger.warning(
                        "Fetching secrets failed (%s) on attempt %d/%d: %s",
                        error.kind.value,
                        attempt,
                        max_attempts,
                        error.message,
                    )
                    raise error from e

                delay = calculate_backoff_delay(attempt, self.retry_policy)
                if error.kind is ErrorKind.RATE_LIMIT and error.retry_after is not None:
                    delay = min(max(delay, error.retry_after), self.retry_policy.max_delay_seconds)

                logger.warning(
                    "Fetching secrets failed (%s), attempt %d/%d. Retrying in %.2fs",
                    error.kind.value,
                    attempt,
                    max_attempts,
                    delay,
                )
                await self._sleeper(delay)

        # Unreachable: the loop either returns or raises on the last attempt
        raise ConfigError("Retry loop exited without a result")

    async def _request(
        self,
        http_client: httpx.AsyncClient,
        config: RemoteSourceConfig,
    ) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {config.access_token}",
            "Content-Type": "application/json",
            "X-App-Name": config.application_name,
        }
        if config.environment:
            headers["X-Environment"] = config.environment

        self._requests += 1
        async with asyncio.timeout(self.timeout_seconds):
            response = await http_client.get(f"{self.base_url}{SECRETS_PATH}", headers=headers)
            response.raise_for_status()
            return parse_secrets(response.json())

    def stats(self) -> dict[str, int]:
        """Get request and fallback counters."""
        return {
            "requests": self._requests,
            "failures": self._failures,
            "stale_served": self._stale_served,
            "empty_responses": self._empty_responses,
            **{f"cache_{name}": count for name, count in self._cache.stats().items()},
        }


__all__ = [
    "AsyncSleeper",
    "DEFAULT_TIMEOUT_SECONDS",
    "RemoteConfigClient",
    "SECRETS_PATH",
    "parse_secrets",
]
