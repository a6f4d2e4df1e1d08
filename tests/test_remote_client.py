"""Tests for vaultline.sources.remote module.

Tests cover:
- Request shape (URL, headers)
- Response parsing and malformed bodies
- Retry logic with exponential backoff and Retry-After
- Fresh-cache short-circuit and stale-cache fallback
- Per-attempt timeout
- Client statistics and resource cleanup
"""

from __future__ import annotations

import asyncio
import time
from datetime import timedelta

import httpx
import pytest

from tests.helpers import BASE_URL, SecretsEndpoint, endpoint_for, secrets_body
from vaultline.config.fetch_config import RemoteSourceConfig, RetryPolicy
from vaultline.models import ConfigSource
from vaultline.sources.cache import ConfigCache
from vaultline.sources.errors import ConfigError, ErrorKind
from vaultline.sources.remote import RemoteConfigClient, parse_secrets


class RecordingSleeper:
    """Async sleeper that records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_client(
    endpoint: SecretsEndpoint,
    retry_policy: RetryPolicy | None = None,
    cache: ConfigCache | None = None,
    **kwargs,
) -> RemoteConfigClient:
    return RemoteConfigClient(
        BASE_URL,
        retry_policy=retry_policy or RetryPolicy(base_delay_seconds=0.0, max_delay_seconds=0.0),
        cache=cache,
        transport=endpoint.transport(),
        **kwargs,
    )


# =============================================================================
# Parsing
# =============================================================================


class TestParseSecrets:
    """Tests for parse_secrets()."""

    def test_parses_key_value_entries(self):
        payload = secrets_body({"A": "1", "B": "2"})

        assert parse_secrets(payload) == {"A": "1", "B": "2"}

    def test_skips_entries_missing_key_or_value(self):
        payload = {
            "secrets": [
                {"key": "A", "value": "1"},
                {"key": "B"},
                {"value": "orphan"},
                {"key": "", "value": "empty-key"},
                {"key": "C", "value": None},
                "not-an-object",
            ]
        }

        assert parse_secrets(payload) == {"A": "1"}

    def test_coerces_values_to_strings(self):
        payload = {"secrets": [{"key": "PORT", "value": 8080}]}

        assert parse_secrets(payload) == {"PORT": "8080"}

    def test_empty_value_is_skipped(self):
        payload = {"secrets": [{"key": "A", "value": ""}, {"key": "B", "value": "set"}]}

        assert parse_secrets(payload) == {"B": "set"}

    @pytest.mark.parametrize("payload", [[], "text", {"items": []}, {"secrets": "nope"}])
    def test_malformed_body_raises_value_error(self, payload):
        with pytest.raises(ValueError, match="Malformed secrets response"):
            parse_secrets(payload)


# =============================================================================
# Request shape
# =============================================================================


class TestRequest:
    """Tests for the HTTP request sent to the secrets service."""

    @pytest.mark.asyncio
    async def test_sends_expected_url_and_headers(self, remote_config):
        endpoint = endpoint_for([{"A": "1"}])
        async with make_client(endpoint) as client:
            await client.fetch(remote_config)

        request = endpoint.requests[0]
        assert request.method == "GET"
        assert str(request.url) == f"{BASE_URL}/v1/secrets"
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["X-App-Name"] == "test-app"
        assert request.headers["X-Environment"] == "staging"

    @pytest.mark.asyncio
    async def test_environment_header_omitted_when_empty(self):
        endpoint = endpoint_for([{"A": "1"}])
        config = RemoteSourceConfig(access_token="t", application_name="app")
        async with make_client(endpoint) as client:
            await client.fetch(config)

        assert "X-Environment" not in endpoint.requests[0].headers

    def test_trailing_slash_in_base_url_is_ignored(self):
        client = RemoteConfigClient(f"{BASE_URL}/")

        assert client.base_url == BASE_URL

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError, match="timeout_seconds"):
            RemoteConfigClient(BASE_URL, timeout_seconds=0)


# =============================================================================
# Success path
# =============================================================================


class TestFetchSuccess:
    """Tests for successful fetches."""

    @pytest.mark.asyncio
    async def test_returns_remote_snapshot(self, remote_config):
        endpoint = endpoint_for([{"DATABASE_URL": "postgres://db", "API_KEY": "k"}])
        async with make_client(endpoint) as client:
            snapshot = await client.fetch(remote_config)

        assert snapshot.source is ConfigSource.REMOTE
        assert snapshot.to_dict() == {"DATABASE_URL": "postgres://db", "API_KEY": "k"}

    @pytest.mark.asyncio
    async def test_stores_result_in_cache(self, remote_config):
        cache = ConfigCache()
        endpoint = endpoint_for([{"A": "1"}])
        async with make_client(endpoint, cache=cache) as client:
            await client.fetch(remote_config)

        entry = cache.get()
        assert entry is not None
        assert dict(entry.snapshot) == {"A": "1"}

    @pytest.mark.asyncio
    async def test_empty_secrets_list_is_success(self, remote_config):
        endpoint = endpoint_for([{}])
        async with make_client(endpoint) as client:
            snapshot = await client.fetch(remote_config)

            assert len(snapshot) == 0
            assert snapshot.source is ConfigSource.REMOTE
            assert client.stats()["empty_responses"] == 1


# =============================================================================
# Retry behaviour
# =============================================================================


class TestRetry:
    """Tests for retry with exponential backoff."""

    @pytest.mark.asyncio
    async def test_retries_until_success_and_waits_backoff(self, remote_config):
        """Retryable failures on all but the last attempt still yield a snapshot."""
        policy = RetryPolicy(
            max_attempts=3,
            base_delay_seconds=0.02,
            max_delay_seconds=0.1,
            backoff_multiplier=2.0,
        )
        endpoint = SecretsEndpoint(503, 503, secrets_body({"A": "1"}))

        async with make_client(endpoint, retry_policy=policy) as client:
            started = time.monotonic()
            snapshot = await client.fetch(remote_config)
            elapsed = time.monotonic() - started

        assert snapshot.to_dict() == {"A": "1"}
        assert endpoint.calls == 3
        # Backoff delays: 0.02 + 0.04
        assert elapsed >= 0.06 - 0.005
        assert elapsed < policy.max_delay_seconds * (policy.max_attempts - 1) + 1.0

    @pytest.mark.asyncio
    async def test_backoff_delays_grow_exponentially(self, remote_config):
        policy = RetryPolicy(max_attempts=4, base_delay_seconds=1.0, max_delay_seconds=3.0)
        sleeper = RecordingSleeper()
        endpoint = SecretsEndpoint(500, 500, 500, secrets_body({"A": "1"}))

        async with make_client(endpoint, retry_policy=policy, sleeper=sleeper) as client:
            await client.fetch(remote_config)

        assert sleeper.delays == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_authentication_error_is_not_retried(self, remote_config):
        endpoint = SecretsEndpoint(401)

        async with make_client(endpoint) as client:
            with pytest.raises(ConfigError) as exc_info:
                await client.fetch(remote_config)

        assert endpoint.calls == 1
        assert exc_info.value.kind is ErrorKind.AUTHENTICATION
        assert exc_info.value.retryable is False
        assert exc_info.value.http_status == 401

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, remote_config):
        endpoint = SecretsEndpoint(404)

        async with make_client(endpoint) as client:
            with pytest.raises(ConfigError) as exc_info:
                await client.fetch(remote_config)

        assert endpoint.calls == 1
        assert exc_info.value.kind is ErrorKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_last_error(self, remote_config, fast_retry):
        endpoint = SecretsEndpoint(502)

        async with make_client(endpoint, retry_policy=fast_retry) as client:
            with pytest.raises(ConfigError) as exc_info:
                await client.fetch(remote_config)

        assert endpoint.calls == fast_retry.max_attempts
        assert exc_info.value.kind is ErrorKind.SERVER_ERROR
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_network_error_is_retried(self, remote_config, fast_retry):
        endpoint = SecretsEndpoint(httpx.ConnectError("Connection refused"), secrets_body({"A": "1"}))

        async with make_client(endpoint, retry_policy=fast_retry) as client:
            snapshot = await client.fetch(remote_config)

        assert endpoint.calls == 2
        assert snapshot.get("A") == "1"

    @pytest.mark.asyncio
    async def test_rate_limit_waits_for_retry_after(self, remote_config):
        policy = RetryPolicy(max_attempts=2, base_delay_seconds=0.5, max_delay_seconds=10.0)
        sleeper = RecordingSleeper()
        endpoint = SecretsEndpoint((429, {"Retry-After": "4"}), secrets_body({"A": "1"}))

        async with make_client(endpoint, retry_policy=policy, sleeper=sleeper) as client:
            await client.fetch(remote_config)

        assert sleeper.delays == [4.0]

    @pytest.mark.asyncio
    async def test_rate_limit_delay_is_capped(self, remote_config):
        policy = RetryPolicy(max_attempts=2, base_delay_seconds=0.5, max_delay_seconds=2.0)
        sleeper = RecordingSleeper()
        endpoint = SecretsEndpoint((429, {"Retry-After": "120"}), secrets_body({"A": "1"}))

        async with make_client(endpoint, retry_policy=policy, sleeper=sleeper) as client:
            await client.fetch(remote_config)

        assert sleeper.delays == [2.0]

    @pytest.mark.asyncio
    async def test_malformed_body_is_not_retried(self, remote_config, fast_retry):
        endpoint = SecretsEndpoint(lambda request: httpx.Response(200, text="<html>oops</html>"))

        async with make_client(endpoint, retry_policy=fast_retry) as client:
            with pytest.raises(ConfigError) as exc_info:
                await client.fetch(remote_config)

        assert endpoint.calls == 1
        assert exc_info.value.kind is ErrorKind.UNKNOWN
        assert exc_info.value.retryable is False


# =============================================================================
# Timeout
# =============================================================================


class TestTimeout:
    """Tests for the per-attempt deadline."""

    @pytest.mark.asyncio
    async def test_slow_response_is_classified_as_timeout(self, remote_config):
        async def slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, json=secrets_body({"A": "1"}))

        endpoint = SecretsEndpoint(slow)
        policy = RetryPolicy(max_attempts=2, base_delay_seconds=0.0, max_delay_seconds=0.0)

        async with make_client(endpoint, retry_policy=policy, timeout_seconds=0.05) as client:
            with pytest.raises(ConfigError) as exc_info:
                await client.fetch(remote_config)

        assert exc_info.value.kind is ErrorKind.TIMEOUT
        assert exc_info.value.retryable is True
        assert endpoint.calls == 2


# =============================================================================
# Cache behaviour
# =============================================================================


class TestCache:
    """Tests for the fresh-cache short-circuit and stale fallback."""

    @pytest.mark.asyncio
    async def test_fresh_cache_skips_network(self, remote_config):
        endpoint = endpoint_for([{"A": "1"}])

        async with make_client(endpoint, cache=ConfigCache(ttl=timedelta(minutes=5))) as client:
            first = await client.fetch(remote_config)
            second = await client.fetch(remote_config)

        assert endpoint.calls == 1
        assert second.to_dict() == first.to_dict()
        assert second.captured_at == first.captured_at
        assert second.source is ConfigSource.REMOTE

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_fresh_cache(self, remote_config):
        endpoint = endpoint_for([{"A": "1"}, {"A": "2"}])

        async with make_client(endpoint) as client:
            await client.fetch(remote_config)
            refreshed = await client.fetch(remote_config, force_refresh=True)

        assert endpoint.calls == 2
        assert refreshed.get("A") == "2"

    @pytest.mark.asyncio
    async def test_stale_cache_served_after_retryable_failures(self, remote_config, fast_retry):
        """An expired entry backs the fetch when every attempt fails."""
        endpoint = SecretsEndpoint(secrets_body({"A": "1"}), 503)
        # TTL zero: the entry is expired as soon as it is stored
        cache = ConfigCache(ttl=timedelta(0))

        async with make_client(endpoint, retry_policy=fast_retry, cache=cache) as client:
            first = await client.fetch(remote_config)
            second = await client.fetch(remote_config)

            assert client.last_error is not None
            assert client.last_error.kind is ErrorKind.SERVER_ERROR
            assert client.stats()["stale_served"] == 1

        assert endpoint.calls == 1 + fast_retry.max_attempts
        assert second.source is ConfigSource.CACHED
        assert second.to_dict() == first.to_dict()
        assert second.captured_at == first.captured_at

    @pytest.mark.asyncio
    async def test_stale_cache_not_served_for_non_retryable_error(self, remote_config):
        endpoint = SecretsEndpoint(secrets_body({"A": "1"}), 403)

        async with make_client(endpoint, cache=ConfigCache(ttl=timedelta(0))) as client:
            await client.fetch(remote_config)
            with pytest.raises(ConfigError) as exc_info:
                await client.fetch(remote_config)

        assert exc_info.value.kind is ErrorKind.AUTHENTICATION

    @pytest.mark.asyncio
    async def test_failure_without_cache_propagates(self, remote_config, fast_retry):
        endpoint = SecretsEndpoint(503)

        async with make_client(endpoint, retry_policy=fast_retry) as client:
            with pytest.raises(ConfigError):
                await client.fetch(remote_config)

    @pytest.mark.asyncio
    async def test_success_clears_last_error(self, remote_config, fast_retry):
        endpoint = SecretsEndpoint(
            secrets_body({"A": "1"}), 503, 503, 503, secrets_body({"A": "2"})
        )

        cache = ConfigCache(ttl=timedelta(0))

        async with make_client(endpoint, retry_policy=fast_retry, cache=cache) as client:
            await client.fetch(remote_config)
            await client.fetch(remote_config)
            assert client.last_error is not None

            snapshot = await client.fetch(remote_config)

            assert client.last_error is None
            assert snapshot.get("A") == "2"


# =============================================================================
# Resources and stats
# =============================================================================


class TestLifecycle:
    """Tests for HTTP client management and statistics."""

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        client = make_client(endpoint_for([{}]))
        await client._get_http_client()

        await client.close()
        await client.close()

        assert client._http_client is None

    @pytest.mark.asyncio
    async def test_client_is_recreated_after_close(self, remote_config):
        endpoint = endpoint_for([{"A": "1"}])
        client = make_client(endpoint, cache=ConfigCache(ttl=timedelta(0)))

        await client.fetch(remote_config)
        await client.close()
        await client.fetch(remote_config)
        await client.close()

        assert endpoint.calls == 2

    @pytest.mark.asyncio
    async def test_stats_count_requests_and_failures(self, remote_config, fast_retry):
        endpoint = SecretsEndpoint(503, secrets_body({"A": "1"}))

        async with make_client(endpoint, retry_policy=fast_retry) as client:
            await client.fetch(remote_config)
            await client.fetch(remote_config)
            stats = client.stats()

        assert stats["requests"] == 2
        assert stats["failures"] == 0
        assert stats["cache_hits"] == 1
        assert stats["cache_entries"] == 1
