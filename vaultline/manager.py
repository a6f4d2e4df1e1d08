"""Configuration manager for VAULTLINE.

The ConfigManager owns the configuration lifecycle of an application:

    1. Load the local environment (env files + process variables)
    2. Read VAULTLINE_* settings from it and, if an access token is
       present, fetch secrets from the remote service
    3. Merge remote and local values (process variables win)
    4. Validate the result against the application's rules
    5. Publish the snapshot for get()/get_all()

The manager is an explicit object created once at application bootstrap
and passed to the code that needs configuration:

    async with ConfigManager(rules) as config:
        database_url = config.get("DATABASE_URL")

States:
    UNINITIALIZED -> INITIALIZING -> READY | DEGRADED

DEGRADED means values are being served but the last fetch failed and
fallback values (local-only or stale cache) are in use.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import httpx

from vaultline.config.fetch_config import RemoteSourceConfig
from vaultline.config.settings import ACCESS_TOKEN_KEY, Settings
from vaultline.merge import merge
from vaultline.models import ConfigSnapshot, ConfigSource
from vaultline.sources.cache import DEFAULT_CACHE_TTL, ConfigCache
from vaultline.sources.errors import ConfigError, ConfigValidationError, ErrorKind
from vaultline.sources.local import DotEnvSource, LocalEnvironment, LocalSource
from vaultline.sources.remote import RemoteConfigClient
from vaultline.utils.errors import ManagerNotInitializedError, VaultlineError
from vaultline.utils.logging import log_message
from vaultline.validation import ValidationRule, validate

logger = logging.getLogger(__name__)


class ManagerState(Enum):
    """Lifecycle state of a ConfigManager."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class HealthStatus:
    """Health report for readiness checks.

    Attributes:
        healthy: False when the last fetch failed and fallback values are served
        initialized: Whether a snapshot is published
        last_error: Failure behind the current degraded state, if any
        state: Current lifecycle state
    """

    healthy: bool
    initialized: bool
    last_error: ConfigError | None = None
    state: ManagerState = ManagerState.UNINITIALIZED


@dataclass(frozen=True)
class ManagerStats:
    """Point-in-time statistics of a ConfigManager.

    Attributes:
        initialized: Whether a snapshot is published
        config_count: Number of keys in the published snapshot
        remote_configured: Whether an access token was found locally
        cache_enabled: Whether fresh remote values are reused within the TTL
        last_refresh: When the current snapshot was published (UTC)
        last_error: Failure behind the current degraded state, if any
        healthy: Same as HealthStatus.healthy
        state: Current lifecycle state
        source: Origin of the published snapshot
        token_source: Where the access token came from ("process" or a file path)
        loaded_files: Env files read during the last load
        client: Remote client counters
    """

    initialized: bool
    config_count: int
    remote_configured: bool
    cache_enabled: bool
    last_refresh: datetime | None
    last_error: ConfigError | None
    healthy: bool
    state: ManagerState
    source: ConfigSource | None = None
    token_source: str | None = None
    loaded_files: tuple[str, ...] = ()
    client: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain, display-friendly representation."""
        return {
            "initialized": self.initialized,
            "config_count": self.config_count,
            "remote_configured": self.remote_configured,
            "cache_enabled": self.cache_enabled,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
            "last_error": self.last_error.message if self.last_error else None,
            "healthy": self.healthy,
            "state": self.state.value,
            "source": self.source.value if self.source else None,
            "token_source": self.token_source,
            "loaded_files": list(self.loaded_files),
            **self.client,
        }


@dataclass
class Diagnostics:
    """Human-oriented summary of the manager's situation.

    Attributes:
        summary: One-line description of the current state
        details: Facts behind the summary
        recommendations: Suggested actions, most important first
    """

    summary: str
    details: dict[str, Any] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)


class ConfigManager:
    """Loads, merges, validates and serves application configuration.

    Attributes:
        enable_caching: Reuse fresh remote values within the cache TTL
        fallback_to_local: Serve local-only values when the remote source fails
    """

    def __init__(
        self,
        rules: Iterable[ValidationRule] = (),
        *,
        local_source: LocalSource | None = None,
        client: RemoteConfigClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        enable_caching: bool = True,
        cache_ttl: timedelta = DEFAULT_CACHE_TTL,
        fallback_to_local: bool = True,
    ) -> None:
        """Initialize the manager. No I/O happens until initialize().

        Args:
            rules: Validation rules applied to every snapshot
            local_source: Local configuration provider (default: DotEnvSource())
            client: Remote client (default: built from VAULTLINE_* settings)
            transport: httpx transport for the default client (tests)
            enable_caching: Reuse fresh remote values within cache_ttl
            cache_ttl: Cache time-to-live (default: 5 minutes)
            fallback_to_local: Serve local-only values when the remote source fails

        Note:
            An injected client brings its own cache; cache_ttl and
            enable_caching then only control background refresh.
        """
        self._rules = tuple(rules)
        self._local_source = local_source or DotEnvSource()
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self.enable_caching = enable_caching
        self.fallback_to_local = fallback_to_local

        if client is not None:
            self._cache = client.cache
        else:
            # TTL zero disables the fresh-cache shortcut but keeps stale fallback
            self._cache = ConfigCache(cache_ttl if enable_caching else timedelta(0))

        self._state = ManagerState.UNINITIALIZED
        self._snapshot: ConfigSnapshot | None = None
        self._last_error: ConfigError | None = None
        self._last_refresh: datetime | None = None
        self._last_attempt: datetime | None = None
        self._local: LocalEnvironment | None = None
        self._settings: Settings | None = None
        self._remote_config: RemoteSourceConfig | None = None
        self._init_task: asyncio.Task[None] | None = None
        self._refresh_task: asyncio.Task[None] | None = None
        # Bumped by destroy(); results of older refreshes are discarded
        self._generation = 0

    async def __aenter__(self) -> ConfigManager:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.destroy()

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def snapshot(self) -> ConfigSnapshot | None:
        """Currently published snapshot, or None before initialization."""
        return self._snapshot

    @property
    def healthy(self) -> bool:
        return self._state is ManagerState.READY and self._last_error is None

    @property
    def local_environment(self) -> LocalEnvironment | None:
        """Local environment from the last load."""
        return self._local

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Acquire, validate and publish the configuration.

        Concurrent calls share a single in-flight initialization. Calling
        this on an initialized manager is a no-op.

        Raises:
            ConfigValidationError: If no acceptable snapshot could be built
            ConfigError: If the remote fetch failed and fallback is disabled
        """
        if self._state in (ManagerState.READY, ManagerState.DEGRADED):
            return

        if self._init_task is None:
            self._state = ManagerState.INITIALIZING
            self._init_task = asyncio.create_task(self._initialize())

        task = self._init_task
        try:
            await asyncio.shield(task)
        finally:
            if task.done() and self._init_task is task:
                self._init_task = None

    async def _initialize(self) -> None:
        log_message("Initializing configuration manager")
        try:
            snapshot, error = await self._acquire(force_refresh=False, allow_fallback=True)
        except BaseException as e:
            self._state = ManagerState.UNINITIALIZED
            log_message(f"Configuration initialization failed: {e}", logging.WARNING)
            raise

        self._publish(snapshot, error)
        log_message(
            f"Configuration manager {self._state.value} "
            f"({len(snapshot)} values, source: {snapshot.source.value})"
        )

    async def refresh(self) -> None:
        """Re-fetch, merge and validate, then swap the published snapshot.

        Always bypasses the fresh-cache shortcut. On failure the previous
        snapshot stays published.

        Raises:
            ManagerNotInitializedError: If called before initialize() completed
            ConfigError: If the refresh failed and fallback is disabled
        """
        if self._snapshot is None:
            raise ManagerNotInitializedError("Cannot refresh before initialize() has completed")

        generation = self._generation
        try:
            snapshot, error = await self._acquire(force_refresh=True, allow_fallback=False)
        except ConfigError as e:
            if generation != self._generation:
                logger.debug("Manager destroyed during refresh, ignoring failure (%s)", e.kind.value)
                return
            self._last_error = e
            if not self.fallback_to_local:
                logger.warning("Configuration refresh failed (%s)", e.kind.value)
                raise
            self._state = ManagerState.DEGRADED
            logger.warning(
                "Configuration refresh failed (%s); keeping previous snapshot", e.kind.value
            )
            return

        if generation != self._generation:
            logger.debug("Manager destroyed during refresh, discarding %d values", len(snapshot))
            return

        self._publish(snapshot, error)
        logger.info("Configuration refreshed (%d values, state: %s)", len(snapshot), self._state.value)

    async def destroy(self) -> None:
        """Clear the cache, close the remote client and reset to UNINITIALIZED.

        Waits for an in-flight initialization to settle first.
        """
        if self._init_task is not None:
            await asyncio.wait([self._init_task])
            self._init_task = None
        self._generation += 1

        refresh_task = self._refresh_task
        self._refresh_task = None
        if refresh_task is not None and not refresh_task.done():
            refresh_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await refresh_task

        self._cache.clear()
        if self._client is not None:
            await self._client.close()
            if self._owns_client:
                self._client = None

        self._state = ManagerState.UNINITIALIZED
        self._snapshot = None
        self._last_error = None
        self._last_refresh = None
        self._last_attempt = None
        self._local = None
        self._settings = None
        self._remote_config = None
        log_message("Configuration manager destroyed")

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get one configuration value.

        May schedule a background refresh when the snapshot is older than
        the cache TTL.

        Raises:
            ManagerNotInitializedError: If no snapshot is published yet
        """
        snapshot = self._require_snapshot()
        self._maybe_schedule_refresh()
        return snapshot.get(key, default)

    def get_all(self) -> dict[str, str]:
        """Get a copy of all configuration values.

        Raises:
            ManagerNotInitializedError: If no snapshot is published yet
        """
        snapshot = self._require_snapshot()
        self._maybe_schedule_refresh()
        return snapshot.to_dict()

    def get_health_status(self) -> HealthStatus:
        return HealthStatus(
            healthy=self.healthy,
            initialized=self._snapshot is not None,
            last_error=self._last_error,
            state=self._state,
        )

    def get_stats(self) -> ManagerStats:
        """Collect statistics for monitoring and the CLI."""
        local = self._local
        return ManagerStats(
            initialized=self._snapshot is not None,
            config_count=len(self._snapshot) if self._snapshot is not None else 0,
            remote_configured=self._remote_config is not None,
            cache_enabled=self.enable_caching,
            last_refresh=self._last_refresh,
            last_error=self._last_error,
            healthy=self.healthy,
            state=self._state,
            source=self._snapshot.source if self._snapshot is not None else None,
            token_source=local.source_of(ACCESS_TOKEN_KEY) if local else None,
            loaded_files=tuple(str(p) for p in local.loaded_files) if local else (),
            client=self._client.stats() if self._client is not None else {},
        )

    def get_diagnostics(self) -> Diagnostics:
        """Explain the current state and suggest fixes."""
        stats = self.get_stats()
        details: dict[str, Any] = {
            "state": stats.state.value,
            "environment": self._local.environment if self._local else None,
            "loaded_files": list(stats.loaded_files),
            "token_source": stats.token_source,
            "remote_configured": stats.remote_configured,
            "source": stats.source.value if stats.source else None,
            "config_count": stats.config_count,
        }
        cache_age = self._cache.age()
        if cache_age is not None:
            details["cache_age_seconds"] = round(cache_age.total_seconds(), 1)

        recommendations: list[str] = []
        if self._local is not None and not stats.remote_configured:
            recommendations.append(
                f"Set {ACCESS_TOKEN_KEY} to load secrets from the remote secrets service"
            )
        if self._local is not None and not self._local.loaded_files:
            recommendations.append("Create a .env.local file for local development settings")

        error = self._last_error
        if error is not None:
            details["last_error"] = error.message
            details["last_error_kind"] = error.kind.value
            if error.kind is ErrorKind.AUTHENTICATION:
                recommendations.append(
                    "Check that the access token is valid and has access to this application"
                )
            elif error.kind is ErrorKind.VALIDATION:
                recommendations.append("Fix the configuration values listed in the last error")
            else:
                base_url = self._settings.base_url if self._settings else "the configured URL"
                recommendations.append(
                    f"Check that the secrets service at {base_url} is reachable"
                )

        if stats.state is ManagerState.UNINITIALIZED:
            summary = "Not initialized"
        elif stats.state is ManagerState.INITIALIZING:
            summary = "Initializing"
        elif stats.healthy:
            source = stats.source.value if stats.source else "unknown"
            summary = f"Ready: {stats.config_count} values from {source}"
        else:
            reason = error.kind.value if error else "unknown"
            summary = f"Degraded: serving fallback configuration ({reason})"

        return Diagnostics(summary=summary, details=details, recommendations=recommendations)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_snapshot(self) -> ConfigSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise ManagerNotInitializedError()
        return snapshot

    def _default_app_name(self) -> str:
        root = self._local_source.root
        return root.name if root is not None else ""

    def _get_client(self, settings: Settings) -> RemoteConfigClient:
        if self._client is None:
            self._client = RemoteConfigClient(
                settings.base_url,
                retry_policy=settings.retry_policy(),
                cache=self._cache,
                timeout_seconds=settings.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def _acquire(
        self,
        *,
        force_refresh: bool,
        allow_fallback: bool,
    ) -> tuple[ConfigSnapshot, ConfigError | None]:
        """Build and validate a new snapshot without publishing it.

        Args:
            force_refresh: Bypass the fresh-cache shortcut
            allow_fallback: Downgrade to a local-only snapshot on remote
                failure (when fallback_to_local is enabled)

        Returns:
            (snapshot, error) where error is the failure behind a fallback
            snapshot, or None for a healthy one
        """
        self._last_attempt = datetime.now(UTC)
        local = self._local_source.load()
        settings = Settings.from_mapping(local.combined())
        remote_config = settings.remote_source_config(self._default_app_name())
        self._local, self._settings, self._remote_config = local, settings, remote_config

        if remote_config is None:
            logger.info("No access token configured, using local configuration only")
            return self._local_only(local), None

        fallback = allow_fallback and self.fallback_to_local
        client = self._get_client(settings)
        try:
            remote = await client.fetch(remote_config, force_refresh=force_refresh)
        except ConfigError as e:
            if not fallback:
                raise
            logger.warning(
                "Remote configuration unavailable (%s), falling back to local configuration",
                e.kind.value,
            )
            return self._local_only(local, cause=e), e

        snapshot = merge(remote.values, local, remote.source)
        result = validate(snapshot, self._rules)
        if result.valid:
            error = client.last_error if remote.source is ConfigSource.CACHED else None
            return snapshot, error

        validation_error = ConfigValidationError(result.errors)
        if not fallback:
            raise validation_error

        logger.warning(
            "Remote configuration failed validation (%d errors), falling back to local configuration",
            len(result.errors),
        )
        return self._local_only(local, cause=validation_error), validation_error

    def _local_only(
        self,
        local: LocalEnvironment,
        cause: ConfigError | None = None,
    ) -> ConfigSnapshot:
        snapshot = merge(None, local, ConfigSource.LOCAL_FALLBACK)
        result = validate(snapshot, self._rules)
        if not result.valid:
            raise ConfigValidationError(result.errors) from cause
        return snapshot

    def _publish(self, snapshot: ConfigSnapshot, error: ConfigError | None) -> None:
        # Single reference swap; readers never see a partial snapshot
        self._snapshot = snapshot
        self._last_error = error
        self._last_refresh = datetime.now(UTC)
        self._state = ManagerState.READY if error is None else ManagerState.DEGRADED

    def _maybe_schedule_refresh(self) -> None:
        if not self.enable_caching or self._remote_config is None:
            return
        if self._refresh_task is not None or self._last_attempt is None:
            return
        if datetime.now(UTC) - self._last_attempt < self._cache.ttl:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # No event loop, nothing to schedule on

        logger.debug("Configuration older than %s, scheduling background refresh", self._cache.ttl)
        self._refresh_task = loop.create_task(self._background_refresh())

    async def _background_refresh(self) -> None:
        try:
            await self.refresh()
        except VaultlineError as e:
            logger.warning("Background configuration refresh failed: %s", e)
        finally:
            self._refresh_task = None


__all__ = [
    "ConfigManager",
    "Diagnostics",
    "HealthStatus",
    "ManagerState",
    "ManagerStats",
]
