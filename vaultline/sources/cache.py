"""Caching layer for remotely fetched configuration.

The cache holds exactly one entry: the last successful remote snapshot.
A fresh entry lets the remote client skip the network entirely; an
expired entry is still handed out so the client can fall back to it
when the remote service is failing.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from types import MappingProxyType

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = timedelta(minutes=5)


@dataclass(frozen=True)
class CacheEntry:
    """Cached remote values with fetch metadata.

    Attributes:
        snapshot: Read-only copy of the fetched key/value pairs
        fetched_at: When the values were fetched (UTC)
    """

    snapshot: Mapping[str, str]
    fetched_at: datetime

    def age(self) -> timedelta:
        """Time elapsed since the values were fetched."""
        return datetime.now(UTC) - self.fetched_at


class ConfigCache:
    """In-memory cache of the last successful remote fetch.

    Purely in-memory, no persistence. Access is guarded by a lock so the
    cache can be shared with code running in worker threads.

    Attributes:
        ttl: Time-to-live after which the entry is no longer fresh
    """

    def __init__(self, ttl: timedelta = DEFAULT_CACHE_TTL) -> None:
        """Initialize the cache.

        Args:
            ttl: Time-to-live for the entry (default: 5 minutes)
        """
        if ttl < timedelta(0):
            raise ValueError(f"Cache TTL must be >= 0, got {ttl}")
        self.ttl = ttl
        self._entry: CacheEntry | None = None
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self) -> CacheEntry | None:
        """Return the entry, fresh or expired, or None if empty."""
        with self._lock:
            return self._entry

    def put(self, values: Mapping[str, str]) -> CacheEntry:
        """Replace the entry with newly fetched values, stamped now."""
        entry = CacheEntry(
            snapshot=MappingProxyType(dict(values)),
            fetched_at=datetime.now(UTC),
        )
        with self._lock:
            self._entry = entry
        logger.debug("Cached %d remote values with TTL %s", len(entry.snapshot), self.ttl)
        return entry

    def is_fresh(self) -> bool:
        """Check whether an entry exists and is younger than the TTL.

        Each call counts as a cache hit or miss in stats().
        """
        with self._lock:
            fresh = self._entry is not None and self._entry.age() < self.ttl
            if fresh:
                self._hits += 1
            else:
                self._misses += 1
            return fresh

    def age(self) -> timedelta | None:
        """Age of the entry, or None if the cache is empty."""
        entry = self.get()
        return entry.age() if entry else None

    def clear(self) -> None:
        """Drop the entry and reset the counters."""
        with self._lock:
            had_entry = self._entry is not None
            self._entry = None
            self._hits = 0
            self._misses = 0
        if had_entry:
            logger.debug("Cleared cached remote configuration")

    def stats(self) -> dict[str, int]:
        """Get cache statistics."""
        with self._lock:
            return {
                "entries": 1 if self._entry is not None else 0,
                "hits": self._hits,
                "misses": self._misses,
            }


__all__ = [
    "DEFAULT_CACHE_TTL",
    "CacheEntry",
    "ConfigCache",
]
