"""Snapshot model shared by the client, merge step and manager."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType


class ConfigSource(Enum):
    """Where the values of a snapshot came from.

    Attributes:
        REMOTE: Fresh values from the remote secrets service
        LOCAL_FALLBACK: Local files and process variables only
        CACHED: Previously fetched remote values served after a failed fetch
    """

    REMOTE = "remote"
    LOCAL_FALLBACK = "local_fallback"
    CACHED = "cached"


@dataclass(frozen=True)
class ConfigSnapshot:
    """One immutable, timestamped view of configuration values.

    Keys are case-sensitive. A key that is unset is absent from
    ``values``; no key ever maps to None.

    Attributes:
        values: Read-only mapping of configuration keys to values
        source: Origin of the values
        captured_at: When the values were captured (UTC)
    """

    values: Mapping[str, str]
    source: ConfigSource
    captured_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        # Freeze a private copy so later mutation of the input cannot leak in
        frozen = MappingProxyType({k: v for k, v in self.values.items() if v is not None})
        object.__setattr__(self, "values", frozen)

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get a single value, or default if the key is absent."""
        return self.values.get(key, default)

    def to_dict(self) -> dict[str, str]:
        """Return a mutable copy of the values."""
        return dict(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __contains__(self, key: object) -> bool:
        return key in self.values


__all__ = [
    "ConfigSnapshot",
    "ConfigSource",
]
