"""Merging of remote and local configuration into one snapshot.

Precedence, lowest to highest:
    1. Local env files (.env, .env.<environment>, .env.local)
    2. Remote secrets
    3. Process variables

Remote values therefore override anything written in files, while an
operator can still override a remote value per process. Merging is pure:
inputs are never mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from vaultline.models import ConfigSnapshot, ConfigSource
from vaultline.sources.local import LocalEnvironment

logger = logging.getLogger(__name__)


def merge_layers(
    file_values: Mapping[str, str],
    remote_values: Mapping[str, str] | None,
    process_values: Mapping[str, str],
) -> dict[str, str]:
    """Overlay the three layers in precedence order.

    Returns:
        New dict; None values are dropped so an unset key stays absent
    """
    merged: dict[str, str] = {}
    for layer in (file_values, remote_values or {}, process_values):
        merged.update((k, v) for k, v in layer.items() if v is not None)
    return merged


def merge(
    remote: Mapping[str, str] | None,
    local: LocalEnvironment,
    source: ConfigSource,
) -> ConfigSnapshot:
    """Build a snapshot from remote values and the local environment.

    Args:
        remote: Remote values, or None when running local-only
        local: Loaded local environment
        source: Source recorded on the snapshot

    Returns:
        New immutable snapshot
    """
    values = merge_layers(local.file_values, remote, local.process_values)

    if remote:
        overridden = sum(1 for key in remote if key in local.process_values)
        if overridden:
            logger.debug("%d remote values overridden by process variables", overridden)
        shadowed = sum(1 for key in remote if key in local.file_values)
        if shadowed:
            logger.debug("%d file values overridden by remote values", shadowed)

    logger.debug("Merged %d configuration values (source: %s)", len(values), source.value)
    return ConfigSnapshot(values, source)


__all__ = [
    "merge",
    "merge_layers",
]
