"""Environment value utilities for VAULTLINE.

This module provides ${VAR} reference expansion for values read from
local env files, plus sensitive key detection to keep secrets out of
logs and terminal output.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

# Keys containing these substrings are considered sensitive and should not be logged
SENSITIVE_KEY_PATTERNS = ("TOKEN", "KEY", "SECRET", "PASSWORD", "PAT", "CREDENTIAL")

REDACTED = "<REDACTED>"

_REFERENCE_PATTERN = re.compile(r"\$\{([^}]+)\}")

# KEY=value or KEY: value, as written in env files and messages
_ASSIGNMENT_PATTERN = re.compile(r"([A-Za-z_][A-Za-z0-9_.\-]*)(\s*[=:]\s*)(\"[^\"]*\"|'[^']*'|[^\s,;]+)")
_BEARER_PATTERN = re.compile(r"\b(bearer\s+)[A-Za-z0-9._~+/=\-]+", re.IGNORECASE)

logger = logging.getLogger(__name__)


def is_sensitive_key(key: str) -> bool:
    """Check if a configuration key contains sensitive data.

    Args:
        key: The configuration key name

    Returns:
        True if the key is considered sensitive
    """
    key_upper = key.upper()
    return any(pattern in key_upper for pattern in SENSITIVE_KEY_PATTERNS)


def redact_value(key: str, value: str, reveal: bool = False) -> str:
    """Return a display-safe form of a configuration value."""
    if reveal or not is_sensitive_key(key):
        return value
    return REDACTED


def redact_text(text: str) -> str:
    """Scrub secrets from free text such as log and error messages.

    Replaces bearer tokens and the values of sensitive ``KEY=value`` or
    ``KEY: value`` assignments with REDACTED. Other text is left as is.
    """

    def replace(match: re.Match[str]) -> str:
        key, separator, _ = match.groups()
        if is_sensitive_key(key):
            return f"{key}{separator}{REDACTED}"
        return match.group(0)

    text = _BEARER_PATTERN.sub(rf"\g<1>{REDACTED}", text)
    return _ASSIGNMENT_PATTERN.sub(replace, text)


def expand_references(
    value: str,
    lookup: Mapping[str, str],
    context: str = "",
) -> str:
    """Expand ${VAR} references in a value using the given lookup.

    Unknown references are preserved verbatim so that a misconfigured
    file never loses information.

    Args:
        value: The raw value to expand
        lookup: Values available for substitution
        context: Key being expanded, used in log messages unless sensitive

    Returns:
        The value with known ${VAR} references replaced
    """

    def replace(match: re.Match[str]) -> str:
        var_name = match.group(1)
        resolved = lookup.get(var_name)
        if resolved is None:
            # Avoid logging sensitive context
            if context and not is_sensitive_key(context):
                logger.warning("Variable '%s' not set while expanding %s", var_name, context)
            else:
                logger.warning("Variable '%s' not set", var_name)
            return match.group(0)
        return resolved

    return _REFERENCE_PATTERN.sub(replace, value)


__all__ = [
    "REDACTED",
    "SENSITIVE_KEY_PATTERNS",
    "redact_text",
    "expand_references",
    "is_sensitive_key",
    "redact_value",
]
