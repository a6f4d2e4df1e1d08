"""Retry utilities for transient remote failures.

This module provides the backoff arithmetic used by the remote client:
- calculate_backoff_delay: Exponential backoff with optional jitter
- parse_retry_after: Retry-After header parsing (RFC 7231)
"""

from __future__ import annotations

import logging
import random
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vaultline.config.fetch_config import RetryPolicy

logger = logging.getLogger(__name__)


def calculate_backoff_delay(attempt: int, policy: RetryPolicy) -> float:
    """Calculate the delay to wait after a failed attempt.

    Formula: min(base * multiplier^(attempt-1) + jitter, max_delay)

    Args:
        attempt: Number of the attempt that just failed (1-indexed)
        policy: Retry policy

    Returns:
        Delay in seconds

    Example delays with base=1s, multiplier=2, max=10s, no jitter:
        After attempt 1: 1.0s
        After attempt 2: 2.0s
        After attempt 3: 4.0s
        After attempt 5: 10.0s (capped)
    """
    exponential_delay = policy.base_delay_seconds * (policy.backoff_multiplier ** (attempt - 1))

    # Jitter spreads concurrent retries apart
    jitter = random.uniform(0, policy.jitter_factor * exponential_delay)

    delay: float = min(exponential_delay + jitter, policy.max_delay_seconds)
    return delay


def parse_retry_after(value: str | None) -> float | None:
    """Extract a Retry-After delay in seconds.

    Supports both formats specified in RFC 7231:
    - delay-seconds: Integer number of seconds (e.g., "120")
    - HTTP-date: RFC 1123 date format (e.g., "Sun, 26 Jan 2026 12:00:00 GMT")

    Returns:
        Seconds to wait, or None if the header is absent or unparseable
    """
    if not value:
        return None

    # Try parsing as a number (delay-seconds format)
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    # Try parsing as HTTP-date (RFC 1123 format)
    try:
        retry_date = parsedate_to_datetime(value)
        delay: float = (retry_date - datetime.now(UTC)).total_seconds()
        # A date in the past means "retry now"
        return max(0.0, delay)
    except (ValueError, TypeError) as e:
        logger.warning("Failed to parse Retry-After header '%s': %s", value, e)
        return None


__all__ = [
    "calculate_backoff_delay",
    "parse_retry_after",
]
