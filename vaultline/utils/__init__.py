"""Utility modules for VAULTLINE.

This package contains:
- console: Rich-based terminal output utilities
- env_utils: ${VAR} expansion and sensitive key redaction
- errors: Base exceptions and exit codes
- logging: Logging configuration
- retry: Exponential backoff and Retry-After parsing
"""

from vaultline.utils.console import (
    console,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
)
from vaultline.utils.env_utils import (
    REDACTED,
    SENSITIVE_KEY_PATTERNS,
    expand_references,
    is_sensitive_key,
    redact_text,
    redact_value,
)
from vaultline.utils.errors import ExitCode, ManagerNotInitializedError, VaultlineError
from vaultline.utils.logging import log_message, setup_logging
from vaultline.utils.retry import calculate_backoff_delay, parse_retry_after

__all__ = [
    # Console
    "console",
    "print_error",
    "print_success",
    "print_warning",
    "print_info",
    "print_header",
    # Env Utils
    "REDACTED",
    "SENSITIVE_KEY_PATTERNS",
    "expand_references",
    "is_sensitive_key",
    "redact_text",
    "redact_value",
    # Errors
    "ExitCode",
    "VaultlineError",
    "ManagerNotInitializedError",
    # Logging
    "setup_logging",
    "log_message",
    # Retry
    "calculate_backoff_delay",
    "parse_retry_after",
]
