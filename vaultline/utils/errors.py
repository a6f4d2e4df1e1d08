"""Custom exceptions and exit codes for VAULTLINE.

This module defines the exit codes and the base of the exception
hierarchy used throughout the package. The typed configuration errors
produced by the error classifier live in ``vaultline.sources.errors``
and inherit from ``VaultlineError``.
"""

from enum import IntEnum
from typing import ClassVar


class ExitCode(IntEnum):
    """Exit codes reported by the CLI.

    These codes are used for consistent error reporting and can be
    checked by deployment scripts or CI systems.
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    CONFIG_INVALID = 2
    REMOTE_UNAVAILABLE = 3
    NOT_INITIALIZED = 4


class VaultlineError(Exception):
    """Base exception for VAULTLINE errors.

    All custom exceptions in this package inherit from this class.
    Each exception type has an associated exit code for proper error reporting.
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.GENERAL_ERROR

    def __init__(self, message: str, exit_code: ExitCode | None = None) -> None:
        """Initialize the exception."""
        super().__init__(message)
        self._exit_code = exit_code

    @property
    def exit_code(self) -> ExitCode:
        """Get the exit code for this exception."""
        if self._exit_code is not None:
            return self._exit_code
        return self.__class__._default_exit_code


class ManagerNotInitializedError(VaultlineError):
    """Configuration was read before a snapshot was published.

    Raised when:
    - get()/get_all() is called before initialize() completed
    - refresh() is called on a manager that was never initialized
    - the manager was destroyed and not re-initialized
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.NOT_INITIALIZED

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message or "Configuration manager not initialized. Call initialize() first."
        )


__all__ = [
    "ExitCode",
    "VaultlineError",
    "ManagerNotInitializedError",
]
