"""Logging configuration for VAULTLINE.

Every module in the package logs through ``logging.getLogger(__name__)``,
so the "vaultline" logger is the parent of the whole acquisition trace
(vaultline.manager, vaultline.sources.remote, vaultline.config.settings
and so on). This module only decides where that trace goes:

- a log file, when VAULTLINE_LOG is "true"
- the terminal (stderr, rendered by Rich), when the CLI runs with --verbose

Both handlers format through RedactingFormatter, so secret values and
bearer tokens never reach either destination.

Environment Variables:
    VAULTLINE_LOG: Set to "true" to enable the log file (default: "false")
    VAULTLINE_LOG_FILE: Path to log file (default: ~/.vaultline.log)
    VAULTLINE_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR for the log file (default: INFO)
"""

import logging
import os
from pathlib import Path

from vaultline.utils.env_utils import redact_text

LOGGER_NAME = "vaultline"
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

# Environment variable configuration
LOG_ENABLED = os.environ.get("VAULTLINE_LOG", "false").lower() == "true"
LOG_FILE = Path(os.environ.get("VAULTLINE_LOG_FILE", str(Path.home() / ".vaultline.log")))
LOG_LEVEL = _LEVELS.get(os.environ.get("VAULTLINE_LOG_LEVEL", "INFO").strip().upper(), logging.INFO)

# Module-level logger instance
_logger: logging.Logger | None = None


class RedactingFormatter(logging.Formatter):
    """Formatter that scrubs secrets from the rendered message.

    Only the message part is rewritten; logger names and timestamps are
    left alone. See env_utils.redact_text for what counts as a secret.
    """

    def formatMessage(self, record: logging.LogRecord) -> str:
        record.message = redact_text(record.message)
        return super().formatMessage(record)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure the "vaultline" logger.

    The file (or null) handler is attached once per process. ``verbose``
    may be passed on any later call to add the terminal trace.

    Args:
        verbose: Also stream DEBUG and above to stderr

    Returns:
        Configured logger instance
    """
    global _logger

    if _logger is None:
        logger = logging.getLogger(LOGGER_NAME)
        logger.handlers.clear()

        if LOG_ENABLED:
            LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(LOG_FILE)
            handler.setLevel(LOG_LEVEL)
            handler.setFormatter(RedactingFormatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
            logger.addHandler(handler)
            logger.setLevel(LOG_LEVEL)
        else:
            logger.addHandler(logging.NullHandler())

        _logger = logger

    if verbose:
        _attach_console_trace(_logger)
    return _logger


def _attach_console_trace(logger: logging.Logger) -> None:
    from rich.logging import RichHandler

    from vaultline.utils.console import console_err

    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return

    handler = RichHandler(console=console_err, show_path=False, markup=False)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(RedactingFormatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


def get_logger() -> logging.Logger:
    """Get the configured logger instance, creating it if necessary."""
    global _logger
    if _logger is None:
        return setup_logging()
    return _logger


def log_message(message: str, level: int = logging.INFO) -> None:
    """Log a manager lifecycle event (initialize, fallback, destroy).

    Args:
        message: Message to log
        level: Logging level (default: INFO)
    """
    get_logger().log(level, message)


__all__ = [
    "LOG_ENABLED",
    "LOG_FILE",
    "LOG_LEVEL",
    "RedactingFormatter",
    "setup_logging",
    "get_logger",
    "log_message",
]
