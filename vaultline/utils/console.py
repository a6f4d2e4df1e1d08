"""Rich-based console output utilities.

Status lines for the CLI, plus the styles that tell remote, cached and
local values apart in tables and health reports. Every message printed
here goes through redact_text first, so an error that quotes a secret
assignment cannot leak it to the terminal or the log file.
"""

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

from vaultline import __version__
from vaultline.utils.env_utils import redact_text

custom_theme = Theme(
    {
        "error": "bold red",
        "success": "bold green",
        "warning": "bold yellow",
        "info": "bold blue",
        "header": "bold magenta",
        # Snapshot sources
        "source.remote": "green",
        "source.cached": "yellow",
        "source.local_fallback": "cyan",
        # Manager states
        "state.uninitialized": "dim",
        "state.initializing": "blue",
        "state.ready": "bold green",
        "state.degraded": "bold yellow",
    }
)

# Global console instances
console = Console(theme=custom_theme)
console_err = Console(theme=custom_theme, stderr=True)


def styled(kind: str, value: str) -> str:
    """Markup for an enum value styled by its kind ("source" or "state").

    Values without a theme entry render unstyled.
    """
    return f"[{kind}.{value}]{escape(value)}[/]"


def _print_tagged(target: Console, tag: str, style: str, message: str, log: bool) -> None:
    message = redact_text(message)
    target.print(f"[{style}][[{tag}]][/{style}] {escape(message)}")
    if log:
        from vaultline.utils.logging import log_message

        log_message(f"{tag}: {message}")


def print_error(message: str) -> None:
    """Print an error to stderr and log it."""
    _print_tagged(console_err, "ERROR", "error", message, log=True)


def print_success(message: str) -> None:
    _print_tagged(console, "SUCCESS", "success", message, log=True)


def print_warning(message: str) -> None:
    """Print a warning, e.g. when fallback values are being served."""
    _print_tagged(console, "WARNING", "warning", message, log=True)


def print_info(message: str) -> None:
    _print_tagged(console, "INFO", "info", message, log=False)


def print_header(title: str) -> None:
    """Print section header in magenta. The title may contain markup."""
    console.print()
    console.print(f"[header]=== {title} ===[/header]")
    console.print()


def show_version() -> None:
    """Display version information."""
    console.print(f"[bold]VAULTLINE[/bold] v{__version__}")


__all__ = [
    "console",
    "console_err",
    "custom_theme",
    "print_error",
    "print_success",
    "print_warning",
    "print_info",
    "print_header",
    "show_version",
    "styled",
]
