"""CLI interface for VAULTLINE.

This module provides the Typer-based command-line interface for
inspecting the configuration an application would start with:

    vaultline show [--reveal]          Print the merged configuration
    vaultline check --require KEY ...  Validate required keys, exit non-zero on failure
    vaultline health                   Print health, stats and recommendations

Global --verbose streams the acquisition trace to stderr.
"""

import asyncio
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Annotated, TypeVar

import typer

from vaultline.config.display import show_health, show_snapshot
from vaultline.manager import ConfigManager
from vaultline.sources.local import DotEnvSource
from vaultline.utils.console import print_error, print_success, print_warning, show_version
from vaultline.utils.errors import ExitCode, VaultlineError
from vaultline.utils.logging import setup_logging
from vaultline.validation import ValidationRule

# Type variable for async helper
T = TypeVar("T")

# Create Typer app
app = typer.Typer(
    name="vaultline",
    help="VAULTLINE - Remote secrets with resilient local fallback",
    add_completion=False,
    no_args_is_help=True,
)

RootOption = Annotated[
    Path | None,
    typer.Option(
        "--root",
        "-r",
        help="Directory containing the .env files (default: current directory)",
        file_okay=False,
    ),
]
EnvironmentOption = Annotated[
    str | None,
    typer.Option(
        "--environment",
        "-e",
        help="Environment name used to pick .env.<environment> (default: VAULTLINE_ENVIRONMENT)",
    ),
]


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        show_version()
        raise typer.Exit()


class AsyncLoopAlreadyRunningError(VaultlineError):
    """Raised when trying to run async code in an existing event loop."""

    _default_exit_code = ExitCode.GENERAL_ERROR


def run_async(coro_factory: Callable[[], Coroutine[None, None, T]]) -> T:
    """Run an async coroutine from synchronous CLI code.

    Takes a factory instead of a coroutine object so that the running-loop
    check happens before any coroutine is created.

    Raises:
        AsyncLoopAlreadyRunningError: If an event loop is already running
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop is not None:
        raise AsyncLoopAlreadyRunningError(
            "Cannot run async operation: an event loop is already running. "
            "Use 'await' on the ConfigManager directly instead."
        )

    return asyncio.run(coro_factory())


async def _with_manager(
    action: Callable[[ConfigManager], T],
    root: Path | None,
    environment: str | None,
    rules: list[ValidationRule] | None = None,
) -> T:
    manager = ConfigManager(
        rules or (),
        local_source=DotEnvSource(root=root, environment=environment),
    )
    async with manager:
        return action(manager)


def _run(
    action: Callable[[ConfigManager], T],
    root: Path | None,
    environment: str | None,
    rules: list[ValidationRule] | None = None,
) -> T:
    try:
        return run_async(lambda: _with_manager(action, root, environment, rules))
    except VaultlineError as e:
        print_error(str(e))
        raise typer.Exit(e.exit_code) from e
    except KeyboardInterrupt as e:
        print_warning("Operation cancelled by user")
        raise typer.Exit(ExitCode.GENERAL_ERROR) from e


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version information",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Trace loading, retries and fallback decisions on stderr (secrets redacted)",
        ),
    ] = False,
) -> None:
    """VAULTLINE - Remote secrets with resilient local fallback."""
    setup_logging(verbose=verbose)


@app.command()
def show(
    root: RootOption = None,
    environment: EnvironmentOption = None,
    reveal: Annotated[
        bool,
        typer.Option("--reveal", help="Show values of sensitive keys instead of redacting them"),
    ] = False,
) -> None:
    """Show the merged configuration."""
    _run(lambda manager: show_snapshot(manager, reveal=reveal), root, environment)


@app.command()
def check(
    root: RootOption = None,
    environment: EnvironmentOption = None,
    require: Annotated[
        list[str] | None,
        typer.Option("--require", help="Key that must be present and non-empty (repeatable)"),
    ] = None,
) -> None:
    """Validate the configuration, exiting non-zero if it is unusable."""
    rules = [ValidationRule(key, required=True) for key in require or []]
    healthy = _run(lambda manager: manager.healthy, root, environment, rules)
    if healthy:
        print_success(f"Configuration is valid ({len(rules)} required keys checked)")
    else:
        print_warning("Configuration is valid but served from fallback values")


@app.command()
def health(
    root: RootOption = None,
    environment: EnvironmentOption = None,
) -> None:
    """Show health status, statistics and recommendations.

    Exits with REMOTE_UNAVAILABLE when fallback values are being served.
    """

    def report(manager: ConfigManager) -> bool:
        show_health(manager)
        return manager.healthy

    if not _run(report, root, environment):
        raise typer.Exit(ExitCode.REMOTE_UNAVAILABLE)


__all__ = [
    "AsyncLoopAlreadyRunningError",
    "app",
    "run_async",
]
