"""Configuration display functions for VAULTLINE.

Standalone functions for rendering a manager's snapshot, health and
diagnostics in the terminal. Values of sensitive keys are redacted
unless explicitly revealed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table

from vaultline.utils.console import console, print_header, print_info, print_warning, styled
from vaultline.utils.env_utils import redact_value

if TYPE_CHECKING:
    from vaultline.manager import ConfigManager

logger = logging.getLogger(__name__)


def build_snapshot_table(values: dict[str, str], reveal: bool = False) -> Table:
    """Build a two-column table of configuration values, sorted by key."""
    table = Table(title=None, show_header=True, header_style="bold")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key in sorted(values):
        table.add_row(escape(key), escape(redact_value(key, values[key], reveal=reveal)))
    return table


def show_snapshot(manager: ConfigManager, reveal: bool = False) -> None:
    """Display the published configuration as a Rich table.

    Falls back to plain key=value lines if the table cannot be rendered.
    """
    snapshot = manager.snapshot
    if snapshot is None:
        print_warning("No configuration loaded")
        return

    print_header(f"Configuration ({styled('source', snapshot.source.value)})")
    values = snapshot.to_dict()
    if not values:
        print_info("No configuration values")
        return

    try:
        console.print(build_snapshot_table(values, reveal=reveal))
    except Exception as e:
        logger.debug("Rich table rendering failed: %s", e)
        for key in sorted(values):
            console.print(f"  {key}={redact_value(key, values[key], reveal=reveal)}", markup=False)


def _format_detail(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value) or "-"
    return str(value)


def show_health(manager: ConfigManager) -> None:
    """Display health status, statistics and recommendations."""
    diagnostics = manager.get_diagnostics()
    health = manager.get_health_status()

    print_header("Configuration Health")
    status = "[green]healthy[/green]" if health.healthy else "[yellow]unhealthy[/yellow]"
    console.print(f"  [bold]Status:[/bold] {status} ({escape(diagnostics.summary)})")
    console.print(f"  [bold]State:[/bold] {styled('state', health.state.value)}")
    console.print()

    table = Table(title=None, show_header=False)
    table.add_column("Item", style="cyan")
    table.add_column("Value")
    for name, value in manager.get_stats().to_dict().items():
        table.add_row(name, escape(_format_detail(value)))
    console.print(table)

    if diagnostics.recommendations:
        console.print()
        console.print("  [bold]Recommendations:[/bold]")
        for recommendation in diagnostics.recommendations:
            console.print(f"  - {recommendation}", markup=False)


__all__ = [
    "build_snapshot_table",
    "show_health",
    "show_snapshot",
]
