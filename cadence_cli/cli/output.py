"""Output formatting utilities for Cadence CLI.

Human-readable output goes through rich; ``--json`` output is plain
JSON so it can be piped into other tools.
"""

import json
from typing import Any, Dict, List

from rich.console import Console
from rich.json import JSON as RichJSON
from rich.table import Table

# Default console for output
console = Console()


def print_json(data: Any, console_instance: Console | None = None) -> None:
    """Print data as formatted JSON.

    Args:
        data: Data to print (non-serializable values are stringified)
        console_instance: Optional custom console instance
    """
    prog_console = console_instance or console
    prog_console.print(RichJSON(json.dumps(data, indent=2, default=str)))


def print_table(
    data: List[Dict[str, Any]],
    columns: List[str],
    title: str | None = None,
    column_styles: Dict[str, str] | None = None,
    console_instance: Console | None = None,
) -> None:
    """Print rows as a table.

    Args:
        data: List of dictionaries containing row data
        columns: List of column keys to display
        title: Optional table title
        column_styles: Optional dict mapping column names to Rich styles
        console_instance: Optional custom console instance

    Example:
        rows = [{"schedule": "daily-report", "pattern": "0 9 * * *", "active": True}]
        print_table(rows, ["schedule", "pattern", "active"], title="Schedules")
    """
    prog_console = console_instance or console
    column_styles = column_styles or {}

    table = Table(title=title)
    for col in columns:
        table.add_column(col.replace("_", " ").title(), style=column_styles.get(col))

    for row in data:
        values = []
        for col in columns:
            value = row.get(col, "")
            if value is None:
                value = ""
            elif isinstance(value, bool):
                value = "[green]Yes[/green]" if value else "[red]No[/red]"
            values.append(str(value))
        table.add_row(*values)

    prog_console.print(table)


def print_result(
    success: bool,
    message: str,
    details: Dict[str, Any] | None = None,
    console_instance: Console | None = None,
) -> None:
    """Print an operation result with a success or failure marker."""
    prog_console = console_instance or console

    icon = "[green]✓[/green]" if success else "[red]✗[/red]"
    prog_console.print(f"{icon} {message}")

    if details:
        for key, value in details.items():
            if value is not None:
                prog_console.print(f"  [dim]{key}:[/dim] {value}")


def print_key_value(
    data: Dict[str, Any],
    title: str | None = None,
    key_style: str = "cyan",
    console_instance: Console | None = None,
) -> None:
    """Print data as aligned key-value pairs."""
    prog_console = console_instance or console

    if title:
        prog_console.print(f"[bold]{title}[/bold]")
        prog_console.print()

    max_key_len = max(len(str(k)) for k in data.keys()) if data else 0

    for key, value in data.items():
        if isinstance(value, bool):
            formatted = "[green]Yes[/green]" if value else "[red]No[/red]"
        elif isinstance(value, (int, float)):
            formatted = f"[yellow]{value}[/yellow]"
        else:
            formatted = str(value) if value is not None else "[dim]N/A[/dim]"

        padded_key = str(key).ljust(max_key_len)
        prog_console.print(f"  [{key_style}]{padded_key}[/{key_style}] : {formatted}")


def format_duration_ms(milliseconds: int) -> str:
    """Format a duration given in milliseconds.

    Example:
        format_duration_ms(850)  # Returns "850ms"
        format_duration_ms(90500)  # Returns "1m 30s"
    """
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    seconds = milliseconds / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {int(seconds % 60)}s"
