"""Output formatting utilities using Rich."""

import json
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from pysqlstore.cli.output.styles import PYSQLSTORE_THEME

console = Console(theme=PYSQLSTORE_THEME)
err_console = Console(theme=PYSQLSTORE_THEME, stderr=True)


def format_table(
    data: List[Dict[str, Any]],
    columns: List[str],
    title: Optional[str] = None,
) -> None:
    """
    Format and print data as a Rich table.

    Examples:
        data = [
            {"Version": 1, "Status": "applied"},
            {"Version": 2, "Status": "pending"},
        ]
        format_table(data, ["Version", "Status"], title="Migrations")
    """
    if not data:
        console.print("[dim]No data to display[/dim]")
        return

    table = Table(
        title=title,
        show_header=True,
        header_style="bold magenta",
        box=box.ROUNDED,
    )

    for col in columns:
        table.add_column(col, style="cyan")

    for row in data:
        cells = []
        for col in columns:
            value = row.get(col, "")
            if col.lower() == "status":
                cells.append(format_status(str(value)))
            else:
                cells.append(str(value))
        table.add_row(*cells)

    console.print(table)


def format_json(data: Any, indent: int = 2) -> None:
    """Format and print data as JSON with syntax highlighting."""
    json_str = json.dumps(data, indent=indent, default=str)
    console.print(Syntax(json_str, "json", theme="monokai", line_numbers=False))


def format_plain(data: List[str]) -> None:
    """Format and print data as plain text (one item per line)."""
    for item in data:
        console.print(item, highlight=False)


def format_status(status: str) -> str:
    """
    Colorize migration status.

    Examples:
        >>> format_status("applied")
        '[status.applied]applied[/status.applied]'
    """
    style = f"status.{status.lower()}"
    if status.lower() not in ("applied", "pending"):
        style = "status.unknown"
    return f"[{style}]{status}[/{style}]"


def format_key_value(data: Dict[str, Any], title: Optional[str] = None) -> None:
    """Format and print key-value pairs."""
    if title:
        console.print(f"\n[bold magenta]{title}[/bold magenta]")

    for key, value in data.items():
        value_str = "[dim]None[/dim]" if value is None else str(value)
        console.print(f"  [cyan]{key}:[/cyan] {value_str}")


def print_success(message: str) -> None:
    """Print success message."""
    console.print(f"[success]✓[/success] {message}")


def print_error(message: str) -> None:
    """Print error message."""
    err_console.print(f"[error]✗[/error] {message}")


def print_warning(message: str) -> None:
    """Print warning message."""
    console.print(f"[warning]⚠[/warning] {message}")


def print_info(message: str) -> None:
    """Print info message."""
    console.print(f"[info]ℹ[/info] {message}")
