"""Rich styles and themes for CLI output."""

from rich.theme import Theme

PYSQLSTORE_THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "status.applied": "green",
    "status.pending": "yellow",
    "status.unknown": "magenta",
})
