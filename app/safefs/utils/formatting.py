"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

import sys

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from safefs.fileops.models import FileRecord

SAFEFS_THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "header": "#69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "bold #f53263",
        "info": "#0ec1c8",
        "added": "#c1ff62",
        "removed": "#f53263",
        "changed": "#0e8ac8",
        "bold_header": "bold #69B9A1",
        "directory": "bold #0e8ac8",
    }
)


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances
console = Console(theme=SAFEFS_THEME, color_system=_detect_color_system())
err_console = Console(theme=SAFEFS_THEME, stderr=True, color_system=_detect_color_system())


def create_snapshot_table(title: str = "Snapshot") -> Table:
    """Create a pre-configured table for displaying snapshot records.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for record display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Path", no_wrap=True)
    table.add_column("Type", style="muted", width=5)
    table.add_column("Size", style="info", justify="right")
    table.add_column("Modified", style="muted")
    table.add_column("SHA-256", style="muted", overflow="ellipsis", max_width=16)
    return table


def format_record_row(record: FileRecord) -> tuple[str, str, str, str, str]:
    """Format a snapshot record as a table row with Rich markup.

    Returns:
        Tuple of (path, type, size, modified, hash).
    """
    if record.is_directory:
        path = f"[directory]{record.relative_path}/[/]"
        kind = "dir"
        size = "-"
    else:
        path = f"[text]{record.relative_path}[/]"
        kind = "file"
        size = format_size(record.size)
    modified = record.modified_time.strftime("%Y-%m-%d %H:%M:%S")
    return (path, kind, size, modified, record.content_hash or "-")


def format_size(size_bytes: int | None) -> str:
    """Format byte count as human-readable string."""
    if size_bytes is None or size_bytes == 0:
        return "0 B"
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
