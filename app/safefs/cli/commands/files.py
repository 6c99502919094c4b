"""File listing and snapshot commands.

Provides commands to list the files below a directory and to take a
content-hashed snapshot of a directory tree, honouring the configured
exclusion patterns.
"""

import dataclasses
import json
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from safefs.cli.types import OutputFormat, load_config_or_exit
from safefs.errors import SafefsError
from safefs.fileops.atomic import atomic_write_string
from safefs.fileops.comparison import Comparer
from safefs.fileops.models import DirectorySnapshot
from safefs.fileops.traversal import Traverser
from safefs.utils.formatting import (
    console,
    create_snapshot_table,
    format_record_row,
    format_size,
    print_error,
    print_info,
    print_success,
)

app = typer.Typer(
    help="List and snapshot directory trees.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command("list")
def list_files(
    root: Annotated[
        Path,
        typer.Argument(help="Directory to list."),
    ],
    recursive: Annotated[
        bool,
        typer.Option("--recursive/--no-recursive", help="Descend into subdirectories."),
    ] = True,
    exclude: Annotated[
        list[str] | None,
        typer.Option(
            "--exclude",
            "-x",
            help="Additional exclusion pattern (repeatable).",
        ),
    ] = None,
    hidden: Annotated[
        bool | None,
        typer.Option(
            "--hidden/--no-hidden",
            help="Include dot-files (default: from config).",
            show_default=False,
        ),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """List files below ROOT, skipping excluded paths."""
    config = load_config_or_exit()
    options = config.traversal_options(exclude)
    options = dataclasses.replace(
        options,
        max_depth=options.max_depth if recursive else 0,
        ignore_hidden=options.ignore_hidden if hidden is None else not hidden,
    )

    try:
        found = Traverser().collect_files(root, options)
    except SafefsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    relative = [p.relative_to(root).as_posix() for p in found]

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(relative))
        return

    if not relative:
        print_info(f"No files found in {root}")
        return

    table = Table(title=f"Files in {root}", show_lines=False)
    table.add_column("Path", style="text")
    for path in relative:
        table.add_row(path)
    console.print(table)
    console.print(f"\n[muted]Found {len(relative)} files[/muted]")


@app.command()
def snapshot(
    root: Annotated[
        Path,
        typer.Argument(help="Directory to snapshot."),
    ],
    exclude: Annotated[
        list[str] | None,
        typer.Option(
            "--exclude",
            "-x",
            help="Additional exclusion pattern (repeatable).",
        ),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
    export_path: Annotated[
        Path | None,
        typer.Option(
            "--export",
            "-e",
            help="Write the snapshot to a JSON file (atomically).",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be exported without writing."),
    ] = False,
) -> None:
    """Snapshot ROOT with a SHA-256 hash per file."""
    config = load_config_or_exit()
    patterns = config.exclude_patterns + (exclude or [])

    try:
        result = Comparer().snapshot_directory(root, patterns)
    except SafefsError as e:
        print_error(f"Snapshot failed: {e}")
        raise typer.Exit(code=1) from e

    if export_path is not None:
        _export_snapshot(result, export_path, dry_run)

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result.to_dict()))
        return

    _print_snapshot(result, root)


# === Private helper functions ===


def _print_snapshot(result: DirectorySnapshot, root: Path) -> None:
    """Display a snapshot as a Rich table with a summary line."""
    if len(result) == 0:
        print_info(f"Nothing to snapshot in {root}")
        return

    table = create_snapshot_table(title=f"Snapshot of {root}")
    for record in result:
        table.add_row(*format_record_row(record))
    console.print(table)

    file_count = sum(1 for r in result if not r.is_directory)
    total_size = sum(r.size for r in result)
    console.print(
        f"\n[muted]{file_count} files, {len(result) - file_count} directories "
        f"({format_size(total_size)} total)[/muted]"
    )


def _export_snapshot(result: DirectorySnapshot, export_path: Path, dry_run: bool) -> None:
    """Write a snapshot as JSON, or describe the write in dry-run mode."""
    if export_path.is_dir():
        print_error(f"Export path is a directory: {export_path}")
        raise typer.Exit(code=1)

    if dry_run:
        print_info(f"Dry-run: would export {len(result)} records to {export_path}")
        return

    try:
        atomic_write_string(export_path, json.dumps(result.to_dict(), indent=2))
    except SafefsError as e:
        print_error(f"Failed to export: {e}")
        raise typer.Exit(code=1) from e
    print_success(f"Snapshot exported to {export_path}")
