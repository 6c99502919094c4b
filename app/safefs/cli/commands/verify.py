"""Verify command implementation.

Compares a directory against a zip archive by content and reports the
differences.
"""

from pathlib import Path
from typing import Annotated

import typer

from safefs.cli.types import load_config_or_exit
from safefs.errors import SafefsError
from safefs.fileops.comparison import Comparer
from safefs.fileops.models import SnapshotDiff
from safefs.utils.formatting import console, print_error, print_success, print_warning

# Exit codes
EXIT_IDENTICAL = 0
EXIT_DIFFERENT = 1
EXIT_ERROR = 2


def verify(
    directory: Annotated[
        Path,
        typer.Argument(help="Directory to verify."),
    ],
    archive: Annotated[
        Path,
        typer.Argument(help="Zip archive to verify against."),
    ],
    exclude: Annotated[
        list[str] | None,
        typer.Option(
            "--exclude",
            "-x",
            help="Additional exclusion pattern (repeatable).",
        ),
    ] = None,
) -> None:
    """Verify that DIRECTORY has the same content as ARCHIVE.

    Paths, types, sizes and SHA-256 hashes are compared; modification
    times are ignored.

    Exit codes:
      0  identical
      1  different (differences are listed)
      2  error
    """
    config = load_config_or_exit(exit_code=EXIT_ERROR)
    patterns = config.exclude_patterns + (exclude or [])
    comparer = Comparer()

    try:
        dir_snapshot = comparer.snapshot_directory(directory, patterns)
        archive_snapshot = comparer.snapshot_archive(archive)
    except SafefsError as e:
        print_error(f"Verification failed: {e}")
        raise typer.Exit(code=EXIT_ERROR) from e

    if comparer.compare(dir_snapshot, archive_snapshot):
        print_success(f"{directory} matches {archive} ({len(dir_snapshot)} entries)")
        return

    # Archive is the reference: "added" means only present in the directory
    _print_differences(comparer.diff(archive_snapshot, dir_snapshot))
    print_warning(f"{directory} does not match {archive}")
    raise typer.Exit(code=EXIT_DIFFERENT)


def _print_differences(diff: SnapshotDiff) -> None:
    """List differing paths grouped by kind of change."""
    for path in diff.added:
        console.print(f"[added]+ {path}[/]  [muted](only in directory)[/muted]")
    for path in diff.removed:
        console.print(f"[removed]- {path}[/]  [muted](only in archive)[/muted]")
    for path in diff.changed:
        console.print(f"[changed]~ {path}[/]  [muted](content differs)[/muted]")
