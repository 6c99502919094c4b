"""Copy command implementation.

Copies a single file atomically: the destination is either left as it
was or replaced by the complete copy.
"""

from pathlib import Path
from typing import Annotated

import typer

from safefs.errors import SafefsError
from safefs.fileops.atomic import atomic_copy
from safefs.fileops.validation import validate_readable, validate_writable
from safefs.resources.manager import ResourceManager
from safefs.utils.formatting import print_error, print_info, print_success


def copy(
    source: Annotated[
        Path,
        typer.Argument(help="File to copy."),
    ],
    destination: Annotated[
        Path,
        typer.Argument(help="Destination file (created or replaced)."),
    ],
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Check both paths without copying."),
    ] = False,
) -> None:
    """Copy SOURCE to DESTINATION atomically, preserving permissions."""
    try:
        if dry_run:
            validate_readable(source)
            validate_writable(destination)
            print_info(f"Dry-run: would copy {source} -> {destination}")
            return

        with ResourceManager() as resources:
            atomic_copy(source, destination, resources)
    except SafefsError as e:
        print_error(f"Copy failed: {e}")
        raise typer.Exit(code=1) from e

    print_success(f"Copied {source} -> {destination}")
