"""CLI commands for safefs.

This package contains all subcommand implementations.
"""

from safefs.cli.commands import config, copy, files, verify

__all__ = ["config", "copy", "files", "verify"]
