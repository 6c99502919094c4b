"""Shared types and utilities for CLI commands.

This module provides common enums and helper functions used across
multiple CLI command modules to avoid code duplication.
"""

from enum import Enum

import typer

from safefs.core.config import ConfigError, SafefsConfig, load_config
from safefs.utils.formatting import print_error


class OutputFormat(str, Enum):
    """Output format options for listing commands."""

    TABLE = "table"
    JSON = "json"


def load_config_or_exit(exit_code: int = 1) -> SafefsConfig:
    """Load the user configuration or exit with a readable error.

    Args:
        exit_code: Exit code used when the configuration is unusable.

    Returns:
        Loaded configuration (defaults when no file exists).
    """
    try:
        return load_config()
    except ConfigError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=exit_code) from e
