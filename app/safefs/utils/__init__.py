"""Utility modules for safefs.

This module exports commonly used utility functions.
"""

from safefs.utils.formatting import (
    console,
    create_snapshot_table,
    err_console,
    format_record_row,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "console",
    "create_snapshot_table",
    "err_console",
    "format_record_row",
    "format_size",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
