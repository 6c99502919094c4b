"""File operations module.

This module provides path validation, exclusion-aware traversal, atomic
writes and directory/archive snapshot comparison.
"""

from safefs.fileops.atomic import (
    AtomicWriter,
    WriterState,
    atomic_copy,
    atomic_write_file,
    atomic_write_string,
)
from safefs.fileops.comparison import (
    Comparer,
    compare_snapshots,
    diff_snapshots,
    directory_matches_archive,
    hash_file,
    snapshot_archive,
    snapshot_directory,
)
from safefs.fileops.exclusion import Excluder, PatternMatcher, should_exclude
from safefs.fileops.models import (
    DirectorySnapshot,
    FileRecord,
    SnapshotDiff,
    TraversalOptions,
    VisitSignal,
)
from safefs.fileops.traversal import (
    Traverser,
    list_files,
    list_files_with_exclusions,
    walk,
    walk_with_exclusions,
)
from safefs.fileops.validation import (
    PathValidator,
    is_secure_path,
    validate_existence,
    validate_path,
    validate_readable,
    validate_writable,
)

__all__ = [
    "AtomicWriter",
    "Comparer",
    "DirectorySnapshot",
    "Excluder",
    "FileRecord",
    "PathValidator",
    "PatternMatcher",
    "SnapshotDiff",
    "TraversalOptions",
    "Traverser",
    "VisitSignal",
    "WriterState",
    "atomic_copy",
    "atomic_write_file",
    "atomic_write_string",
    "compare_snapshots",
    "diff_snapshots",
    "directory_matches_archive",
    "hash_file",
    "is_secure_path",
    "list_files",
    "list_files_with_exclusions",
    "should_exclude",
    "snapshot_archive",
    "snapshot_directory",
    "validate_existence",
    "validate_path",
    "validate_readable",
    "validate_writable",
    "walk",
    "walk_with_exclusions",
]
