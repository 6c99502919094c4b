"""File operation domain models.

This module defines the immutable data structures shared by traversal
and comparison: walk options, visitor signals, per-entry records and
directory snapshots.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class VisitSignal(str, Enum):
    """Signal returned by a traversal visitor.

    Attributes:
        CONTINUE: Keep walking, descending into the entry if it is a directory.
        SKIP_SUBTREE: Keep walking but do not descend into this directory.
    """

    CONTINUE = "continue"
    SKIP_SUBTREE = "skip_subtree"


@dataclass(frozen=True, slots=True)
class TraversalOptions:
    """Options for a single directory walk.

    Attributes:
        exclude_patterns: Exclusion patterns matched against root-relative paths.
        follow_symlinks: Resolve symlinks and descend into linked directories.
        max_depth: Deepest level to descend into. None means unlimited; 0 visits
            only the root's direct entries.
        ignore_hidden: Skip entries whose name starts with a dot.
        ignore_permission_errors: Silently skip entries that cannot be read.
    """

    exclude_patterns: tuple[str, ...] = ()
    follow_symlinks: bool = False
    max_depth: int | None = None
    ignore_hidden: bool = False
    ignore_permission_errors: bool = False

    def __post_init__(self) -> None:
        """Validate options after initialization."""
        if self.max_depth is not None and self.max_depth < 0:
            msg = f"max_depth must be None or >= 0, got {self.max_depth}"
            raise ValueError(msg)
        # Accept any iterable of patterns, store as tuple
        object.__setattr__(self, "exclude_patterns", tuple(self.exclude_patterns))


@dataclass(frozen=True, slots=True)
class FileRecord:
    """One entry of a directory or archive snapshot.

    Attributes:
        relative_path: Forward-slash path relative to the snapshot root.
        size: Size in bytes (0 for directories).
        modified_time: Last modification time (UTC).
        is_directory: Whether the entry is a directory.
        content_hash: Hex SHA-256 of the content, regular files only.
    """

    relative_path: str
    size: int
    modified_time: datetime
    is_directory: bool
    content_hash: str | None = None

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.relative_path:
            msg = "relative_path cannot be empty"
            raise ValueError(msg)
        if self.is_directory and self.content_hash is not None:
            msg = f"Directory record cannot carry a content hash: {self.relative_path}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "relative_path": self.relative_path,
            "size": self.size,
            "modified_time": self.modified_time.isoformat(),
            "is_directory": self.is_directory,
            "content_hash": self.content_hash,
        }


@dataclass(frozen=True, slots=True)
class DirectorySnapshot:
    """Sorted, immutable record set describing a tree at one point in time.

    Records are always held sorted by relative_path, whatever order they
    were supplied in.
    """

    records: tuple[FileRecord, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Sort records by relative path."""
        ordered = tuple(sorted(self.records, key=lambda r: r.relative_path))
        object.__setattr__(self, "records", ordered)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self.records)

    def paths(self) -> list[str]:
        """Return the relative paths of all records, in order."""
        return [r.relative_path for r in self.records]

    def get(self, relative_path: str) -> FileRecord | None:
        """Look up a record by relative path."""
        for record in self.records:
            if record.relative_path == relative_path:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"records": [r.to_dict() for r in self.records]}


@dataclass(frozen=True, slots=True)
class SnapshotDiff:
    """Differences between two snapshots.

    Attributes:
        added: Paths present only in the second snapshot.
        removed: Paths present only in the first snapshot.
        changed: Paths present in both whose size, type or content differ.
    """

    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    changed: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Check if the snapshots were identical."""
        return not (self.added or self.removed or self.changed)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "changed": list(self.changed),
        }
