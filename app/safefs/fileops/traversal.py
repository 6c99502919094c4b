"""Directory traversal with exclusion support.

Walks a directory tree depth-first in pre-order, applying exclusion
patterns and depth, symlink and hidden-file policy, and invoking a
visitor for every entry that survives the filters.
"""

import logging
import os
import stat
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from safefs.errors import classify_os_error
from safefs.fileops.exclusion import Excluder, PatternMatcher
from safefs.fileops.models import TraversalOptions, VisitSignal
from safefs.fileops.validation import PathValidator

logger = logging.getLogger(__name__)

# visitor(path, info, error) -> signal. info is None when the entry could not
# be stat'ed; error is set when the walk hit an OS error on this entry.
Visitor = Callable[[Path, os.stat_result | None, OSError | None], VisitSignal | None]

# (path, depth, ancestor directory keys) of an entry waiting to be visited
_Frame = tuple[Path, int, frozenset[tuple[int, int]]]


@dataclass(frozen=True, slots=True)
class _WalkContext:
    """Per-walk state shared by every step of a walk."""

    root: Path
    options: TraversalOptions
    excluder: Excluder | None
    visitor: Visitor


class Traverser:
    """Walks directory trees applying exclusion and traversal policy.

    Args:
        exclude_patterns: Default exclusion patterns, used when a walk's
            options carry none.
        excluder: Custom exclusion policy. Takes precedence over
            exclude_patterns as the default.
    """

    def __init__(
        self,
        exclude_patterns: Iterable[str] = (),
        *,
        excluder: Excluder | None = None,
    ) -> None:
        patterns = tuple(exclude_patterns)
        if excluder is None and patterns:
            excluder = PatternMatcher(patterns)
        self._excluder = excluder
        self._validator = PathValidator()

    def walk(
        self,
        root: str | Path,
        options: TraversalOptions | None,
        visitor: Visitor,
    ) -> None:
        """Walk a directory tree, invoking the visitor for each entry.

        The root itself is visited first, then its entries in sorted name
        order, each directory before its children. When the visitor receives
        an error it must return a VisitSignal to keep going; returning None
        aborts the walk with that error. Raising from the visitor also
        aborts the walk.

        Args:
            root: Directory to walk.
            options: Traversal options. Defaults to TraversalOptions().
            visitor: Callback invoked per entry.

        Raises:
            InvalidPathError: If root is empty or unsafe.
            PathNotFoundError: If root does not exist.
            SafefsError: If an entry fails and the visitor does not continue.
        """
        opts = options or TraversalOptions()
        root_path = Path(root)
        self._validator.validate_existence(root_path)

        excluder = self._excluder
        if opts.exclude_patterns:
            excluder = PatternMatcher(opts.exclude_patterns)
        ctx = _WalkContext(root=root_path, options=opts, excluder=excluder, visitor=visitor)

        # Children are pushed reversed so they pop in sorted order
        stack: list[_Frame] = [(root_path, -1, frozenset())]
        while stack:
            path, depth, ancestors = stack.pop()
            children = self._visit_entry(ctx, path, depth, ancestors)
            if children:
                stack.extend(reversed(children))

    def list_files(self, root: str | Path, recursive: bool = True) -> list[Path]:
        """List non-directory entries below root.

        Permission errors and other per-entry errors are tolerated.

        Args:
            root: Directory to list.
            recursive: If False, only the root's direct entries are listed.

        Returns:
            Paths of files (and unfollowed symlinks), in walk order.
        """
        return self.list_files_with_exclusions(root, (), recursive)

    def list_files_with_exclusions(
        self,
        root: str | Path,
        exclude_patterns: Iterable[str],
        recursive: bool = True,
    ) -> list[Path]:
        """List non-directory entries below root, skipping excluded paths."""
        options = TraversalOptions(
            exclude_patterns=tuple(exclude_patterns),
            follow_symlinks=False,
            max_depth=None if recursive else 0,
            ignore_permission_errors=True,
        )
        return self.collect_files(root, options)

    def collect_files(self, root: str | Path, options: TraversalOptions) -> list[Path]:
        """List non-directory entries below root under the given options.

        Per-entry errors never abort the collection; unreadable entries are
        simply left out.

        Returns:
            Paths of files (and unfollowed symlinks), in walk order.
        """
        files: list[Path] = []

        def collect(
            path: Path, info: os.stat_result | None, error: OSError | None
        ) -> VisitSignal:
            if error is not None or info is None:
                return VisitSignal.CONTINUE
            if not stat.S_ISDIR(info.st_mode):
                files.append(path)
            return VisitSignal.CONTINUE

        self.walk(root, options, collect)
        return files

    def _visit_entry(
        self,
        ctx: _WalkContext,
        path: Path,
        depth: int,
        ancestors: frozenset[tuple[int, int]],
    ) -> list[_Frame]:
        """Visit one entry and return the frames of the children to walk next."""
        is_root = depth < 0
        opts = ctx.options

        try:
            info = os.lstat(path)
        except OSError as e:
            self._handle_error(ctx, path, None, e)
            return []

        if not is_root:
            relative = path.relative_to(ctx.root).as_posix()
            if ctx.excluder is not None and ctx.excluder.should_exclude(relative):
                logger.debug("Excluded %s", relative)
                return []
            if opts.ignore_hidden and path.name.startswith("."):
                logger.debug("Skipped hidden entry %s", relative)
                return []

        if stat.S_ISLNK(info.st_mode):
            if not opts.follow_symlinks:
                ctx.visitor(path, info, None)
                return []
            try:
                info = os.stat(path)
            except OSError as e:
                self._handle_error(ctx, path, info, e)
                return []

        signal = ctx.visitor(path, info, None)
        if signal is VisitSignal.SKIP_SUBTREE or not stat.S_ISDIR(info.st_mode):
            return []
        if not is_root and opts.max_depth is not None and depth >= opts.max_depth:
            return []

        key = (info.st_dev, info.st_ino)
        if key in ancestors:
            logger.debug("Not re-entering directory loop at %s", path)
            return []

        try:
            names = sorted(os.listdir(path))
        except OSError as e:
            self._handle_error(ctx, path, info, e)
            return []

        descent = ancestors | {key}
        return [(path / name, depth + 1, descent) for name in names]

    @staticmethod
    def _handle_error(
        ctx: _WalkContext,
        path: Path,
        info: os.stat_result | None,
        error: OSError,
    ) -> None:
        """Skip, report or abort on a per-entry OS error."""
        if ctx.options.ignore_permission_errors and isinstance(error, PermissionError):
            logger.warning("Permission denied, skipping: %s", path)
            return

        if ctx.visitor(path, info, error) is None:
            raise classify_os_error("walk", path, error) from error


def walk(root: str | Path, visitor: Visitor) -> None:
    """Walk a directory tree with default options."""
    Traverser().walk(root, TraversalOptions(), visitor)


def walk_with_exclusions(
    root: str | Path,
    exclude_patterns: Iterable[str],
    visitor: Visitor,
) -> None:
    """Walk a directory tree, skipping excluded paths and unreadable entries."""
    options = TraversalOptions(
        exclude_patterns=tuple(exclude_patterns),
        ignore_permission_errors=True,
    )
    Traverser().walk(root, options, visitor)


def list_files(root: str | Path, recursive: bool = True) -> list[Path]:
    """List files below root using a default traverser."""
    return Traverser().list_files(root, recursive)


def list_files_with_exclusions(
    root: str | Path, exclude_patterns: Iterable[str], recursive: bool = True
) -> list[Path]:
    """List files below root, skipping excluded paths."""
    return Traverser().list_files_with_exclusions(root, exclude_patterns, recursive)

# (path, depth, ancestor directory keys) awaiting a visit
_Frame = tuple[Path, int, frozenset[tuple[int, int]]]
