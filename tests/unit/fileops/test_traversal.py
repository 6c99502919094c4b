"""Unit tests for directory traversal.

Tests visit order, depth limits, exclusion pruning, hidden-file policy,
symlink handling, error reporting and the file-listing helpers.
"""

import logging
import os
import stat
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from safefs.errors import PathNotFoundError, PermissionDeniedError
from safefs.fileops.comparison import snapshot_directory
from safefs.fileops.models import TraversalOptions, VisitSignal
from safefs.fileops.traversal import (
    Traverser,
    list_files,
    list_files_with_exclusions,
    walk,
    walk_with_exclusions,
)


class _Recorder:
    """Visitor that records the root-relative paths it sees."""

    def __init__(self, root: Path, skip: set[str] | None = None) -> None:
        self.root = root
        self.skip = skip or set()
        self.visited: list[str] = []
        self.errors: list[tuple[str, OSError]] = []

    def __call__(
        self, path: Path, info: os.stat_result | None, error: OSError | None
    ) -> VisitSignal:
        relative = "." if path == self.root else path.relative_to(self.root).as_posix()
        if error is not None:
            self.errors.append((relative, error))
            return VisitSignal.CONTINUE
        self.visited.append(relative)
        if relative in self.skip:
            return VisitSignal.SKIP_SUBTREE
        return VisitSignal.CONTINUE


def _deny_listdir(monkeypatch: pytest.MonkeyPatch, denied: Path) -> None:
    """Make os.listdir raise PermissionError for one directory."""
    real_listdir = os.listdir

    def fake_listdir(path):  # type: ignore[no-untyped-def]
        if Path(path) == denied:
            raise PermissionError(13, "Permission denied", str(path))
        return real_listdir(path)

    monkeypatch.setattr(os, "listdir", fake_listdir)


class TestWalkOrder:
    """Tests for the order in which entries are visited."""

    def test_root_first_then_sorted_preorder(self, sample_tree: Path) -> None:
        """The root is visited first, then entries depth-first in sorted order."""
        recorder = _Recorder(sample_tree)

        Traverser().walk(sample_tree, None, recorder)

        assert recorder.visited == [
            ".",
            ".hidden",
            "a.txt",
            "b",
            "b/c.txt",
            "b/d",
            "b/d/e.txt",
            "node_modules",
            "node_modules/x.js",
        ]

    def test_module_walk_uses_default_options(self, sample_tree: Path) -> None:
        """The module-level walk visits everything."""
        recorder = _Recorder(sample_tree)

        walk(sample_tree, recorder)

        assert "b/d/e.txt" in recorder.visited
        assert ".hidden" in recorder.visited


class TestDepthLimit:
    """Tests for max_depth."""

    def test_depth_zero_visits_direct_entries_only(self, sample_tree: Path) -> None:
        """max_depth=0 lists the root's entries without descending."""
        recorder = _Recorder(sample_tree)

        Traverser().walk(sample_tree, TraversalOptions(max_depth=0), recorder)

        assert recorder.visited == [".", ".hidden", "a.txt", "b", "node_modules"]

    def test_depth_one_descends_once(self, sample_tree: Path) -> None:
        """max_depth=1 visits grandchildren but not deeper."""
        recorder = _Recorder(sample_tree)

        Traverser().walk(sample_tree, TraversalOptions(max_depth=1), recorder)

        assert "b/c.txt" in recorder.visited
        assert "b/d" in recorder.visited
        assert "b/d/e.txt" not in recorder.visited

    def test_negative_depth_rejected(self) -> None:
        """A negative max_depth is invalid."""
        with pytest.raises(ValueError, match="max_depth"):
            TraversalOptions(max_depth=-1)


class TestExclusion:
    """Tests for exclusion-pattern pruning."""

    def test_excluded_directory_is_pruned(self, sample_tree: Path) -> None:
        """An excluded directory and its children are not visited."""
        recorder = _Recorder(sample_tree)
        options = TraversalOptions(exclude_patterns=("node_modules/",))

        Traverser().walk(sample_tree, options, recorder)

        assert "node_modules" not in recorder.visited
        assert "node_modules/x.js" not in recorder.visited
        assert "a.txt" in recorder.visited

    def test_excluded_nested_file(self, sample_tree: Path) -> None:
        """File globs apply at every depth."""
        recorder = _Recorder(sample_tree)
        options = TraversalOptions(exclude_patterns=("*.txt",))

        Traverser().walk(sample_tree, options, recorder)

        assert not any(p.endswith(".txt") for p in recorder.visited)
        assert "b/d" in recorder.visited

    def test_traverser_patterns_apply_when_options_have_none(self, sample_tree: Path) -> None:
        """The traverser's own patterns are the default."""
        recorder = _Recorder(sample_tree)

        Traverser(["b/"]).walk(sample_tree, TraversalOptions(), recorder)

        assert "b" not in recorder.visited
        assert "a.txt" in recorder.visited

    def test_option_patterns_take_precedence(self, sample_tree: Path) -> None:
        """Patterns given in the options replace the traverser's patterns."""
        recorder = _Recorder(sample_tree)
        options = TraversalOptions(exclude_patterns=("node_modules/",))

        Traverser(["b/"]).walk(sample_tree, options, recorder)

        assert "b" in recorder.visited
        assert "node_modules" not in recorder.visited

    def test_walk_with_exclusions(self, sample_tree: Path) -> None:
        """The module-level helper applies the given patterns."""
        recorder = _Recorder(sample_tree)

        walk_with_exclusions(sample_tree, ["b/"], recorder)

        assert not any(p.startswith("b") for p in recorder.visited)


class TestHiddenAndSkip:
    """Tests for hidden-entry filtering and SKIP_SUBTREE."""

    def test_ignore_hidden(self, sample_tree: Path) -> None:
        """Dot-entries are skipped when ignore_hidden is set."""
        recorder = _Recorder(sample_tree)

        Traverser().walk(sample_tree, TraversalOptions(ignore_hidden=True), recorder)

        assert ".hidden" not in recorder.visited
        assert "a.txt" in recorder.visited

    def test_hidden_root_is_still_walked(self, tmp_path: Path) -> None:
        """ignore_hidden never applies to the root itself."""
        root = tmp_path / ".config"
        root.mkdir()
        (root / "settings.toml").write_text("")
        recorder = _Recorder(root)

        Traverser().walk(root, TraversalOptions(ignore_hidden=True), recorder)

        assert recorder.visited == [".", "settings.toml"]

    def test_skip_subtree(self, sample_tree: Path) -> None:
        """Returning SKIP_SUBTREE for a directory prunes its children."""
        recorder = _Recorder(sample_tree, skip={"b"})

        Traverser().walk(sample_tree, None, recorder)

        assert "b" in recorder.visited
        assert "b/c.txt" not in recorder.visited
        assert "node_modules/x.js" in recorder.visited


class TestSymlinks:
    """Tests for symlink handling."""

    def test_unfollowed_symlink_is_reported_not_entered(self, sample_tree: Path) -> None:
        """Without follow_symlinks a link is visited with lstat info only."""
        (sample_tree / "link").symlink_to(sample_tree / "b")
        seen: dict[Path, os.stat_result] = {}

        def visitor(path: Path, info: os.stat_result | None, error: OSError | None) -> VisitSignal:
            if info is not None:
                seen[path] = info
            return VisitSignal.CONTINUE

        Traverser().walk(sample_tree, None, visitor)

        assert sample_tree / "link" in seen
        assert sample_tree / "link" / "c.txt" not in seen
        assert stat.S_ISLNK(seen[sample_tree / "link"].st_mode)

    def test_followed_symlink_is_entered(self, sample_tree: Path) -> None:
        """With follow_symlinks a linked directory is descended into."""
        (sample_tree / "link").symlink_to(sample_tree / "b")
        recorder = _Recorder(sample_tree)

        Traverser().walk(sample_tree, TraversalOptions(follow_symlinks=True), recorder)

        assert "link/c.txt" in recorder.visited
        assert "link/d/e.txt" in recorder.visited

    def test_symlink_loop_terminates(self, sample_tree: Path) -> None:
        """A link pointing at an ancestor is visited but not re-entered."""
        (sample_tree / "b" / "d" / "loop").symlink_to(sample_tree)
        recorder = _Recorder(sample_tree)

        Traverser().walk(sample_tree, TraversalOptions(follow_symlinks=True), recorder)

        assert "b/d/loop" in recorder.visited
        assert not any(p.startswith("b/d/loop/") for p in recorder.visited)

    def test_broken_followed_symlink_is_reported_to_visitor(self, sample_tree: Path) -> None:
        """A dangling link surfaces as an error when following symlinks."""
        (sample_tree / "dangling").symlink_to(sample_tree / "missing")
        recorder = _Recorder(sample_tree)

        Traverser().walk(sample_tree, TraversalOptions(follow_symlinks=True), recorder)

        assert [p for p, _ in recorder.errors] == ["dangling"]
        assert isinstance(recorder.errors[0][1], FileNotFoundError)


class TestErrors:
    """Tests for error handling during a walk."""

    def test_missing_root(self, tmp_path: Path) -> None:
        """Walking a nonexistent root raises PathNotFoundError."""
        with pytest.raises(PathNotFoundError):
            Traverser().walk(tmp_path / "missing", None, _Recorder(tmp_path))

    def test_error_passed_to_visitor_and_walk_continues(
        self, sample_tree: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An unreadable directory is reported and the walk goes on."""
        _deny_listdir(monkeypatch, sample_tree / "b")
        recorder = _Recorder(sample_tree)

        Traverser().walk(sample_tree, None, recorder)

        assert [p for p, _ in recorder.errors] == ["b"]
        assert "node_modules/x.js" in recorder.visited

    def test_visitor_returning_none_aborts(
        self, sample_tree: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Returning None on an error aborts the walk with the classified error."""
        _deny_listdir(monkeypatch, sample_tree / "b")
        visited: list[Path] = []

        def visitor(
            path: Path, info: os.stat_result | None, error: OSError | None
        ) -> VisitSignal | None:
            if error is not None:
                return None
            visited.append(path)
            return VisitSignal.CONTINUE

        with pytest.raises(PermissionDeniedError) as exc_info:
            Traverser().walk(sample_tree, None, visitor)

        assert exc_info.value.operation == "walk"
        assert sample_tree / "node_modules" not in visited

    def test_permission_errors_ignored_when_requested(
        self,
        sample_tree: Path,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """ignore_permission_errors skips the entry and logs a warning."""
        _deny_listdir(monkeypatch, sample_tree / "b")
        recorder = _Recorder(sample_tree)
        options = TraversalOptions(ignore_permission_errors=True)

        with caplog.at_level(logging.WARNING):
            Traverser().walk(sample_tree, options, recorder)

        assert recorder.errors == []
        assert "b/c.txt" not in recorder.visited
        assert "Permission denied" in caplog.text

    def test_visitor_exception_propagates(self, sample_tree: Path) -> None:
        """A visitor can abort the walk by raising."""

        def visitor(path: Path, info: os.stat_result | None, error: OSError | None) -> VisitSignal:
            if path.name == "c.txt":
                raise RuntimeError("stop")
            return VisitSignal.CONTINUE

        with pytest.raises(RuntimeError, match="stop"):
            Traverser().walk(sample_tree, None, visitor)


class TestListFiles:
    """Tests for the file-listing helpers."""

    def test_recursive_listing(self, sample_tree: Path) -> None:
        """Recursive listing returns every non-directory entry."""
        files = list_files(sample_tree)

        relative = [p.relative_to(sample_tree).as_posix() for p in files]
        assert relative == [".hidden", "a.txt", "b/c.txt", "b/d/e.txt", "node_modules/x.js"]

    def test_non_recursive_listing(self, sample_tree: Path) -> None:
        """Non-recursive listing returns only the root's files."""
        files = list_files(sample_tree, recursive=False)

        assert sorted(p.name for p in files) == [".hidden", "a.txt"]

    def test_listing_with_exclusions(self, sample_tree: Path) -> None:
        """Excluded paths are left out of the listing."""
        files = list_files_with_exclusions(sample_tree, ["node_modules/", ".hidden"])

        relative = [p.relative_to(sample_tree).as_posix() for p in files]
        assert relative == ["a.txt", "b/c.txt", "b/d/e.txt"]

    def test_listing_tolerates_unreadable_directories(
        self, sample_tree: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Unreadable directories are skipped rather than failing the listing."""
        _deny_listdir(monkeypatch, sample_tree / "b")

        files = list_files(sample_tree)

        assert sample_tree / "a.txt" in files
        assert sample_tree / "b" / "c.txt" not in files

    def test_collect_files_honours_options(self, sample_tree: Path) -> None:
        """collect_files applies hidden and depth policy from the options."""
        options = TraversalOptions(ignore_hidden=True, max_depth=1)

        files = Traverser().collect_files(sample_tree, options)

        relative = [p.relative_to(sample_tree).as_posix() for p in files]
        assert relative == ["a.txt", "b/c.txt", "node_modules/x.js"]


@pytest.fixture
def deep_tree(tmp_path: Path) -> Iterator[tuple[Path, int]]:
    """A chain of nested 'd' directories deeper than the recursion limit.

    Built and removed one level at a time, since pathlib and shutil helpers
    may themselves recurse per level.
    """
    depth = sys.getrecursionlimit() + 100
    if len(str(tmp_path)) + 2 * depth > 3500:
        pytest.skip("recursion limit too high for a path below PATH_MAX")

    root = tmp_path / "deep"
    root.mkdir()
    levels = [root]
    for _ in range(depth):
        levels.append(levels[-1] / "d")
        levels[-1].mkdir()
    leaf = levels[-1] / "leaf.txt"
    leaf.write_text("bottom")
    try:
        yield root, depth
    finally:
        leaf.unlink(missing_ok=True)
        for level in reversed(levels):
            level.rmdir()


class TestDeepTrees:
    """Tests for trees nested deeper than the interpreter's recursion limit."""

    def test_list_files_reaches_bottom(self, deep_tree: tuple[Path, int]) -> None:
        """Listing a very deep tree finds the single leaf file."""
        root, depth = deep_tree

        files = list_files(root)

        assert len(files) == 1
        assert files[0].name == "leaf.txt"
        assert len(files[0].relative_to(root).parts) == depth + 1

    def test_walk_visits_every_level_in_order(self, deep_tree: tuple[Path, int]) -> None:
        """Each level is visited once, parents before children."""
        root, depth = deep_tree
        recorder = _Recorder(root)

        walk(root, recorder)

        assert len(recorder.visited) == depth + 2
        assert recorder.visited[0] == "."
        assert recorder.visited[-1].endswith("d/leaf.txt")
        lengths = [len(p) for p in recorder.visited[1:]]
        assert lengths == sorted(lengths)

    def test_depth_limit_on_deep_tree(self, deep_tree: tuple[Path, int]) -> None:
        """max_depth still bounds the walk on a deep chain."""
        root, _ = deep_tree
        recorder = _Recorder(root)

        Traverser().walk(root, TraversalOptions(max_depth=2), recorder)

        assert recorder.visited == [".", "d", "d/d", "d/d/d"]

    def test_snapshot_of_deep_tree(self, deep_tree: tuple[Path, int]) -> None:
        """Snapshots of very deep trees complete with one record per entry."""
        root, depth = deep_tree

        result = snapshot_directory(root)

        assert len(result) == depth + 1
        record = result.records[-1]
        assert record.relative_path.endswith("leaf.txt")
        assert record.content_hash is not None
