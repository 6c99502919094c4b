"""Unit tests for path validation."""

import os
from pathlib import Path

import pytest
from safefs.errors import (
    InvalidPathError,
    PathAccessError,
    PathNotFoundError,
    PermissionDeniedError,
)
from safefs.fileops import validation
from safefs.fileops.validation import (
    PathValidator,
    is_secure_path,
    validate_existence,
    validate_path,
    validate_readable,
    validate_writable,
)


class TestIsSecurePath:
    """Tests for is_secure_path."""

    @pytest.mark.parametrize(
        "path",
        ["file.txt", "a/b/c.txt", "/tmp/data", ".hidden", "dir/.config/x"],
    )
    def test_safe_paths(self, path: str) -> None:
        """Ordinary relative and absolute paths are safe."""
        assert is_secure_path(path)

    @pytest.mark.parametrize(
        "path",
        [
            "../etc/passwd",
            "a/../b",
            "~/secrets",
            "$HOME/x",
            "bad\x00name",
            "line\nbreak",
            "carriage\rreturn",
        ],
    )
    def test_unsafe_paths(self, path: str) -> None:
        """Traversal, home, variable and control characters are unsafe."""
        assert not is_secure_path(path)

    def test_accepts_path_objects(self) -> None:
        """Path instances are checked like strings."""
        assert PathValidator().is_secure_path(Path("a/b"))
        assert not PathValidator().is_secure_path(Path("a/../b"))


class TestValidatePath:
    """Tests for validate_path."""

    def test_empty_path(self) -> None:
        """An empty path is rejected."""
        with pytest.raises(InvalidPathError, match="empty"):
            validate_path("")

    def test_unsafe_path(self) -> None:
        """An unsafe path is rejected with the path attached."""
        with pytest.raises(InvalidPathError) as exc_info:
            validate_path("a/../b")

        assert exc_info.value.path == "a/../b"
        assert exc_info.value.operation == "validate_path"

    def test_does_not_touch_filesystem(self, tmp_path: Path) -> None:
        """A well-formed path passes even if it does not exist."""
        validate_path(tmp_path / "does" / "not" / "exist")


class TestValidateExistence:
    """Tests for validate_existence."""

    def test_existing(self, tmp_path: Path) -> None:
        """Existing files and directories pass."""
        (tmp_path / "f").write_text("x")

        validate_existence(tmp_path)
        validate_existence(tmp_path / "f")

    def test_missing(self, tmp_path: Path) -> None:
        """A missing path raises PathNotFoundError."""
        with pytest.raises(PathNotFoundError):
            validate_existence(tmp_path / "missing")

    def test_unsafe_checked_first(self) -> None:
        """Format validation happens before any stat."""
        with pytest.raises(InvalidPathError):
            validate_existence("../nowhere")

    def test_other_stat_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Stat failures other than missing or denied become PathAccessError."""

        def broken_stat(path: object, *args: object, **kwargs: object) -> os.stat_result:
            raise OSError(5, "Input/output error")

        monkeypatch.setattr(os, "stat", broken_stat)

        with pytest.raises(PathAccessError) as exc_info:
            PathValidator().validate_existence(tmp_path)

        assert not isinstance(exc_info.value, PermissionDeniedError)


class TestValidateReadable:
    """Tests for validate_readable."""

    def test_readable_file_and_directory(self, tmp_path: Path) -> None:
        """Regular files and directories that can be opened pass."""
        (tmp_path / "f").write_text("x")

        validate_readable(tmp_path / "f")
        validate_readable(tmp_path)

    def test_missing(self, tmp_path: Path) -> None:
        """A missing path raises PathNotFoundError."""
        with pytest.raises(PathNotFoundError):
            validate_readable(tmp_path / "missing")

    def test_open_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A file that cannot be opened raises PermissionDeniedError."""
        target = tmp_path / "f"
        target.write_text("x")

        def denied_open(*args: object, **kwargs: object) -> None:
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(validation, "open", denied_open, raising=False)

        with pytest.raises(PermissionDeniedError, match="not readable"):
            validate_readable(target)


class TestValidateWritable:
    """Tests for validate_writable."""

    def test_writable_directory_leaves_no_marker_file(self, tmp_path: Path) -> None:
        """Checking a directory leaves no marker file behind."""
        validate_writable(tmp_path)

        assert list(tmp_path.iterdir()) == []

    def test_existing_file_not_truncated(self, tmp_path: Path) -> None:
        """Checking an existing file keeps its content."""
        target = tmp_path / "f.txt"
        target.write_text("keep me")

        validate_writable(target)

        assert target.read_text() == "keep me"

    def test_missing_path_checks_ancestor(self, tmp_path: Path) -> None:
        """A path that does not exist yet is validated via its nearest existing ancestor."""
        target = tmp_path / "new" / "deeper" / "file.txt"

        validate_writable(target)

        assert not (tmp_path / "new").exists()

    def test_unsafe_path(self) -> None:
        """Unsafe paths are rejected before any write check."""
        with pytest.raises(InvalidPathError):
            validate_writable("out/../../etc")

    def test_directory_write_check_failure(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failed write check raises PermissionDeniedError."""

        def denied(*args: object, **kwargs: object) -> int:
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(os, "open", denied)

        with pytest.raises(PermissionDeniedError, match="not writable"):
            validate_writable(tmp_path)
