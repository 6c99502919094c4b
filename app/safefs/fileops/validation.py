"""Path validation and security checks.

Provides composable checks for path safety (no traversal sequences or
suspicious characters) and accessibility (existence, readability,
writability). Writability is verified with a real, reversible write
rather than by inspecting permission bits.
"""

import logging
import os
import secrets
from pathlib import Path

from safefs.errors import (
    InvalidPathError,
    PathAccessError,
    PathNotFoundError,
    PermissionDeniedError,
    classify_os_error,
)

logger = logging.getLogger(__name__)

# Substrings that make a path unsafe to act on
UNSAFE_PATH_ELEMENTS: tuple[str, ...] = (
    "..",  # Path traversal
    "~",  # Home directory references
    "$",  # Environment variable references
    "\x00",
    "\r",
    "\n",
)

_MARKER_PREFIX = ".safefs_write_check_"


class PathValidator:
    """Validates paths for safety and accessibility.

    The validator holds no state; each check raises a SafefsError subclass
    on failure and returns None on success.

    Example:
        >>> validator = PathValidator()
        >>> validator.is_secure_path("../etc/passwd")
        False
    """

    def is_secure_path(self, path: str | Path) -> bool:
        """Check a path for traversal sequences and suspicious characters.

        Args:
            path: Path to check.

        Returns:
            True if the path contains none of UNSAFE_PATH_ELEMENTS.
        """
        text = os.fspath(path)
        return not any(element in text for element in UNSAFE_PATH_ELEMENTS)

    def validate_path(self, path: str | Path) -> None:
        """Validate a path's format without touching the filesystem.

        Raises:
            InvalidPathError: If the path is empty or unsafe.
        """
        text = os.fspath(path)
        if not text:
            raise InvalidPathError("path cannot be empty", operation="validate_path")
        if not self.is_secure_path(text):
            raise InvalidPathError(
                f"path contains unsafe elements: {text!r}",
                operation="validate_path",
                path=text,
            )

    def validate_existence(self, path: str | Path) -> None:
        """Validate a path and require it to exist.

        Raises:
            InvalidPathError: If the path is empty or unsafe.
            PathNotFoundError: If the path does not exist.
            PathAccessError: If the path cannot be stat'ed for another reason.
        """
        self.validate_path(path)
        try:
            os.stat(path)
        except OSError as e:
            error = classify_os_error("validate_existence", path, e)
            if isinstance(error, (PathNotFoundError, PermissionDeniedError)):
                raise error from e
            raise PathAccessError(
                f"cannot access path {path}: {e.strerror or e}",
                operation="validate_existence",
                path=path,
                cause=e,
            ) from e

    def validate_readable(self, path: str | Path) -> None:
        """Validate that a path exists and can actually be opened for reading.

        Raises:
            PermissionDeniedError: If opening the path fails.
        """
        self.validate_existence(path)
        try:
            if os.path.isdir(path):
                with os.scandir(path):
                    pass
            else:
                with open(path, "rb"):
                    pass
        except OSError as e:
            raise PermissionDeniedError(
                f"path is not readable: {path} ({e.strerror or e})",
                operation="validate_readable",
                path=path,
                cause=e,
            ) from e

    def validate_writable(self, path: str | Path) -> None:
        """Validate that a path (or its nearest existing ancestor) is writable.

        For a path that does not exist yet, the parent directory is
        validated recursively. Existing directories are checked by creating
        and deleting a marker file; existing files by opening them for
        writing.

        Raises:
            InvalidPathError: If the path is empty or unsafe.
            PermissionDeniedError: If the write check fails.
            PathAccessError: If the path cannot be stat'ed.
        """
        self.validate_path(path)
        target = Path(path)

        try:
            is_dir = target.is_dir()
            exists = is_dir or target.exists()
        except PermissionError as e:
            raise PermissionDeniedError(
                f"cannot access path {target}: {e.strerror}",
                operation="validate_writable",
                path=target,
                cause=e,
            ) from e

        if not exists:
            parent = target.parent
            if parent == target:
                raise PathNotFoundError(
                    f"no existing ancestor for {target}", operation="validate_writable", path=target
                )
            self.validate_writable(parent)
            return

        if is_dir:
            self._check_directory_writable(target)
        else:
            self._check_file_writable(target)

    def _check_directory_writable(self, directory: Path) -> None:
        marker = directory / f"{_MARKER_PREFIX}{secrets.token_hex(4)}"
        try:
            fd = os.open(marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
        except OSError as e:
            raise PermissionDeniedError(
                f"directory is not writable: {directory} ({e.strerror or e})",
                operation="validate_writable",
                path=directory,
                cause=e,
            ) from e
        os.close(fd)
        try:
            marker.unlink()
        except OSError as e:
            logger.warning("Could not remove write marker %s: %s", marker, e)

    def _check_file_writable(self, file_path: Path) -> None:
        try:
            # Append mode so the check never truncates the file
            with open(file_path, "ab"):
                pass
        except OSError as e:
            raise PermissionDeniedError(
                f"file is not writable: {file_path} ({e.strerror or e})",
                operation="validate_writable",
                path=file_path,
                cause=e,
            ) from e


# Shared stateless instance for the convenience functions
_default_validator = PathValidator()


def is_secure_path(path: str | Path) -> bool:
    """Check path security using the default validator."""
    return _default_validator.is_secure_path(path)


def validate_path(path: str | Path) -> None:
    """Validate path format using the default validator."""
    _default_validator.validate_path(path)


def validate_existence(path: str | Path) -> None:
    """Validate path existence using the default validator."""
    _default_validator.validate_existence(path)


def validate_readable(path: str | Path) -> None:
    """Validate path readability using the default validator."""
    _default_validator.validate_readable(path)


def validate_writable(path: str | Path) -> None:
    """Validate path writability using the default validator."""
    _default_validator.validate_writable(path)
