"""Atomic file writing.

An AtomicWriter writes to a temporary file in the target's directory and
renames it over the target on commit, so other processes observe either
the old content (or no file) or the complete new content, never a partial
write. Every exit path other than a successful commit removes the
temporary file.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING

from safefs.errors import InvalidPathError, SafefsError, WriterStateError, classify_os_error
from safefs.fileops.validation import validate_path, validate_readable

if TYPE_CHECKING:
    from safefs.resources.manager import ResourceManager

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024
DEFAULT_FILE_MODE = 0o644


class WriterState(str, Enum):
    """Lifecycle state of an AtomicWriter.

    Attributes:
        OPEN: Temporary file exists and accepts writes.
        COMMITTED: Temporary file was renamed over the target.
        ROLLED_BACK: Temporary file was discarded.
        CLOSED: Terminal state; nothing more can happen.
    """

    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CLOSED = "closed"


class AtomicWriter:
    """Writes a file atomically via a temporary file and rename.

    The writer is single-use and must not be shared between threads. Use it
    as a context manager: leaving the block without calling commit() rolls
    the write back.

    Args:
        target: Path of the file to create or replace.
        resource_manager: Optional manager that tracks the temporary file
            while it exists, so a crash between creation and commit is still
            cleaned up by the caller's cleanup.

    Raises:
        InvalidPathError: If the target path is empty or unsafe.
        SafefsError: If the parent directory or temporary file cannot be created.

    Example:
        >>> with AtomicWriter("out/report.txt") as writer:
        ...     writer.write(b"hello")
        ...     writer.commit()
    """

    def __init__(self, target: str | Path, resource_manager: ResourceManager | None = None) -> None:
        validate_path(target)
        self._target = Path(target)
        self._resources = resource_manager

        parent = self._target.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise classify_os_error("open", parent, e) from e

        try:
            fd, temp_name = tempfile.mkstemp(
                dir=parent, prefix=f"{self._target.name}.", suffix=".tmp"
            )
        except OSError as e:
            raise classify_os_error("open", parent, e) from e

        self._temp_path = Path(temp_name)
        self._file = os.fdopen(fd, "wb")
        self._state = WriterState.OPEN

        if self._resources is not None:
            self._resources.add_temp_file(self._temp_path)
        logger.debug("Opened atomic writer %s -> %s", self._temp_path, self._target)

    @property
    def target_path(self) -> Path:
        """Path that will be replaced on commit."""
        return self._target

    @property
    def temp_path(self) -> Path:
        """Path of the temporary file."""
        return self._temp_path

    @property
    def state(self) -> WriterState:
        """Current lifecycle state."""
        return self._state

    def write(self, data: bytes) -> int:
        """Append bytes to the temporary file.

        Returns:
            Number of bytes written.

        Raises:
            WriterStateError: If the writer is not open.
            SafefsError: If the write fails.
        """
        self._require_open("write")
        try:
            written = self._file.write(data)
        except OSError as e:
            raise classify_os_error("write", self._temp_path, e) from e
        return written if written is not None else len(data)

    def write_text(self, text: str, encoding: str = "utf-8") -> int:
        """Encode and append text to the temporary file."""
        return self.write(text.encode(encoding))

    def chmod(self, mode: int) -> None:
        """Set permission bits on the temporary file before commit."""
        self._require_open("chmod")
        try:
            os.chmod(self._temp_path, mode)
        except OSError as e:
            raise classify_os_error("chmod", self._temp_path, e) from e

    def commit(self) -> None:
        """Flush the temporary file and rename it over the target.

        On failure the temporary file is removed, the writer is closed and
        the classified error is raised. Commits are never retried.

        Raises:
            WriterStateError: If the writer is not open.
            AlreadyExistsError: If the target is a directory or otherwise occupied.
            PermissionDeniedError: If the rename is not permitted.
            IOFailureError: On disk-full, device or cross-device failures.
        """
        self._require_open("commit")

        try:
            self._file.flush()
            os.fsync(self._file.fileno())
            self._file.close()
        except OSError as e:
            self._discard_after_failure()
            raise classify_os_error("commit", self._temp_path, e) from e

        try:
            os.replace(self._temp_path, self._target)
        except OSError as e:
            self._discard_after_failure()
            raise classify_os_error("commit", self._target, e) from e

        self._state = WriterState.COMMITTED
        self._untrack()
        logger.debug("Committed %s", self._target)

    def rollback(self) -> None:
        """Discard the temporary file, leaving the target untouched.

        Raises:
            WriterStateError: If the writer is not open.
            SafefsError: If the temporary file cannot be removed.
        """
        self._require_open("rollback")
        self._state = WriterState.ROLLED_BACK
        self._close_handle()
        self._remove_temp("rollback")
        logger.debug("Rolled back write to %s", self._target)

    def close(self) -> None:
        """Release the writer. Rolls back if still open; idempotent."""
        if self._state is WriterState.OPEN:
            try:
                self.rollback()
            finally:
                self._state = WriterState.CLOSED
            return
        self._state = WriterState.CLOSED

    def __enter__(self) -> AtomicWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
            return
        try:
            self.close()
        except SafefsError as close_error:
            # The body's exception is the one the caller needs to see
            logger.warning("Failed to discard %s: %s", self._temp_path, close_error)

    def __repr__(self) -> str:
        return f"AtomicWriter(target={str(self._target)!r}, state={self._state.value})"

    def _require_open(self, operation: str) -> None:
        if self._state is not WriterState.OPEN:
            raise WriterStateError(
                f"cannot {operation} in state {self._state.value}",
                operation=operation,
                path=self._target,
            )

    def _close_handle(self) -> None:
        if self._file.closed:
            return
        try:
            self._file.close()
        except OSError as e:
            logger.warning("Error closing temporary file %s: %s", self._temp_path, e)

    def _remove_temp(self, operation: str) -> None:
        try:
            self._temp_path.unlink(missing_ok=True)
        except OSError as e:
            # Left tracked so the resource manager can retry
            raise classify_os_error(operation, self._temp_path, e) from e
        self._untrack()

    def _discard_after_failure(self) -> None:
        self._state = WriterState.CLOSED
        self._close_handle()
        try:
            self._remove_temp("commit")
        except SafefsError as e:
            logger.warning("Could not remove temporary file %s: %s", self._temp_path, e)

    def _untrack(self) -> None:
        if self._resources is not None:
            from safefs.resources.models import TempFile

            self._resources.remove(TempFile(self._temp_path))


def atomic_write_file(path: str | Path, data: bytes, mode: int = DEFAULT_FILE_MODE) -> None:
    """Write bytes to a file atomically.

    Args:
        path: Target file path.
        data: Content to write.
        mode: Permission bits for the resulting file.

    Raises:
        SafefsError: If any step fails. No temporary file is left behind.
    """
    with AtomicWriter(path) as writer:
        writer.write(data)
        writer.chmod(mode)
        writer.commit()


def atomic_write_string(
    path: str | Path,
    text: str,
    mode: int = DEFAULT_FILE_MODE,
    encoding: str = "utf-8",
) -> None:
    """Write text to a file atomically."""
    atomic_write_file(path, text.encode(encoding), mode)


def atomic_copy(
    src: str | Path,
    dst: str | Path,
    resource_manager: ResourceManager | None = None,
) -> None:
    """Copy a file atomically, preserving the source's permission bits.

    Args:
        src: Source file; must be readable.
        dst: Destination path; created or replaced on success only.
        resource_manager: Optional manager tracking the temporary file.

    Raises:
        InvalidPathError: If either path is unsafe or the source is a directory.
        PathNotFoundError: If the source does not exist.
        SafefsError: If reading, writing or committing fails.
    """
    validate_readable(src)
    validate_path(dst)
    if os.path.isdir(src):
        raise InvalidPathError(f"source is a directory: {src}", operation="copy", path=src)

    try:
        source = open(src, "rb")  # noqa: SIM115
    except OSError as e:
        raise classify_os_error("copy", src, e) from e

    with source, AtomicWriter(dst, resource_manager) as writer:
        try:
            mode = stat.S_IMODE(os.fstat(source.fileno()).st_mode)
            while chunk := source.read(COPY_CHUNK_SIZE):
                writer.write(chunk)
        except OSError as e:
            raise classify_os_error("copy", src, e) from e
        writer.chmod(mode)
        writer.commit()
    logger.debug("Copied %s -> %s", src, dst)
