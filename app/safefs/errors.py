"""Error taxonomy for safefs.

Every error raised by the core derives from SafefsError and carries the
operation name, the path involved and the underlying cause, so callers can
attribute a failure without parsing its message.
"""

from __future__ import annotations

import errno
from pathlib import Path


class SafefsError(Exception):
    """Base exception for all safefs errors.

    Attributes:
        operation: Name of the operation that failed (e.g. "commit").
        path: Path the operation was acting on, if any.
        cause: Underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        path: str | Path | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.path = str(path) if path is not None else None
        self.cause = cause
        super().__init__(self._format())

    def _format(self) -> str:
        parts: list[str] = []
        if self.operation:
            parts.append(f"{self.operation}:")
        parts.append(self.message)
        if self.path is not None and self.path not in self.message:
            parts.append(f"({self.path})")
        return " ".join(parts)


class InvalidPathError(SafefsError):
    """Raised when a path is empty or contains unsafe elements."""


class PathNotFoundError(SafefsError):
    """Raised when a path does not exist."""


class PathAccessError(SafefsError):
    """Raised when a path exists but cannot be accessed."""


class PermissionDeniedError(PathAccessError):
    """Raised when the effective permissions forbid an operation."""


class AlreadyExistsError(SafefsError):
    """Raised when a commit target is occupied by something that cannot be replaced."""


class IOFailureError(SafefsError):
    """Raised for disk-full, device and other low-level I/O failures."""


class WriterStateError(SafefsError):
    """Raised when an AtomicWriter operation is illegal in its current state."""


class CleanupError(SafefsError):
    """Raised when releasing a tracked resource fails."""


class PanicDuringCleanupError(CleanupError):
    """Raised when a resource's cleanup fails with an unexpected exception."""


class CancelledOperationError(SafefsError):
    """Raised when an operation observes a cancelled token."""


class MalformedArchiveError(SafefsError):
    """Raised when an archive cannot be read as a zip container."""


class CombinedError(SafefsError):
    """Several errors that occurred together.

    Attributes:
        errors: The constituent errors, in the order they occurred.
    """

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = list(errors)
        joined = "; ".join(str(e) for e in self.errors)
        super().__init__(
            f"multiple errors occurred: {joined}",
            cause=self.errors[0] if self.errors else None,
        )


_NOT_FOUND = {errno.ENOENT, errno.ENOTDIR}
_PERMISSION = {errno.EACCES, errno.EPERM, errno.EROFS}
_EXISTS = {errno.EEXIST, errno.EISDIR, errno.ENOTEMPTY}


def classify_os_error(operation: str, path: str | Path, exc: OSError) -> SafefsError:
    """Map an OSError onto the safefs taxonomy.

    Args:
        operation: Name of the failing operation.
        path: Path the operation was acting on.
        exc: The original OS error.

    Returns:
        SafefsError subclass instance describing the failure. The caller is
        expected to raise it ``from exc``.
    """
    reason = exc.strerror or str(exc)
    code = exc.errno

    if isinstance(exc, FileNotFoundError) or code in _NOT_FOUND:
        return PathNotFoundError(
            f"path does not exist: {path}", operation=operation, path=path, cause=exc
        )
    if isinstance(exc, PermissionError) or code in _PERMISSION:
        return PermissionDeniedError(
            f"permission denied: {reason}", operation=operation, path=path, cause=exc
        )
    if isinstance(exc, (FileExistsError, IsADirectoryError)) or code in _EXISTS:
        return AlreadyExistsError(
            f"target already exists: {reason}", operation=operation, path=path, cause=exc
        )
    return IOFailureError(reason, operation=operation, path=path, cause=exc)


def combine_errors(*errors: BaseException | None) -> BaseException | None:
    """Combine errors into one, dropping ``None`` entries.

    Returns:
        None when there is nothing to report, the error itself when there is
        exactly one, otherwise a CombinedError holding all of them.
    """
    valid = [e for e in errors if e is not None]
    if not valid:
        return None
    if len(valid) == 1:
        return valid[0]
    return CombinedError(valid)
