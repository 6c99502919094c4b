"""Resource models for lifecycle tracking.

A Resource is anything acquired during an operation that must be
released explicitly: temporary files, temporary directories, or an
arbitrary release callback.
"""

import logging
import shutil
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    """Kind of a tracked resource."""

    FILE = "file"
    DIRECTORY = "directory"
    CUSTOM = "custom"


class Resource(ABC):
    """Abstract base class for releasable resources.

    Two resources are equal when they have the same kind and the same
    identity (the path for files and directories, the name for callbacks),
    so a resource can be removed from a manager by constructing an equal
    one.
    """

    @property
    @abstractmethod
    def kind(self) -> ResourceKind:
        """Return the kind of this resource."""

    @abstractmethod
    def cleanup(self) -> None:
        """Release the resource.

        Raises:
            OSError: If releasing fails.
        """

    @abstractmethod
    def describe(self) -> str:
        """Return a short human-readable description."""

    @abstractmethod
    def _identity(self) -> object:
        """Value that identifies this resource within its kind."""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Resource):
            return NotImplemented
        return self.kind == other.kind and self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash((self.kind, self._identity()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.describe()!r})"


class TempFile(Resource):
    """A temporary file removed on cleanup.

    Args:
        path: Path of the file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.FILE

    def cleanup(self) -> None:
        """Remove the file. A file that is already gone is not an error."""
        self.path.unlink(missing_ok=True)
        logger.debug("Removed temporary file %s", self.path)

    def describe(self) -> str:
        return f"temp file {self.path}"

    def _identity(self) -> object:
        return self.path


class TempDir(Resource):
    """A temporary directory removed recursively on cleanup.

    Args:
        path: Path of the directory.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.DIRECTORY

    def cleanup(self) -> None:
        """Remove the directory tree. A missing directory is not an error."""
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            return
        logger.debug("Removed temporary directory %s", self.path)

    def describe(self) -> str:
        return f"temp dir {self.path}"

    def _identity(self) -> object:
        return self.path


class CallbackResource(Resource):
    """A resource released by calling an arbitrary function.

    Args:
        name: Name identifying the resource.
        callback: Function performing the release.

    Example:
        >>> conn = open_connection()
        >>> manager.add(CallbackResource("db connection", conn.close))
    """

    def __init__(self, name: str, callback: Callable[[], None]) -> None:
        self.name = name
        self._callback = callback

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.CUSTOM

    def cleanup(self) -> None:
        self._callback()

    def describe(self) -> str:
        return self.name

    def _identity(self) -> object:
        return self.name
