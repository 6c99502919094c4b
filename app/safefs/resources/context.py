"""Cancellation-aware operations.

Binds a CancellationToken to a ResourceManager so long-running work can
poll for cancellation at safe points and always release what it
acquired, whichever way it ends.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType

from safefs.errors import SafefsError, combine_errors
from safefs.fileops.atomic import AtomicWriter
from safefs.resources.cancellation import CancellationToken
from safefs.resources.manager import ResourceManager

logger = logging.getLogger(__name__)


class ContextualOperation:
    """A unit of work with its own cancellation token and resources.

    On leaving the ``with`` block all resources are cleaned up. If the
    token was cancelled, the cancellation is raised together with any
    cleanup failure, unless the block is already raising.

    Args:
        token: Cancellation token to observe. A fresh one is created if None.
        manager: Resource manager to use. A fresh one is created if None.
        operation_id: Optional identifier used in log messages.

    Example:
        >>> with ContextualOperation() as op:
        ...     for chunk in chunks:
        ...         op.check_cancellation()
        ...         process(chunk)
    """

    def __init__(
        self,
        token: CancellationToken | None = None,
        manager: ResourceManager | None = None,
        operation_id: str | None = None,
    ) -> None:
        self.token = token or CancellationToken()
        self.resources = manager or ResourceManager()
        self.operation_id = operation_id

    def is_cancelled(self) -> bool:
        """Check if the operation's token has been cancelled."""
        return self.token.cancelled

    def check_cancellation(self) -> None:
        """Raise CancelledOperationError if the operation was cancelled."""
        self.token.raise_if_cancelled(self.operation_id)

    def cleanup(self) -> None:
        """Clean up the operation's resources."""
        self.resources.cleanup()

    def cleanup_with_panic_isolation(self) -> None:
        """Clean up the operation's resources, containing unexpected exceptions."""
        self.resources.cleanup_with_panic_isolation()

    def __enter__(self) -> ContextualOperation:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.resources.cleanup_with_cancellation(self.token)
            return
        try:
            self.resources.cleanup_with_panic_isolation()
        except SafefsError as cleanup_error:
            name = self.operation_id or "<unnamed>"
            logger.warning("Cleanup of operation %s failed: %s", name, cleanup_error)


def check_cancellation_and_cleanup(token: CancellationToken, manager: ResourceManager) -> None:
    """Clean up and raise if the token has been cancelled.

    Does nothing while the token is not cancelled.

    Raises:
        CancelledOperationError: If cancelled and cleanup succeeded.
        CombinedError: If cancelled and cleanup also failed.
    """
    if not token.cancelled:
        return

    cleanup_error: SafefsError | None = None
    try:
        manager.cleanup_with_panic_isolation()
    except SafefsError as e:
        cleanup_error = e

    error = combine_errors(token.error(), cleanup_error)
    if error is not None:
        raise error


def tracked_atomic_write(
    path: str | Path,
    data: bytes,
    manager: ResourceManager,
    token: CancellationToken | None = None,
) -> None:
    """Write a file atomically while the manager tracks the temporary file.

    The token is checked before starting, before writing and before
    committing. A cancelled or failed write leaves the target untouched
    and no temporary file behind.

    Args:
        path: Target file path.
        data: Content to write.
        manager: Manager that tracks the temporary file while in flight.
        token: Optional cancellation token.

    Raises:
        CancelledOperationError: If the token is cancelled at a checkpoint.
        SafefsError: If the write or commit fails.
    """
    if token is not None:
        token.raise_if_cancelled("atomic_write")

    with AtomicWriter(path, resource_manager=manager) as writer:
        if token is not None:
            token.raise_if_cancelled("atomic_write")
        writer.write(data)
        if token is not None:
            token.raise_if_cancelled("atomic_write")
        writer.commit()
