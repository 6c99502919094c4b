"""Cooperative cancellation.

A CancellationToken is shared between the code requesting cancellation
and the operation observing it. Cancellation is one-way and never
interrupts a blocking call; operations poll the token at safe points.
"""

import threading

from safefs.errors import CancelledOperationError


class CancellationToken:
    """Thread-safe, one-way cancellation flag.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel("user abort")
        >>> token.cancelled
        True
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason given with the first cancel() call, if any."""
        with self._lock:
            return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Later calls keep the first reason."""
        with self._lock:
            if not self._event.is_set():
                self._reason = reason
                self._event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or until timeout elapses.

        Returns:
            True if the token is cancelled.
        """
        return self._event.wait(timeout)

    def raise_if_cancelled(self, operation: str | None = None) -> None:
        """Raise CancelledOperationError if cancellation has been requested."""
        if self.cancelled:
            raise self.error(operation)

    def error(self, operation: str | None = None) -> CancelledOperationError:
        """Build the error describing this token's cancellation."""
        message = "operation cancelled"
        if self.reason:
            message = f"{message}: {self.reason}"
        return CancelledOperationError(message, operation=operation)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
