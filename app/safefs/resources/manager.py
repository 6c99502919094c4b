"""Resource lifecycle management.

The ResourceManager tracks resources acquired during an operation and
guarantees that each one is released exactly once. Cleanup attempts
every tracked resource even when some of them fail, and reports all
failures together.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from types import TracebackType

from safefs.errors import (
    CleanupError,
    PanicDuringCleanupError,
    SafefsError,
    combine_errors,
)
from safefs.resources.cancellation import CancellationToken
from safefs.resources.models import Resource, ResourceKind, TempDir, TempFile

logger = logging.getLogger(__name__)


class ResourceManager:
    """Thread-safe registry of resources awaiting cleanup.

    Resources are cleaned up in registration order. The registry is
    emptied before any cleanup runs, so a resource is never released
    twice and a cleanup callback may safely use the manager.

    Use it as a context manager to clean up on exit with panic isolation.

    Example:
        >>> with ResourceManager() as resources:
        ...     resources.add_temp_file(scratch)
        ...     do_work(scratch)
    """

    def __init__(self) -> None:
        self._resources: list[Resource] = []
        self._lock = threading.RLock()

    def add(self, resource: Resource) -> None:
        """Track a resource for cleanup."""
        with self._lock:
            self._resources.append(resource)
        logger.debug("Tracking %s", resource.describe())

    def add_temp_file(self, path: str | Path) -> TempFile:
        """Track a temporary file for cleanup.

        Returns:
            The TempFile resource that was registered.
        """
        resource = TempFile(path)
        self.add(resource)
        return resource

    def add_temp_dir(self, path: str | Path) -> TempDir:
        """Track a temporary directory for cleanup.

        Returns:
            The TempDir resource that was registered.
        """
        resource = TempDir(path)
        self.add(resource)
        return resource

    def remove(self, resource: Resource) -> bool:
        """Stop tracking a resource without cleaning it up.

        Only the first registration equal to resource is removed.

        Returns:
            True if a matching resource was tracked.
        """
        with self._lock:
            for i, tracked in enumerate(self._resources):
                if tracked == resource:
                    del self._resources[i]
                    logger.debug("Released tracking of %s", resource.describe())
                    return True
        return False

    def count(self) -> int:
        """Return the number of tracked resources."""
        with self._lock:
            return len(self._resources)

    def list(self) -> list[Resource]:
        """Return a copy of the tracked resources in registration order."""
        with self._lock:
            return list(self._resources)

    def list_by_kind(self, kind: ResourceKind) -> list[Resource]:
        """Return a copy of the tracked resources of one kind."""
        with self._lock:
            return [r for r in self._resources if r.kind is kind]

    def cleanup(self) -> None:
        """Clean up every tracked resource.

        Every resource is attempted even if an earlier one fails with an
        OSError or SafefsError. Any other exception propagates immediately;
        the resources not yet attempted stay tracked, so a later cleanup
        still reaches them.

        Raises:
            CleanupError: If exactly one resource failed.
            CombinedError: If several resources failed.
        """
        self._raise_failures(self._release(self._drain(), isolate_panics=False))

    def cleanup_with_panic_isolation(self) -> None:
        """Clean up every tracked resource, containing unexpected exceptions.

        An unexpected exception from one resource is converted into a
        PanicDuringCleanupError and the remaining resources still run.

        Raises:
            CleanupError: If exactly one resource failed.
            CombinedError: If several resources failed.
        """
        self._raise_failures(self._release(self._drain(), isolate_panics=True))

    def cleanup_if(self, predicate: Callable[[Resource], bool]) -> None:
        """Clean up only the resources matching predicate.

        Matching resources are removed from tracking; the rest stay tracked
        in their original order. Panic isolation applies.

        Raises:
            CleanupError: If exactly one matching resource failed.
            CombinedError: If several matching resources failed.
        """
        selected: list[Resource] = []
        remaining: list[Resource] = []
        with self._lock:
            for resource in self._resources:
                (selected if predicate(resource) else remaining).append(resource)
            self._resources = remaining
        self._raise_failures(self._release(selected, isolate_panics=True))

    def cleanup_with_cancellation(self, token: CancellationToken) -> None:
        """Clean up all resources, then report cancellation.

        Cleanup always runs. If the token is cancelled the cancellation
        error is raised, combined with any cleanup failure.

        Raises:
            CancelledOperationError: If the token is cancelled and cleanup succeeded.
            CleanupError: If cleanup failed and the token is not cancelled.
            CombinedError: If both apply, or several resources failed.
        """
        cleanup_error: SafefsError | None = None
        try:
            self.cleanup_with_panic_isolation()
        except SafefsError as e:
            cleanup_error = e

        cancel_error = token.error("cleanup") if token.cancelled else None
        error = combine_errors(cancel_error, cleanup_error)
        if error is not None:
            raise error

    def __enter__(self) -> ResourceManager:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.cleanup_with_panic_isolation()
            return
        try:
            self.cleanup_with_panic_isolation()
        except SafefsError as cleanup_error:
            # The body's exception takes precedence
            logger.warning("Cleanup after failure also failed: %s", cleanup_error)

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"ResourceManager(count={self.count()})"

    def _drain(self) -> list[Resource]:
        with self._lock:
            resources = self._resources
            self._resources = []
        return resources

    def _release(self, resources: list[Resource], *, isolate_panics: bool) -> list[CleanupError]:
        failures: list[CleanupError] = []
        for i, resource in enumerate(resources):
            description = resource.describe()
            try:
                resource.cleanup()
            except (OSError, SafefsError) as e:
                logger.warning("Failed to clean up %s: %s", description, e)
                failures.append(
                    CleanupError(
                        f"failed to clean up {description}: {e}",
                        operation="cleanup",
                        cause=e,
                    )
                )
            except Exception as e:
                if not isolate_panics:
                    self._restore(resources[i + 1 :])
                    raise
                logger.warning("Panic during cleanup of %s: %r", description, e)
                failures.append(
                    PanicDuringCleanupError(
                        f"panic during cleanup of {description}: {e!r}",
                        operation="cleanup",
                        cause=e,
                    )
                )
        return failures

    def _restore(self, untried: list[Resource]) -> None:
        """Put resources that were never attempted back at the front of the registry."""
        if not untried:
            return
        with self._lock:
            self._resources[:0] = untried
        logger.debug("Still tracking %d resources after aborted cleanup", len(untried))

    @staticmethod
    def _raise_failures(failures: list[CleanupError]) -> None:
        error = combine_errors(*failures)
        if error is not None:
            raise error
