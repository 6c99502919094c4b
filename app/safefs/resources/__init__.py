"""Resource lifecycle module.

This module provides resource tracking with exception-safe cleanup,
cooperative cancellation and cancellation-aware operations.
"""

from safefs.resources.cancellation import CancellationToken
from safefs.resources.context import (
    ContextualOperation,
    check_cancellation_and_cleanup,
    tracked_atomic_write,
)
from safefs.resources.manager import ResourceManager
from safefs.resources.models import CallbackResource, Resource, ResourceKind, TempDir, TempFile

__all__ = [
    "CallbackResource",
    "CancellationToken",
    "ContextualOperation",
    "Resource",
    "ResourceKind",
    "ResourceManager",
    "TempDir",
    "TempFile",
    "check_cancellation_and_cleanup",
    "tracked_atomic_write",
]
