"""Exceptions for Tree Sync.

Every error carries the path it concerns so callers can log it and move
on to the next entry.  Only :class:`SubscriptionError` is fatal, and only
to the real-time loop.
"""

from __future__ import annotations

import os
from pathlib import Path


class SyncError(Exception):
    """Base class for entry-level synchronization failures."""

    action = "Sync failed"

    def __init__(self, path: str | os.PathLike, cause: BaseException | str | None = None):
        self.path = Path(path)
        self.cause = cause
        message = f"{self.action}: {self.path}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class ListingError(SyncError):
    """A directory could not be enumerated; its subtree is skipped."""

    action = "Cannot list directory"


class MetadataError(SyncError):
    """The attributes of one entry could not be read."""

    action = "Cannot read attributes"


class MutationError(SyncError):
    """A copy or delete failed; the entry may be left half-updated."""

    action = "Cannot update"


class SubscriptionError(SyncError):
    """The change-notification mechanism failed.

    Raised when a watch cannot be created for a reason other than the
    directory having disappeared, or when the observer stops on its own.
    """

    action = "Change notifications failed"
