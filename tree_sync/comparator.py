"""Classification of one (source, destination) path pair.

The comparator answers a single question: what does the destination
entry need so that it matches the source entry?  It never touches the
filesystem beyond reading attributes.

Two files with the same size and the same modification time are treated
as identical even when their bytes differ.  There is no checksum step.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from tree_sync.errors import MetadataError


class SyncStatus(Enum):
    """What a destination entry needs to match its source entry."""

    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    SYNCHRONIZED = "synchronized"


@dataclass(frozen=True)
class Attributes:
    """Snapshot of the attributes that drive classification."""

    is_dir: bool
    size: int
    mtime_ms: int

    @classmethod
    def from_stat(cls, st: os.stat_result) -> Attributes:
        return cls(
            is_dir=stat.S_ISDIR(st.st_mode),
            size=st.st_size,
            mtime_ms=st.st_mtime_ns // 1_000_000,
        )


def read_attributes(path: str | os.PathLike) -> Attributes | None:
    """Return the attributes of *path*, or ``None`` if it does not exist.

    Symbolic links are not followed.  Any other failure raises
    :class:`MetadataError`.
    """
    try:
        st = os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as exc:
        raise MetadataError(path, exc) from exc
    return Attributes.from_stat(st)


def classify(
    source_exists: bool,
    dest_exists: bool,
    source_attrs: Attributes | None = None,
    dest_attrs: Attributes | None = None,
    tolerance_ms: int = 0,
) -> SyncStatus:
    """Classify a path pair.

    Rules, in order:

    1. neither side exists: SYNCHRONIZED
    2. only the source exists: ADDED
    3. only the destination exists: DELETED
    4. one side is a directory and the other is not: MODIFIED
    5. both are directories: SYNCHRONIZED (contents are handled by recursion)
    6. both are files: MODIFIED when the mtimes differ by *more* than
       ``tolerance_ms`` or the sizes differ, otherwise SYNCHRONIZED
    """
    if tolerance_ms < 0:
        raise ValueError(f"tolerance must be non-negative, got {tolerance_ms}")

    if not source_exists and not dest_exists:
        return SyncStatus.SYNCHRONIZED
    if not dest_exists:
        return SyncStatus.ADDED
    if not source_exists:
        return SyncStatus.DELETED

    if source_attrs is None or dest_attrs is None:
        raise ValueError("attributes are required when both sides exist")

    if source_attrs.is_dir != dest_attrs.is_dir:
        return SyncStatus.MODIFIED
    if source_attrs.is_dir:
        return SyncStatus.SYNCHRONIZED

    if abs(source_attrs.mtime_ms - dest_attrs.mtime_ms) > tolerance_ms:
        return SyncStatus.MODIFIED
    if source_attrs.size != dest_attrs.size:
        return SyncStatus.MODIFIED
    return SyncStatus.SYNCHRONIZED


class PathComparator:
    """Classifies path pairs with a fixed modification-time tolerance."""

    def __init__(self, tolerance_ms: int = 0):
        if tolerance_ms < 0:
            raise ValueError(f"tolerance must be non-negative, got {tolerance_ms}")
        self._tolerance_ms = int(tolerance_ms)

    @property
    def tolerance_ms(self) -> int:
        return self._tolerance_ms

    def classify(
        self,
        source_attrs: Attributes | None,
        dest_attrs: Attributes | None,
    ) -> SyncStatus:
        """Classify two already-read snapshots (``None`` means missing)."""
        return classify(
            source_attrs is not None,
            dest_attrs is not None,
            source_attrs,
            dest_attrs,
            self._tolerance_ms,
        )

    def status(self, source: Path, dest: Path) -> SyncStatus:
        """Read both sides fresh from disk and classify them."""
        return self.classify(read_attributes(source), read_attributes(dest))
