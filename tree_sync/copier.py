"""
Entry-level reconciliation for Tree Sync.

Brings one destination entry in line with its source counterpart:
removes what no longer belongs, then copies files (bytes and attributes)
or creates empty directories.  Walkers call :meth:`EntrySynchronizer.sync_level`
once per node and decide from the returned status whether to descend.
Failures never roll back; the entry is left as it is and the walk goes on.
"""

from __future__ import annotations

import logging
import os
import shutil
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from tree_sync.comparator import Attributes, PathComparator, SyncStatus, read_attributes
from tree_sync.errors import ListingError, MutationError, SyncError
from tree_sync.listing import is_real_dir, list_entries

logger = logging.getLogger(__name__)

_MAX_ERRORS = 1000


@dataclass
class SyncStats:
    """Counters for one synchronization run (or one real-time session)."""
    added: int = 0
    deleted: int = 0
    modified: int = 0
    unchanged: int = 0
    failed: int = 0
    bytes_copied: int = 0
    started: float = 0.0
    finished: float = 0.0
    errors: list[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def mutations(self) -> int:
        return self.added + self.deleted + self.modified

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def duration(self) -> float:
        if self.finished and self.started:
            return self.finished - self.started
        return 0.0

    def record(self, status: SyncStatus, bytes_copied: int = 0) -> None:
        with self._lock:
            if status is SyncStatus.ADDED:
                self.added += 1
            elif status is SyncStatus.DELETED:
                self.deleted += 1
            elif status is SyncStatus.MODIFIED:
                self.modified += 1
            else:
                self.unchanged += 1
            self.bytes_copied += bytes_copied

    def record_failure(self, error: SyncError | str) -> None:
        with self._lock:
            self.failed += 1
            self.errors.append(str(error))
            # Keep the most recent errors only
            if len(self.errors) > _MAX_ERRORS:
                self.errors = self.errors[-_MAX_ERRORS:]

    def summary(self) -> str:
        return (
            f"{self.added} added, {self.modified} modified, "
            f"{self.deleted} deleted, {self.unchanged} unchanged, "
            f"{self.failed} failed"
        )


def remove_entry(path: Path, is_dir: bool) -> None:
    """Delete *path*, recursively when it is a directory."""
    try:
        if is_dir:
            shutil.rmtree(path)
        else:
            os.unlink(path)
    except FileNotFoundError:
        logger.debug("Already gone: %s", path)
    except OSError as exc:
        raise MutationError(path, exc) from exc


def materialize_entry(source: Path, dest: Path, is_dir: bool) -> int:
    """
    Create *dest* from *source*.

    Directories are created empty with the source's stat copied over;
    their content is the walker's business.  Files are copied with their
    attributes, replacing whatever is at *dest*.  Returns bytes copied.
    """
    try:
        if is_dir:
            os.mkdir(dest)
            shutil.copystat(source, dest, follow_symlinks=False)
            return 0
        shutil.copy2(source, dest, follow_symlinks=False)
        return os.lstat(dest).st_size
    except OSError as exc:
        raise MutationError(dest, exc) from exc


class EntrySynchronizer:
    """
    Applies single-level reconciliation between corresponding paths.

    Parameters
    ----------
    comparator : PathComparator
        Decides what each path pair needs.
    stats : SyncStats, optional
        Where to record outcomes; a fresh one is created when omitted.
    """

    def __init__(self, comparator: PathComparator, stats: SyncStats | None = None):
        self.comparator = comparator
        self.stats = stats or SyncStats()

    def _sync_level(
        self, source: Path, dest: Path, count_unchanged: bool = True
    ) -> tuple[SyncStatus, Attributes | None]:
        source_attrs = read_attributes(source)
        dest_attrs = read_attributes(dest)
        status = self.comparator.classify(source_attrs, dest_attrs)

        if status is SyncStatus.SYNCHRONIZED:
            if count_unchanged:
                self.stats.record(status)
            return status, source_attrs

        if status in (SyncStatus.DELETED, SyncStatus.MODIFIED):
            remove_entry(dest, dest_attrs.is_dir)
            logger.debug("Removed %s", dest)

        copied = 0
        if status in (SyncStatus.ADDED, SyncStatus.MODIFIED):
            copied = materialize_entry(source, dest, source_attrs.is_dir)
            logger.debug("Copied %s -> %s (%d bytes)", source, dest, copied)

        self.stats.record(status, copied)
        return status, source_attrs

    def sync_level(self, source: Path, dest: Path) -> SyncStatus:
        """
        Reconcile *dest* with *source* at this level only.

        Raises :class:`~tree_sync.errors.MetadataError` or
        :class:`~tree_sync.errors.MutationError` on I/O failure.
        """
        status, _ = self._sync_level(source, dest)
        return status

    def _try(
        self, source: Path, dest: Path, count_unchanged: bool = True
    ) -> tuple[SyncStatus, Attributes | None] | None:
        try:
            return self._sync_level(source, dest, count_unchanged)
        except SyncError as exc:
            logger.warning("%s", exc)
            self.stats.record_failure(exc)
            return None

    def try_sync_level(
        self, source: Path, dest: Path, count_unchanged: bool = True
    ) -> SyncStatus | None:
        """Like :meth:`sync_level` but logs failures and returns ``None``."""
        result = self._try(source, dest, count_unchanged)
        return result[0] if result else None

    def sync_tree(
        self,
        source: Path,
        dest: Path,
        on_directory: Callable[[Path], None] | None = None,
    ) -> SyncStatus | None:
        """
        Reconcile the subtree rooted at *source* top-down.

        Creates and updates only; destination leftovers under matched
        directories are not removed.  Nothing below a failed node is
        visited.  *on_directory* is called for every source directory
        reached, after it has been materialized.  Returns the status of
        the root node (``None`` on failure).
        """
        source, dest = Path(source), Path(dest)
        root_status = None
        stack = [(source, dest)]
        while stack:
            src, dst = stack.pop()
            result = self._try(src, dst)
            if result is None:
                if src == source:
                    return None
                continue
            status, attrs = result
            if src == source:
                root_status = status
            if attrs is None or not attrs.is_dir:
                continue

            if on_directory is not None:
                on_directory(src)
            try:
                children = list_entries(src)
            except ListingError as exc:
                logger.warning("%s", exc)
                self.stats.record_failure(exc)
                continue
            # reversed so that children pop off the stack in sorted order
            for entry in reversed(children):
                stack.append((src / entry.name, dst / entry.name))
        return root_status


def subdirectories(directory: Path) -> list[Path]:
    """Sorted real (non-symlink) subdirectories of *directory*."""
    return [directory / e.name for e in list_entries(directory) if is_real_dir(e)]
