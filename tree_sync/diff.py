"""Merge-join comparison of two directory trees.

At each level both directories are listed once, in the same sorted
order, and two cursors advance through the listings:

- a name only on the source side is ADDED,
- a name only on the destination side is DELETED,
- a name on both sides is classified by the comparator; matching
  directories are descended into.

What happens to each finding is up to a :class:`Reconciler`.  The engine
itself never touches the filesystem beyond listing and reading
attributes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

from tree_sync.comparator import PathComparator, SyncStatus, read_attributes
from tree_sync.copier import EntrySynchronizer, SyncStats
from tree_sync.errors import ListingError, MetadataError
from tree_sync.listing import list_names

logger = logging.getLogger(__name__)


class Reconciler(Protocol):
    """Receives the findings of a tree walk."""

    def added(self, source: Path, dest: Path) -> None: ...

    def deleted(self, source: Path, dest: Path) -> None: ...

    def modified(self, source: Path, dest: Path) -> None: ...


class ApplyReconciler:
    """Makes the destination match the source for every finding."""

    def __init__(self, entries: EntrySynchronizer):
        self.entries = entries

    def added(self, source: Path, dest: Path) -> None:
        # an unmatched directory is never descended by the engine
        self.entries.sync_tree(source, dest)

    def modified(self, source: Path, dest: Path) -> None:
        self.entries.sync_tree(source, dest)

    def deleted(self, source: Path, dest: Path) -> None:
        self.entries.try_sync_level(source, dest)


class DiffReport:
    """Collects findings without changing anything (dry run)."""

    def __init__(self, source_root: Path, dest_root: Path):
        self.source_root = Path(source_root)
        self.dest_root = Path(dest_root)
        self.entries: list[tuple[str, SyncStatus]] = []

    def _add(self, source: Path, status: SyncStatus) -> None:
        rel = os.path.relpath(source, self.source_root)
        self.entries.append((Path(rel).as_posix(), status))

    def added(self, source: Path, dest: Path) -> None:
        self._add(source, SyncStatus.ADDED)

    def deleted(self, source: Path, dest: Path) -> None:
        self._add(source, SyncStatus.DELETED)

    def modified(self, source: Path, dest: Path) -> None:
        self._add(source, SyncStatus.MODIFIED)

    def paths(self, status: SyncStatus) -> list[str]:
        return [rel for rel, s in self.entries if s is status]

    @property
    def added_paths(self) -> list[str]:
        return self.paths(SyncStatus.ADDED)

    @property
    def deleted_paths(self) -> list[str]:
        return self.paths(SyncStatus.DELETED)

    @property
    def modified_paths(self) -> list[str]:
        return self.paths(SyncStatus.MODIFIED)

    def __iter__(self) -> Iterator[tuple[str, SyncStatus]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)

    def summary(self) -> str:
        """One-line ``+N ~N -N`` summary."""
        parts = []
        if self.added_paths:
            parts.append(f"+{len(self.added_paths)}")
        if self.modified_paths:
            parts.append(f"~{len(self.modified_paths)}")
        if self.deleted_paths:
            parts.append(f"-{len(self.deleted_paths)}")
        return " ".join(parts) if parts else "no changes"


class TreeDiffEngine:
    """
    Single-pass merge-join walk of a source and a destination tree.

    A listing error skips the affected subtree only; a metadata error
    skips the affected entry only.  Both are logged and counted in
    *stats*.
    """

    def __init__(self, comparator: PathComparator, stats: SyncStats | None = None):
        self.comparator = comparator
        self.stats = stats or SyncStats()

    def _list(self, directory: Path) -> list[str] | None:
        try:
            return list_names(directory)
        except ListingError as exc:
            logger.warning("%s; skipping subtree", exc)
            self.stats.record_failure(exc)
            return None

    def _match(self, source: Path, dest: Path, reconciler: Reconciler) -> bool:
        """Classify a matched name; True when both sides are directories."""
        try:
            source_attrs = read_attributes(source)
            dest_attrs = read_attributes(dest)
        except MetadataError as exc:
            logger.warning("%s; skipping entry", exc)
            self.stats.record_failure(exc)
            return False

        # Either side may have vanished since the listing
        status = self.comparator.classify(source_attrs, dest_attrs)
        if status is SyncStatus.ADDED:
            reconciler.added(source, dest)
        elif status is SyncStatus.DELETED:
            reconciler.deleted(source, dest)
        elif status is SyncStatus.MODIFIED:
            reconciler.modified(source, dest)
        else:
            self.stats.record(status)
            return source_attrs is not None and source_attrs.is_dir
        return False

    def walk(self, source_dir: Path, dest_dir: Path, reconciler: Reconciler) -> None:
        """Compare *source_dir* with *dest_dir* recursively."""
        stack = [(Path(source_dir), Path(dest_dir))]
        while stack:
            src_dir, dst_dir = stack.pop()
            src_names = self._list(src_dir)
            if src_names is None:
                continue
            dst_names = self._list(dst_dir)
            if dst_names is None:
                continue

            descend = []
            i = j = 0
            while i < len(src_names) or j < len(dst_names):
                if i == len(src_names):
                    name = dst_names[j]
                    reconciler.deleted(src_dir / name, dst_dir / name)
                    j += 1
                elif j == len(dst_names):
                    name = src_names[i]
                    reconciler.added(src_dir / name, dst_dir / name)
                    i += 1
                elif src_names[i] < dst_names[j]:
                    name = src_names[i]
                    reconciler.added(src_dir / name, dst_dir / name)
                    i += 1
                elif src_names[i] > dst_names[j]:
                    name = dst_names[j]
                    reconciler.deleted(src_dir / name, dst_dir / name)
                    j += 1
                else:
                    name = src_names[i]
                    if self._match(src_dir / name, dst_dir / name, reconciler):
                        descend.append((src_dir / name, dst_dir / name))
                    i += 1
                    j += 1

            stack.extend(reversed(descend))
