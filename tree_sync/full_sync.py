"""Two-pass full synchronization.

Pass 1 walks the source tree and creates or updates every destination
entry.  Pass 2 walks the destination tree and deletes every entry whose
source counterpart is gone.  The end state is the same as the one the
merge-join in :mod:`tree_sync.diff` produces.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from tree_sync.comparator import SyncStatus
from tree_sync.copier import EntrySynchronizer
from tree_sync.errors import ListingError
from tree_sync.listing import is_real_dir, list_entries

logger = logging.getLogger(__name__)


class FullSyncOrchestrator:
    """Runs the copy pass then the delete pass over a pair of roots."""

    def __init__(self, entries: EntrySynchronizer):
        self.entries = entries

    def run(self, source_root: Path, dest_root: Path) -> None:
        source_root, dest_root = Path(source_root), Path(dest_root)
        logger.debug("Copy pass %s -> %s", source_root, dest_root)
        self.copy_pass(source_root, dest_root)
        logger.debug("Delete pass %s", dest_root)
        self.delete_pass(source_root, dest_root)

    def copy_pass(self, source_root: Path, dest_root: Path) -> None:
        """Create and update everything present under *source_root*."""
        self.entries.sync_tree(source_root, dest_root)

    def delete_pass(self, source_root: Path, dest_root: Path) -> None:
        """
        Remove destination entries with no surviving source counterpart.

        Once a node is removed its former children are not visited.
        """
        stack = [(source_root, dest_root)]
        while stack:
            src_dir, dst_dir = stack.pop()
            try:
                children = list_entries(dst_dir)
            except ListingError as exc:
                logger.warning("%s; skipping subtree", exc)
                self.entries.stats.record_failure(exc)
                continue

            descend = []
            for entry in children:
                src = src_dir / entry.name
                dst = dst_dir / entry.name
                status = self.entries.try_sync_level(src, dst, count_unchanged=False)
                if status is SyncStatus.MODIFIED and os.path.isdir(dst) and not os.path.islink(dst):
                    # a directory replaced a file since the copy pass; fill it
                    self.entries.sync_tree(src, dst)
                    continue
                if status in (SyncStatus.DELETED, SyncStatus.MODIFIED):
                    # removed or replaced, its old children are gone
                    continue
                if is_real_dir(entry):
                    descend.append((src, dst))
            stack.extend(reversed(descend))
