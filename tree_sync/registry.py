"""Per-directory change subscriptions.

The whole source tree is covered by a single recursive watchdog watch on
its root, so a large tree costs one inotify instance rather than one per
directory.  The registry is the ledger of which directories are
subscribed: a directory joins it once its contents have been seeded and
leaves it when the directory is deleted.  Events reported for a path
whose directory is not subscribed are not acted upon.

The registry is used from the synchronizer's worker thread only and does
no locking of its own.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers.api import BaseObserver, ObservedWatch

from tree_sync.errors import SubscriptionError

logger = logging.getLogger(__name__)


class WatchRegistry:
    """Tracks subscribed directories under one recursive watch."""

    def __init__(self, observer: BaseObserver, handler: FileSystemEventHandler):
        self._observer = observer
        self._handler = handler
        self._root: Path | None = None
        self._watch: ObservedWatch | None = None
        self._directories: set[Path] = set()

    @property
    def root(self) -> Path | None:
        return self._root

    @property
    def is_watching(self) -> bool:
        return self._watch is not None

    def watch_root(self, root: Path) -> ObservedWatch | None:
        """
        Schedule the recursive watch covering *root* and everything below.

        Returns ``None`` when *root* disappeared first.  Any other failure
        means the notification mechanism itself is broken and raises
        :class:`SubscriptionError`.
        """
        root = Path(root)
        if self._watch is not None and self._root == root:
            return self._watch
        self._release_watch()
        try:
            watch = self._observer.schedule(self._handler, str(root), recursive=True)
        except (FileNotFoundError, NotADirectoryError):
            logger.debug("Not watching %s: directory is gone", root)
            return None
        except OSError as exc:
            raise SubscriptionError(root, exc) from exc
        self._root, self._watch = root, watch
        logger.debug("Watching tree %s", root)
        return watch

    def register(self, directory: Path) -> bool:
        """
        Subscribe *directory*; False when it no longer exists.

        The directory must lie inside the watched tree.
        """
        directory = Path(directory)
        if directory in self._directories:
            return True
        if self._root is None or not (directory == self._root or self._root in directory.parents):
            raise SubscriptionError(directory, "outside the watched tree")
        if not os.path.isdir(directory):
            logger.debug("Not subscribing %s: directory is gone", directory)
            return False
        self._directories.add(directory)
        return True

    def deregister(self, directory: Path) -> bool:
        """Unsubscribe *directory*; False if it was not subscribed."""
        directory = Path(directory)
        if directory not in self._directories:
            return False
        self._directories.discard(directory)
        if directory == self._root:
            self._release_watch()
        logger.debug("Unsubscribed %s", directory)
        return True

    def deregister_tree(self, directory: Path) -> int:
        """Unsubscribe *directory* and every subscribed directory below it."""
        directory = Path(directory)
        doomed = [
            path for path in self._directories
            if path == directory or directory in path.parents
        ]
        for path in doomed:
            self.deregister(path)
        return len(doomed)

    def owner_of(self, path: Path) -> Path | None:
        """
        Return the subscribed directory an event on *path* belongs to.

        That is the parent directory, or the root itself for an event on
        the root.  ``None`` means nobody is subscribed for it.
        """
        path = Path(path)
        if path == self._root:
            return path if path in self._directories else None
        parent = path.parent
        return parent if parent in self._directories else None

    def clear(self) -> None:
        """Drop every subscription and release the watch."""
        self._directories.clear()
        self._release_watch()

    def _release_watch(self) -> None:
        watch, self._watch = self._watch, None
        if watch is None:
            return
        try:
            self._observer.unschedule(watch)
        except (KeyError, OSError) as exc:
            # the emitter stops itself once its directory is deleted
            logger.debug("Watch for %s already released (%r)", self._root, exc)

    def is_registered(self, directory: Path) -> bool:
        return Path(directory) in self._directories

    def __contains__(self, directory: object) -> bool:
        return isinstance(directory, (str, Path)) and self.is_registered(Path(directory))

    def __len__(self) -> int:
        return len(self._directories)

    def __iter__(self) -> Iterator[Path]:
        return iter(sorted(self._directories))
