"""Real-time synchronization for Tree Sync.

Uses the watchdog library to follow changes under the source tree and
applies a localized reconciliation for every event.  Events are only
hints: each one triggers a fresh look at the filesystem, so duplicated,
reordered or stale events converge on the same result.

Threading model: watchdog's observer threads only enqueue events on a
bounded queue.  One worker thread drains the queue, one event at a time,
and is the only thread that touches the destination tree and the watch
registry.  When the queue is full the event is dropped and its directory
is marked as overflowed; the worker then re-scans that directory.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from tree_sync.comparator import PathComparator, read_attributes
from tree_sync.copier import EntrySynchronizer, SyncStats, subdirectories
from tree_sync.diff import TreeDiffEngine
from tree_sync.errors import ListingError, MutationError, SubscriptionError, SyncError
from tree_sync.full_sync import FullSyncOrchestrator
from tree_sync.listing import check_roots
from tree_sync.registry import WatchRegistry

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 10_000
DEFAULT_POLL_INTERVAL = 0.5


class SyncState(Enum):
    INIT = "init"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class EventKind(Enum):
    CREATE = "create"
    DELETE = "delete"
    MODIFY = "modify"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class WatchEvent:
    """A change under a watched directory (the directory itself for OVERFLOW)."""
    kind: EventKind
    path: Path


class QueueingHandler(FileSystemEventHandler):
    """Watchdog handler that feeds change events into a bounded queue."""

    def __init__(self, events: queue.Queue):
        super().__init__()
        self._events = events
        self._overflowed: set[Path] = set()
        self._lock = threading.Lock()

    def _put(self, kind: EventKind, raw_path: str | bytes) -> None:
        path = Path(os.fsdecode(raw_path))
        try:
            self._events.put_nowait(WatchEvent(kind, path))
        except queue.Full:
            with self._lock:
                first = path.parent not in self._overflowed
                self._overflowed.add(path.parent)
            if first:
                logger.warning("Event queue full, dropping events under %s", path.parent)

    def take_overflowed(self) -> list[Path]:
        """Return and forget the directories whose events were dropped."""
        with self._lock:
            directories = sorted(self._overflowed)
            self._overflowed.clear()
        return directories

    def on_created(self, event: FileSystemEvent) -> None:
        self._put(EventKind.CREATE, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._put(EventKind.DELETE, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._put(EventKind.MODIFY, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # a rename is a deletion of the old name and a creation of the new one
        self._put(EventKind.DELETE, event.src_path)
        self._put(EventKind.CREATE, event.dest_path)

    def on_closed(self, event: FileSystemEvent) -> None:
        # a writer finished; the file may have changed after the last MODIFY
        self._put(EventKind.MODIFY, event.src_path)


class _WatchingReconciler:
    """Applies tree-walk findings and keeps new directories subscribed."""

    def __init__(self, owner: RealTimeSynchronizer):
        self._owner = owner

    def added(self, source: Path, dest: Path) -> None:
        self._owner._on_created(source, dest)

    def modified(self, source: Path, dest: Path) -> None:
        self._owner._on_created(source, dest)

    def deleted(self, source: Path, dest: Path) -> None:
        self._owner._on_deleted(source, dest)


class RealTimeSynchronizer:
    """
    Keeps *dest_root* in line with *source_root* as the source changes.

    Usage:
        synchronizer = RealTimeSynchronizer(source, dest, tolerance_ms=0)
        synchronizer.start()
        ...
        synchronizer.shutdown_now()

    ``start`` returns once the initial synchronization is done and every
    source directory is watched (or once startup failed).  A failure of
    the notification mechanism ends the session; it is logged and kept in
    :attr:`error` rather than raised.
    """

    def __init__(
        self,
        source_root: str | os.PathLike,
        dest_root: str | os.PathLike,
        tolerance_ms: int = 0,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ):
        self.source_root = Path(os.path.abspath(source_root))
        self.dest_root = Path(os.path.abspath(dest_root))
        self.stats = SyncStats()

        comparator = PathComparator(tolerance_ms)
        self._entries = EntrySynchronizer(comparator, self.stats)
        self._engine = TreeDiffEngine(comparator, self.stats)
        self._full_sync = FullSyncOrchestrator(self._entries)
        self._reconciler = _WatchingReconciler(self)

        self._events: queue.Queue = queue.Queue(maxsize=max(1, queue_size))
        self._handler = QueueingHandler(self._events)
        self._poll_interval = poll_interval
        self._observer = observer_factory()
        self._registry = WatchRegistry(self._observer, self._handler)

        self._state = SyncState.INIT
        self._error: BaseException | None = None
        self._stop = threading.Event()
        self._ready = threading.Event()
        self._thread: threading.Thread | None = None

    # ---- lifecycle ----

    def start(self) -> None:
        """Start the worker and wait until it is running (or has failed)."""
        if self._thread is not None:
            raise RuntimeError("Real-time synchronizer already started")
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="RealTimeSync"
        )
        self._thread.start()
        self._ready.wait()

    def shutdown_now(self) -> None:
        """Ask the worker to stop and block until everything is released."""
        self._stop.set()
        thread = self._thread
        if thread is None:
            self._state = SyncState.STOPPED
            return
        if thread is not threading.current_thread():
            thread.join()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the worker to exit; True once it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    # ---- status ----

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Return whether events are currently being processed."""
        return self._state is SyncState.RUNNING

    @property
    def error(self) -> BaseException | None:
        """The failure that ended the session, if any."""
        return self._error

    @property
    def watched_count(self) -> int:
        return len(self._registry)

    # ---- worker ----

    def _run(self) -> None:
        try:
            self._observer.start()
            self._initial_sync()
            self._state = SyncState.RUNNING
            self._ready.set()
            self._loop()
        except SyncError as exc:
            logger.error("%s; real-time sync stopped", exc)
            self._error = exc
        except Exception as exc:
            logger.exception("Real-time sync of %s failed", self.source_root)
            self._error = exc
        finally:
            self._release()
            self._state = SyncState.STOPPED
            self._ready.set()
            logger.info("Real-time sync stopped (%s).", self.stats.summary())

    def _initial_sync(self) -> None:
        problem = check_roots(self.source_root, self.dest_root)
        if problem:
            raise SyncError(self.source_root, problem)
        try:
            self.dest_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise MutationError(self.dest_root, exc) from exc

        logger.info("Initial sync %s -> %s", self.source_root, self.dest_root)
        self._full_sync.run(self.source_root, self.dest_root)
        self._watch_root()
        self._subscribe_tree(self.source_root)
        # catch whatever appeared between the copy and the subscriptions
        self._engine.walk(self.source_root, self.dest_root, self._reconciler)
        logger.info(
            "Watching %d directories under %s", len(self._registry), self.source_root
        )

    def _loop(self) -> None:
        while not self._stop.is_set():
            if not len(self._registry):
                logger.warning(
                    "No more directories to watch under %s; stopping.", self.source_root
                )
                return
            if not self._observer.is_alive():
                raise SubscriptionError(self.source_root, "observer thread stopped")

            for directory in self._handler.take_overflowed():
                self._dispatch(WatchEvent(EventKind.OVERFLOW, directory))

            try:
                event = self._events.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            self._dispatch(event)

        self._state = SyncState.STOPPING
        logger.info("Stopping real-time sync of %s", self.source_root)

    def _release(self) -> None:
        self._registry.clear()
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join()

    # ---- event handling ----

    def _dispatch(self, event: WatchEvent) -> None:
        """Process one event; only a broken subscription escapes."""
        logger.debug("Event %s %s", event.kind.value, event.path)
        try:
            self._process(event)
        except SubscriptionError:
            raise
        except SyncError as exc:
            logger.warning("%s", exc)
            self.stats.record_failure(exc)
        except OSError as exc:
            logger.warning("Failed to sync %s: %s", event.path, exc)
            self.stats.record_failure(f"{event.path}: {exc}")

    def _process(self, event: WatchEvent) -> None:
        try:
            rel = event.path.relative_to(self.source_root)
        except ValueError:
            logger.debug("Ignoring event outside %s: %s", self.source_root, event.path)
            return
        dest = self.dest_root / rel

        if event.kind is not EventKind.OVERFLOW and self._registry.owner_of(event.path) is None:
            logger.debug("Ignoring event in unsubscribed directory: %s", event.path)
            return

        if event.kind is EventKind.DELETE:
            self._on_deleted(event.path, dest)
        elif event.kind is EventKind.CREATE:
            self._on_created(event.path, dest)
        elif event.kind is EventKind.MODIFY:
            self._on_modified(event.path, dest)
        elif event.kind is EventKind.OVERFLOW:
            self._on_overflow(event.path, dest)

    def _on_deleted(self, source: Path, dest: Path) -> None:
        self._registry.deregister_tree(source)
        attrs = read_attributes(source)
        if attrs is not None and attrs.is_dir:
            # recreated after the event was queued; old subscriptions are stale
            if source == self.source_root:
                self._watch_root()
            self._seed(source, dest)
            return
        if source == self.source_root:
            logger.warning("Source root %s was deleted", source)
            return
        self._entries.try_sync_level(source, dest)

    def _on_created(self, source: Path, dest: Path) -> None:
        attrs = read_attributes(source)
        if attrs is not None and attrs.is_dir:
            self._seed(source, dest)
        else:
            self._entries.try_sync_level(source, dest)

    def _on_modified(self, source: Path, dest: Path) -> None:
        attrs = read_attributes(source)
        if attrs is not None and attrs.is_dir:
            # content changes arrive as events on the children
            return
        self._entries.try_sync_level(source, dest)

    def _on_overflow(self, directory: Path, dest: Path) -> None:
        logger.warning("Events were dropped under %s; rescanning", directory)
        attrs = read_attributes(directory)
        if attrs is None or not attrs.is_dir:
            self._on_deleted(directory, dest)
            return
        self._subscribe_tree(directory)
        self._engine.walk(directory, dest, self._reconciler)

    # ---- subscriptions ----

    def _watch_root(self) -> None:
        if self._registry.watch_root(self.source_root) is None:
            raise SyncError(self.source_root, "source directory disappeared")

    def _seed(self, source: Path, dest: Path) -> None:
        """Copy a new directory, watch it, then re-scan it for stragglers."""
        if self._entries.sync_tree(source, dest) is None:
            return
        self._subscribe_tree(source)
        self._engine.walk(source, dest, self._reconciler)

    def _subscribe_tree(self, directory: Path) -> None:
        stack = [directory]
        while stack:
            current = stack.pop()
            if not self._registry.register(current):
                continue
            try:
                stack.extend(reversed(subdirectories(current)))
            except ListingError as exc:
                logger.warning("%s; subdirectories not watched", exc)
                self.stats.record_failure(exc)
