"""Public entry points for Tree Sync.

None of these raise for filesystem trouble: problems are logged and
reflected in the returned statistics or handle.  Invalid arguments (an
unknown engine, a negative tolerance) are caller errors and raise
``ValueError`` before anything on disk is looked at.
"""

from __future__ import annotations

import functools
import logging
import os
import time
from pathlib import Path

from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from tree_sync.comparator import PathComparator
from tree_sync.config import ENGINE_DIFF, ENGINE_FULL, ENGINES
from tree_sync.copier import EntrySynchronizer, SyncStats
from tree_sync.diff import ApplyReconciler, DiffReport, TreeDiffEngine
from tree_sync.errors import ListingError
from tree_sync.full_sync import FullSyncOrchestrator
from tree_sync.listing import check_roots, list_names
from tree_sync.watcher import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_QUEUE_SIZE,
    RealTimeSynchronizer,
)

logger = logging.getLogger(__name__)


def sync(
    source_root: str | os.PathLike,
    dest_root: str | os.PathLike,
    tolerance_ms: int = 0,
    engine: str = ENGINE_FULL,
) -> SyncStats:
    """
    Make *dest_root* an exact copy of *source_root*, once.

    ``engine`` selects the two-pass walk (``"full"``) or the single-pass
    merge-join (``"diff"``); both end in the same state.  The destination
    root is created when missing.

    Raises ``ValueError`` for an unknown engine or a negative tolerance.
    """
    if engine not in ENGINES:
        raise ValueError(f"Unknown engine {engine!r}, expected one of {ENGINES}")
    comparator = PathComparator(tolerance_ms)
    source, dest = Path(source_root), Path(dest_root)
    stats = SyncStats(started=time.time())

    problem = check_roots(source, dest)
    if problem:
        logger.error("Cannot synchronize: %s", problem)
        stats.record_failure(problem)
        stats.finished = time.time()
        return stats

    try:
        dest.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Cannot create destination %s: %s", dest, exc)
        stats.record_failure(f"{dest}: {exc}")
        stats.finished = time.time()
        return stats

    logger.info("Synchronizing %s -> %s (%s engine)", source, dest, engine)
    entries = EntrySynchronizer(comparator, stats)
    if engine == ENGINE_DIFF:
        TreeDiffEngine(comparator, stats).walk(source, dest, ApplyReconciler(entries))
    else:
        FullSyncOrchestrator(entries).run(source, dest)

    stats.finished = time.time()
    logger.info("Finished in %.2fs: %s", stats.duration, stats.summary())
    return stats


def compare(
    source_root: str | os.PathLike,
    dest_root: str | os.PathLike,
    tolerance_ms: int = 0,
) -> DiffReport:
    """List what :func:`sync` would change, without changing anything.

    Raises ``ValueError`` for a negative tolerance.
    """
    source, dest = Path(source_root), Path(dest_root)
    report = DiffReport(source, dest)
    engine = TreeDiffEngine(PathComparator(tolerance_ms))

    if not dest.is_dir():
        # nothing on the destination side yet
        try:
            for name in list_names(source):
                report.added(source / name, dest / name)
        except ListingError as exc:
            logger.error("%s", exc)
        return report

    engine.walk(source, dest, report)
    logger.info("Compared %s with %s: %s", source, dest, report.summary())
    return report


def start_real_time_sync(
    source_root: str | os.PathLike,
    dest_root: str | os.PathLike,
    tolerance_ms: int = 0,
    queue_size: int = DEFAULT_QUEUE_SIZE,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    use_polling: bool = False,
    polling_interval: float = 1.0,
) -> RealTimeSynchronizer:
    """
    Synchronize once, then keep following the source tree.

    Returns the running synchronizer; check ``is_running`` and ``error``
    to find out whether startup worked.  Stop it with ``shutdown_now()``.
    ``use_polling`` swaps the native notification backend for watchdog's
    polling observer (network shares, containers without inotify).
    Raises ``ValueError`` for a negative tolerance.
    """
    if use_polling:
        factory = functools.partial(PollingObserver, timeout=polling_interval)
    else:
        factory = Observer
    synchronizer = RealTimeSynchronizer(
        source_root,
        dest_root,
        tolerance_ms=tolerance_ms,
        queue_size=queue_size,
        poll_interval=poll_interval,
        observer_factory=factory,
    )
    synchronizer.start()
    return synchronizer
