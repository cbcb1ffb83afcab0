"""
Headless runners for Tree Sync.

``run_once`` performs a single synchronization (or a dry-run comparison).
``run_foreground`` synchronizes, then keeps following the source until
SIGINT/SIGTERM or until nothing is left to watch.
"""

import logging
import logging.handlers
import signal
import sys

from tree_sync import __app_name__, __version__
from tree_sync.config import Config
from tree_sync.sync import compare, start_real_time_sync, sync

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(config: Config, console: bool = True) -> None:
    """Configure rotating file log and stderr handler."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT)

    try:
        log_path = config.log_file
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=config.max_log_size_mb * 1024 * 1024,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(fmt)
        root_logger.addHandler(fh)
    except OSError as exc:
        print(f"Cannot write log file: {exc}", file=sys.stderr)

    if console:
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(level)
        sh.setFormatter(fmt)
        root_logger.addHandler(sh)


def run_once(config: Config, dry_run: bool = False) -> int:
    """Synchronize (or compare) once.  Returns a process exit code."""
    if not config.is_configured():
        logger.error("Source and destination folders must both be set.")
        return 2

    if dry_run:
        report = compare(
            config.source_folder,
            config.destination_folder,
            tolerance_ms=config.mtime_tolerance_ms,
        )
        markers = {"added": "+", "modified": "~", "deleted": "-"}
        for rel, status in report:
            print(f"{markers[status.value]} {rel}")
        print(report.summary())
        return 0

    stats = sync(
        config.source_folder,
        config.destination_folder,
        tolerance_ms=config.mtime_tolerance_ms,
        engine=config.engine,
    )
    return 0 if stats.success else 1


def run_foreground(config: Config) -> int:
    """Run real-time sync in the foreground until SIGINT/SIGTERM."""
    if not config.is_configured():
        logger.error("Source and destination folders must both be set.")
        return 2

    logger.info("%s %s starting.", __app_name__, __version__)
    synchronizer = start_real_time_sync(
        config.source_folder,
        config.destination_folder,
        tolerance_ms=config.mtime_tolerance_ms,
        queue_size=config.event_queue_size,
        poll_interval=config.poll_interval,
        use_polling=config.use_polling_observer,
        polling_interval=config.polling_interval,
    )
    if not synchronizer.is_running:
        return 1

    def _handler(sig, frame):
        logger.info("Signal %d received, shutting down.", sig)
        synchronizer.shutdown_now()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)

    print(f"{__app_name__} running (press Ctrl-C to stop)…")
    # short joins keep the main thread responsive to signals
    while not synchronizer.join(timeout=1.0):
        pass
    print(f"{__app_name__} stopped.")
    return 1 if synchronizer.error else 0
