"""Configuration management for Tree Sync.

Stores and retrieves settings from a JSON config file in the
platform-appropriate application data directory.  Command-line arguments
override what is stored here.
"""

import json
import logging
from pathlib import Path
from typing import Any

from tree_sync.platform_utils import get_config_dir as _platform_config_dir
from tree_sync.platform_utils import get_log_path as _platform_log_path

logger = logging.getLogger(__name__)

# One-shot synchronization engines
ENGINE_FULL = "full"  # copy pass over source, then delete pass over destination
ENGINE_DIFF = "diff"  # single merge-join walk of both trees
ENGINES = (ENGINE_FULL, ENGINE_DIFF)

DEFAULT_CONFIG: dict[str, Any] = {
    "source_folder": "",
    "destination_folder": "",
    "mtime_tolerance_ms": 0,  # mtime differences up to this are not a change
    "engine": ENGINE_FULL,
    "watch": False,  # keep following the source after the first sync
    # ---- change notifications ----
    "use_polling_observer": False,  # poll instead of native notifications
    "polling_interval_seconds": 1.0,
    "event_queue_size": 10000,  # events beyond this are dropped and rescanned
    "poll_interval_seconds": 0.5,  # how often the worker checks for shutdown
    # ---- logging ----
    "log_level": "INFO",
    "log_file": "",  # blank = platform default
    "max_log_size_mb": 10,  # rotate log when it exceeds this size
    "log_backup_count": 3,  # number of rotated log files to keep
}


def get_config_dir() -> Path:
    """Return the platform-appropriate application config directory."""
    return _platform_config_dir()


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


class Config:
    """Configuration backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        """Load config from *path*, falling back to the platform default."""
        self._path = Path(path) if path else get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys."""
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as fh:
                    stored = json.load(fh)
                # Merge stored values over defaults so new keys get defaults
                self._data = {**DEFAULT_CONFIG, **stored}
                logger.info("Configuration loaded from %s", self._path)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Could not read config (%s); using defaults.", exc)
                self._data = dict(DEFAULT_CONFIG)
        else:
            self._data = dict(DEFAULT_CONFIG)
            self.save()
            logger.info("Created default configuration at %s", self._path)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
            logger.info("Configuration saved.")
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- folders ----

    @property
    def source_folder(self) -> str:
        """Return the source folder path."""
        return self._data["source_folder"]

    @source_folder.setter
    def source_folder(self, value: str) -> None:
        self._data["source_folder"] = str(value)

    @property
    def destination_folder(self) -> str:
        """Return the destination folder path."""
        return self._data["destination_folder"]

    @destination_folder.setter
    def destination_folder(self, value: str) -> None:
        self._data["destination_folder"] = str(value)

    # ---- synchronization ----

    @property
    def mtime_tolerance_ms(self) -> int:
        """Return the modification-time tolerance in milliseconds."""
        return int(self._data.get("mtime_tolerance_ms", 0))

    @mtime_tolerance_ms.setter
    def mtime_tolerance_ms(self, value: int) -> None:
        """Set the tolerance (minimum 0 ms)."""
        self._data["mtime_tolerance_ms"] = max(0, int(value))

    @property
    def engine(self) -> str:
        """Return the one-shot engine name."""
        return self._data.get("engine", ENGINE_FULL)

    @engine.setter
    def engine(self, value: str) -> None:
        if value not in ENGINES:
            value = ENGINE_FULL
        self._data["engine"] = value

    @property
    def watch(self) -> bool:
        """Return whether to keep synchronizing after the first pass."""
        return bool(self._data.get("watch", False))

    @watch.setter
    def watch(self, value: bool) -> None:
        self._data["watch"] = bool(value)

    # ---- change notifications ----

    @property
    def use_polling_observer(self) -> bool:
        return bool(self._data.get("use_polling_observer", False))

    @use_polling_observer.setter
    def use_polling_observer(self, value: bool) -> None:
        self._data["use_polling_observer"] = bool(value)

    @property
    def polling_interval(self) -> float:
        """Return seconds between polls of the polling observer."""
        return float(self._data.get("polling_interval_seconds", 1.0))

    @polling_interval.setter
    def polling_interval(self, value: float) -> None:
        """Set the polling period (minimum 0.1 s)."""
        self._data["polling_interval_seconds"] = max(0.1, float(value))

    @property
    def event_queue_size(self) -> int:
        return int(self._data.get("event_queue_size", 10000))

    @event_queue_size.setter
    def event_queue_size(self, value: int) -> None:
        """Set the event queue bound (minimum 1)."""
        self._data["event_queue_size"] = max(1, int(value))

    @property
    def poll_interval(self) -> float:
        """Return how often the worker wakes up to check for shutdown."""
        return float(self._data.get("poll_interval_seconds", 0.5))

    @poll_interval.setter
    def poll_interval(self, value: float) -> None:
        self._data["poll_interval_seconds"] = max(0.05, float(value))

    # ---- logging ----

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("log_level", "INFO")

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._data["log_level"] = value.upper()

    @property
    def log_file(self) -> Path:
        """Return the log file path (platform default when unset)."""
        configured = self._data.get("log_file", "")
        return Path(configured) if configured else _platform_log_path()

    @log_file.setter
    def log_file(self, value: str) -> None:
        self._data["log_file"] = str(value)

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return int(self._data.get("max_log_size_mb", 10))

    @max_log_size_mb.setter
    def max_log_size_mb(self, value: int) -> None:
        """Set the maximum log file size in MB (minimum 1)."""
        self._data["max_log_size_mb"] = max(1, int(value))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return int(self._data.get("log_backup_count", 3))

    @log_backup_count.setter
    def log_backup_count(self, value: int) -> None:
        self._data["log_backup_count"] = max(0, int(value))

    # ---- convenience ----

    def is_configured(self) -> bool:
        """Return True when both source and destination folders are set."""
        return bool(self.source_folder) and bool(self.destination_folder)
