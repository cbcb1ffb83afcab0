"""Tree Sync: one-way folder mirroring, once or in real time.

Makes a destination directory an exact copy of a source directory, then
optionally keeps it that way by following change notifications on the
source tree.
"""

__version__ = "1.0.0"
__app_name__ = "Tree Sync"

from tree_sync.comparator import PathComparator, SyncStatus, classify
from tree_sync.copier import EntrySynchronizer, SyncStats
from tree_sync.diff import DiffReport, TreeDiffEngine
from tree_sync.errors import (
    ListingError,
    MetadataError,
    MutationError,
    SubscriptionError,
    SyncError,
)
from tree_sync.full_sync import FullSyncOrchestrator
from tree_sync.registry import WatchRegistry
from tree_sync.sync import compare, start_real_time_sync, sync
from tree_sync.watcher import RealTimeSynchronizer, SyncState

__all__ = [
    "DiffReport",
    "EntrySynchronizer",
    "FullSyncOrchestrator",
    "ListingError",
    "MetadataError",
    "MutationError",
    "PathComparator",
    "RealTimeSynchronizer",
    "SubscriptionError",
    "SyncError",
    "SyncState",
    "SyncStats",
    "SyncStatus",
    "TreeDiffEngine",
    "WatchRegistry",
    "classify",
    "compare",
    "start_real_time_sync",
    "sync",
]
