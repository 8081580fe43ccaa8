"""
Polling Watcher Package

Watches a directory tree by listing it at a fixed interval, diffing
successive snapshots, and emitting coalesced change events.

Features:
- Created, deleted and modified events plus one combined change event
- Paired full-tree or separate per-kind polling strategies
- Directory pruning during traversal
- Pluggable path filters (dotfiles excluded by default)
- watchdog snapshot or find(1) enumeration backends
"""

from .models import (
    EventKind,
    ChangeSet,
    PendingBuffer,
    PathSet,
    SLOT_KINDS,
)

from .config import (
    WatcherConfig,
    PollStrategy,
    DEFAULT_PRUNE_DIRS,
    MODIFIED_LOOKBACK_SECONDS,
)

from .exceptions import (
    WatcherError,
    EnumerationError,
    ConfigError,
    RootNotFoundError,
    InvalidPollPeriodError,
    WatcherAlreadyRunningError,
)

from .paths import (
    PathFilter,
    normalize_path,
    exclude_dotfiles,
    IgnorePatternFilter,
    all_of,
)
from .diff import one_way_diff, two_way_diff
from .enumerator import (
    Enumerator,
    SnapshotEnumerator,
    FindEnumerator,
    threshold_seconds,
)
from .events import EventBus
from .aggregator import ChangeAggregator
from .scheduler import PollScheduler, RepeatingTask
from .watcher import Watcher


__all__ = [
    # Models
    "EventKind",
    "ChangeSet",
    "PendingBuffer",
    "PathSet",
    "SLOT_KINDS",
    # Config
    "WatcherConfig",
    "PollStrategy",
    "DEFAULT_PRUNE_DIRS",
    "MODIFIED_LOOKBACK_SECONDS",
    # Exceptions
    "WatcherError",
    "EnumerationError",
    "ConfigError",
    "RootNotFoundError",
    "InvalidPollPeriodError",
    "WatcherAlreadyRunningError",
    # Paths
    "PathFilter",
    "normalize_path",
    "exclude_dotfiles",
    "IgnorePatternFilter",
    "all_of",
    # Components
    "one_way_diff",
    "two_way_diff",
    "Enumerator",
    "SnapshotEnumerator",
    "FindEnumerator",
    "threshold_seconds",
    "EventBus",
    "ChangeAggregator",
    "PollScheduler",
    "RepeatingTask",
    # Main entry point
    "Watcher",
]

__version__ = "0.1.0"
