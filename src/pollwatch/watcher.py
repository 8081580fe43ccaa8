"""Public polling watcher."""

import dataclasses
import logging
import threading
from pathlib import Path
from typing import FrozenSet, Optional, Union

from .aggregator import ChangeAggregator
from .config import WatcherConfig
from .enumerator import Enumerator, SnapshotEnumerator
from .events import EventBus, Listener
from .exceptions import ConfigError, WatcherAlreadyRunningError
from .models import ChangeSet, EventKind
from .paths import PathFilter
from .scheduler import PollScheduler

logger = logging.getLogger(__name__)


class Watcher:
    """
    Watches one directory tree by polling and emits coalesced changes.

    Subscribe to ``EventKind.CHANGE`` for a ``ChangeSet`` per flush, or to
    CREATED/DELETED/MODIFIED for the paths of one kind. Enumeration
    failures arrive on ``EventKind.ERROR`` and never stop polling.

    Example::

        watcher = Watcher("/srv/data", poll_period=2)
        watcher.subscribe(EventKind.CHANGE, print)
        watcher.start()
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        poll_period: Optional[float] = None,
        path_filter: Optional[PathFilter] = None,
        config: Optional[WatcherConfig] = None,
        enumerator: Optional[Enumerator] = None,
    ):
        """
        Initialize the watcher.

        Args:
            root: Directory to watch (overrides config.root)
            poll_period: Seconds between polls (overrides config.poll_period)
            path_filter: Inclusion predicate (overrides config.path_filter)
            config: Watcher configuration
            enumerator: Listing backend, SnapshotEnumerator by default

        Raises:
            RootNotFoundError: If the root is missing or not a directory
            InvalidPollPeriodError: If the poll period is not positive
        """
        if config is None:
            if root is None:
                raise ConfigError("a root directory or a config is required")
            config = WatcherConfig(root=Path(root))
        else:
            config = dataclasses.replace(config)

        if root is not None:
            config.root = Path(root)
        if poll_period is not None:
            config.poll_period = poll_period
        if path_filter is not None:
            config.path_filter = path_filter

        config.validate()
        config.root = config.root.resolve()
        self.config = config

        self.enumerator = enumerator or SnapshotEnumerator()
        self._bus = EventBus()
        self._aggregator = ChangeAggregator(self._bus, config.max_consecutive_failures)
        self._scheduler = PollScheduler(config, self.enumerator, self._aggregator)

        self._running = False
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self.config.root

    def subscribe(self, kind: EventKind, listener: Listener) -> Listener:
        """
        Register ``listener`` on one event channel.

        Returns:
            The listener, so this can be used as a decorator
        """
        return self._bus.subscribe(kind, listener)

    def unsubscribe(self, kind: EventKind, listener: Listener) -> bool:
        return self._bus.unsubscribe(kind, listener)

    def listener_count(self, kind: Optional[EventKind] = None) -> int:
        return self._bus.listener_count(kind)

    def start(self) -> "Watcher":
        """
        Start polling in background timer threads.

        The first full-tree poll only records a baseline; changes are
        reported from the second one on. After a restart, a round still
        running from before the stop delivers into the new cycle and the
        next run of that round waits for it.

        Raises:
            WatcherAlreadyRunningError: If already running
        """
        with self._lock:
            if self._running:
                raise WatcherAlreadyRunningError(f"Watcher for {self.root} is already running")
            self._running = True

        self._aggregator.reset()
        self._scheduler.start()
        logger.info(f"Watching {self.root} every {self.config.poll_period}s")
        return self

    def stop(self) -> "Watcher":
        """
        Stop polling.

        Pending timers are cancelled. A poll already in progress finishes
        and may still emit, but schedules nothing further.
        """
        with self._lock:
            if not self._running:
                return self
            self._running = False

        self._scheduler.stop()
        logger.info(f"Stopped watching {self.root}")
        return self

    def cleanup(self) -> "Watcher":
        """Stop polling and detach every listener."""
        self.stop()
        removed = self._bus.clear()
        logger.debug(f"Detached {removed} listener(s)")
        return self

    def poll(self) -> None:
        """
        Run every poll round once in the calling thread.

        A round still finishing after ``stop()`` is waited for.

        Raises:
            WatcherAlreadyRunningError: If the timers are polling
        """
        if self._running:
            raise WatcherAlreadyRunningError(
                f"Watcher for {self.root} is polling on timers, stop it before polling manually"
            )
        self._scheduler.run_once()

    @property
    def snapshot(self) -> Optional[FrozenSet[str]]:
        """Latest filtered listing of the tree, None before the baseline."""
        return self._scheduler.snapshot

    def pending(self) -> ChangeSet:
        """Results buffered for the next flush."""
        return self._aggregator.pending()

    @property
    def is_running(self) -> bool:
        """Check if the watcher is polling."""
        return self._running

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
        return False

    def __repr__(self) -> str:
        state = "running" if self._running else "stopped"
        return f"<Watcher {self.root} {self.config.strategy.value} {state}>"
