"""Self-paced polling of the watched tree."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

from .aggregator import ChangeAggregator
from .config import PollStrategy, WatcherConfig
from .diff import one_way_diff, two_way_diff
from .enumerator import Enumerator
from .exceptions import EnumerationError
from .models import EventKind
from .paths import PathFilter, exclude_dotfiles

logger = logging.getLogger(__name__)


class RepeatingTask:
    """
    Runs a function every ``interval`` seconds, one run at a time.

    The next run is scheduled only after the current one returns, so a
    slow run delays the schedule instead of overlapping with the next.
    ``stop()`` cancels the pending timer; a run already in progress
    finishes but does not schedule another. Restarting while that run is
    still in progress leaves the scheduling to it.
    """

    def __init__(self, name: str, interval: float, func: Callable[[], None]):
        """
        Initialize the task.

        Args:
            name: Name used for the timer threads and in logs
            interval: Seconds between the end of one run and the next
            func: Work performed on each run
        """
        if interval <= 0:
            raise ValueError(f"interval must be > 0: {interval}")
        self.name = name
        self.interval = interval
        self.func = func
        self.runs = 0
        self._timer: Optional[threading.Timer] = None
        self._stopped = True
        self._in_flight = False
        self._generation = 0
        self._lock = threading.Lock()

    def start(self) -> bool:
        """
        Schedule the first run after one interval.

        Returns:
            True if started, False if already active
        """
        with self._lock:
            if not self._stopped:
                return False
            self._stopped = False
            self._generation += 1
            if self._in_flight:
                logger.debug(f"{self.name} restarted during a run, deferring schedule")
            else:
                self._schedule()
            return True

    def stop(self) -> bool:
        """
        Cancel the pending run and prevent further scheduling.

        Returns:
            True if the task was active
        """
        with self._lock:
            if self._stopped:
                return False
            self._stopped = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            return True

    @property
    def is_active(self) -> bool:
        return not self._stopped

    @property
    def in_flight(self) -> bool:
        """Check if a run is executing right now."""
        return self._in_flight

    def _schedule(self) -> None:
        timer = threading.Timer(self.interval, self._run, args=(self._generation,))
        timer.name = f"{self.name}-timer"
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _run(self, generation: int) -> None:
        with self._lock:
            if self._stopped or generation != self._generation or self._in_flight:
                return
            self._in_flight = True

        try:
            self.func()
        except Exception:
            logger.exception(f"Unexpected error in {self.name} round")
        finally:
            with self._lock:
                self._in_flight = False
                self.runs += 1
                reschedule = not self._stopped
                if reschedule:
                    self._schedule()

        if not reschedule:
            logger.debug(f"{self.name} stopped, not rescheduling")


class PollRound(ABC):
    """One kind of poll: enumerate, filter, hand the result on."""

    name = "poll"
    kinds: Tuple[EventKind, ...] = ()

    def __init__(
        self,
        root: Path,
        enumerator: Enumerator,
        aggregator: ChangeAggregator,
        path_filter: PathFilter,
        prune: Tuple[str, ...] = (),
    ):
        self.root = root
        self.enumerator = enumerator
        self.aggregator = aggregator
        self.path_filter = path_filter
        self.prune = prune
        # Held for a whole run; a timer run and a manual poll of the same
        # round never overlap.
        self._run_lock = threading.RLock()

    def filter(self, paths: Iterable[str]) -> FrozenSet[str]:
        return frozenset(path for path in paths if self.path_filter(path))

    @abstractmethod
    def enumerate(self) -> FrozenSet[str]:
        """Raw enumeration for this round. Raises EnumerationError."""
        pass

    @abstractmethod
    def process(self, paths: FrozenSet[str]) -> None:
        """Handle a filtered, successful enumeration."""
        pass

    def __call__(self) -> None:
        with self._run_lock:
            try:
                paths = self.enumerate()
            except EnumerationError as e:
                logger.warning(f"{self.name} poll of {self.root} failed: {e}")
                self.aggregator.report_error(self.kinds, e)
                return
            self.process(self.filter(paths))


class SnapshotRound(PollRound):
    """
    Full-tree round comparing each listing with the previous one.

    The first successful listing only becomes the baseline snapshot;
    nothing is reported for it.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.snapshot: Optional[FrozenSet[str]] = None
        self._started = self._listed = 0.0
        self._raw_count = 0

    def enumerate(self) -> FrozenSet[str]:
        self._started = time.monotonic()
        paths = self.enumerator.list_all(self.root, self.prune)
        self._listed = time.monotonic()
        self._raw_count = len(paths)
        return paths

    def process(self, tree: FrozenSet[str]) -> None:
        filtered = time.monotonic()

        if self.snapshot is None:
            self.snapshot = tree
            logger.debug(f"Baseline snapshot of {self.root}: {len(tree)} files")
            return

        previous, self.snapshot = self.snapshot, tree
        self.report(previous, tree)
        done = time.monotonic()

        logger.debug(
            f"{self.name} round: list {self._listed - self._started:.3f}s, "
            f"filter {filtered - self._listed:.3f}s, diff {done - filtered:.3f}s, "
            f"{self._raw_count} listed, {len(tree)} kept"
        )

    @abstractmethod
    def report(self, previous: FrozenSet[str], current: FrozenSet[str]) -> None:
        """Forward the difference between two snapshots."""
        pass


class FullTreeRound(SnapshotRound):
    """Paired strategy: one diff yields both deleted and created."""

    name = "full-tree"
    kinds = (EventKind.DELETED, EventKind.CREATED)

    def report(self, previous: FrozenSet[str], current: FrozenSet[str]) -> None:
        deleted, created = two_way_diff(previous, current)
        self.aggregator.submit_many({
            EventKind.DELETED: deleted,
            EventKind.CREATED: created,
        })


class DeletedRound(SnapshotRound):
    """Separate strategy: the full-tree diff only reports deletions."""

    name = "deleted"
    kinds = (EventKind.DELETED,)

    def report(self, previous: FrozenSet[str], current: FrozenSet[str]) -> None:
        self.aggregator.submit(EventKind.DELETED, one_way_diff(previous, current))


class ModifiedRound(PollRound):
    """Files written within the lookback window, as the backend reports them."""

    name = "modified"
    kinds = (EventKind.MODIFIED,)

    def __init__(self, *args, lookback: float = 1, **kwargs):
        super().__init__(*args, **kwargs)
        self.lookback = lookback

    def enumerate(self) -> FrozenSet[str]:
        return self.enumerator.list_modified_since(self.root, self.lookback, self.prune)

    def process(self, paths: FrozenSet[str]) -> None:
        self.aggregator.submit(EventKind.MODIFIED, paths)


class CreatedRound(SnapshotRound):
    """
    Separate strategy: files that appeared since the previous created round.

    Backends that know file birth times are asked for files created within
    the lookback window. Otherwise the round keeps its own listing and
    reports the paths missing from the previous one. Inode change times
    are never read as creation times.
    """

    name = "created"
    kinds = (EventKind.CREATED,)

    def __init__(self, *args, lookback: float = 1, **kwargs):
        super().__init__(*args, **kwargs)
        self.lookback = lookback
        self.use_birth_time = self.enumerator.supports_created_since

    def enumerate(self) -> FrozenSet[str]:
        if self.use_birth_time:
            return self.enumerator.list_created_since(self.root, self.lookback, self.prune)
        return super().enumerate()

    def process(self, paths: FrozenSet[str]) -> None:
        if self.use_birth_time:
            self.aggregator.submit(EventKind.CREATED, paths)
        else:
            super().process(paths)

    def report(self, previous: FrozenSet[str], current: FrozenSet[str]) -> None:
        self.aggregator.submit(EventKind.CREATED, one_way_diff(current, previous))


class PollScheduler:
    """
    Owns the rounds of one watcher and the timers driving them.

    Paired strategy: a full-tree round every ``P`` seconds and a modified
    round every ``P`` (or ``P/2`` with ``fast_modified``).
    Separate strategy: a deleted round every ``P/2``, plus created and
    modified rounds every ``P``.
    """

    def __init__(
        self,
        config: WatcherConfig,
        enumerator: Enumerator,
        aggregator: ChangeAggregator,
    ):
        self.config = config
        self.enumerator = enumerator
        self.aggregator = aggregator
        self.path_filter = config.path_filter or exclude_dotfiles

        self.rounds: List[PollRound] = self._build_rounds()
        self.tasks: List[RepeatingTask] = [
            RepeatingTask(f"pollwatch-{poll_round.name}", period, poll_round)
            for poll_round, period in zip(self.rounds, self._periods())
        ]

    def _build_rounds(self) -> List[PollRound]:
        args = (
            self.config.root,
            self.enumerator,
            self.aggregator,
            self.path_filter,
            self.config.active_prune_dirs,
        )
        lookback = self.config.modified_lookback

        if self.config.strategy is PollStrategy.SEPARATE:
            return [
                DeletedRound(*args),
                CreatedRound(*args, lookback=lookback),
                ModifiedRound(*args, lookback=lookback),
            ]
        return [
            FullTreeRound(*args),
            ModifiedRound(*args, lookback=lookback),
        ]

    def _periods(self) -> List[float]:
        period = self.config.poll_period
        if self.config.strategy is PollStrategy.SEPARATE:
            return [period / 2, period, self.config.modified_period]
        return [period, self.config.modified_period]

    @property
    def snapshot(self) -> Optional[FrozenSet[str]]:
        """Latest filtered full-tree listing, None before the baseline."""
        for poll_round in self.rounds:
            if isinstance(poll_round, SnapshotRound):
                return poll_round.snapshot
        return None

    def start(self) -> None:
        for task in self.tasks:
            task.start()
        logger.debug(
            f"Polling {self.config.root} ({self.config.strategy.value}) "
            f"with {len(self.tasks)} round(s)"
        )

    def stop(self) -> None:
        for task in self.tasks:
            task.stop()

    def run_once(self) -> None:
        """Run every round once, synchronously, in schedule order."""
        for poll_round in self.rounds:
            poll_round()

    @property
    def is_running(self) -> bool:
        return any(task.is_active for task in self.tasks)
