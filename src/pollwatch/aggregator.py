"""Buffering and coalescing of per-kind poll results."""

import logging
import threading
from typing import Dict, Iterable, Mapping, Optional

from .events import EventBus
from .exceptions import EnumerationError
from .models import SLOT_KINDS, ChangeSet, EventKind, PendingBuffer

logger = logging.getLogger(__name__)


class ChangeAggregator:
    """
    Collects created/deleted/modified results and emits them together.

    Each poll result fills one buffer slot. Once all three slots have
    been filled since the last flush, the buffer is flushed: a CHANGE
    event with all three sets, then one event per non-empty kind in
    created, deleted, modified order. A flush with nothing in it emits
    nothing. Either way the buffer starts over.

    A paired full-tree round delivers deleted and created in a single
    ``submit_many`` call; separate rounds call ``submit`` once each.
    """

    def __init__(
        self,
        bus: EventBus,
        max_consecutive_failures: Optional[int] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            bus: Event bus to emit on
            max_consecutive_failures: Failures in a row after which a slot
                is filled with an empty set. None leaves it unfilled.
        """
        self.bus = bus
        self.max_consecutive_failures = max_consecutive_failures
        self._buffer = PendingBuffer()
        self._failures: Dict[EventKind, int] = {kind: 0 for kind in SLOT_KINDS}
        self._flush_count = 0
        # Reentrant so a listener may inspect the aggregator during a flush.
        self._lock = threading.RLock()

    def submit(self, kind: EventKind, paths: Iterable[str]) -> Optional[ChangeSet]:
        """
        Store a poll result for one slot.

        Args:
            kind: CREATED, DELETED or MODIFIED
            paths: The filtered result of the poll

        Returns:
            The flushed change set if this result completed the buffer
            and it had content, None otherwise
        """
        return self.submit_many({kind: paths})

    def submit_many(self, results: Mapping[EventKind, Iterable[str]]) -> Optional[ChangeSet]:
        """Store several slot results at once, then check for a flush."""
        with self._lock:
            for kind, paths in results.items():
                self._buffer.set(kind, paths)
                self._failures[kind] = 0
            return self._maybe_flush()

    def report_error(self, kinds: Iterable[EventKind], error: EnumerationError) -> Optional[ChangeSet]:
        """
        Record a failed poll for ``kinds`` and emit an ERROR event.

        The slots stay unfilled unless the failure limit is reached.

        Returns:
            The flushed change set if a slot was filled by the failure
            limit and that completed the buffer with content
        """
        with self._lock:
            self.bus.emit(EventKind.ERROR, error)

            filled = False
            for kind in kinds:
                self._failures[kind] += 1
                limit = self.max_consecutive_failures
                if limit is not None and self._failures[kind] >= limit and not self._buffer.has(kind):
                    logger.warning(
                        f"{kind.value} poll failed {self._failures[kind]} times in a row, "
                        f"continuing with no {kind.value} paths"
                    )
                    self._buffer.set(kind, ())
                    self._failures[kind] = 0
                    filled = True

            if filled:
                return self._maybe_flush()
            return None

    def _maybe_flush(self) -> Optional[ChangeSet]:
        if not self._buffer.is_complete():
            return None

        changes = self._buffer.to_change_set()
        self._buffer.clear()

        if changes.is_empty():
            return None

        self._flush_count += 1
        logger.debug(
            f"Flushing {len(changes.created)} created, {len(changes.deleted)} deleted, "
            f"{len(changes.modified)} modified"
        )

        self.bus.emit(EventKind.CHANGE, changes)
        for kind in SLOT_KINDS:
            paths = changes.get(kind)
            if paths:
                self.bus.emit(kind, paths)

        return changes

    def pending(self) -> ChangeSet:
        """Current buffer content, with unfilled slots shown as empty."""
        with self._lock:
            return self._buffer.to_change_set()

    def missing(self):
        """Slots still waiting for a result in this cycle."""
        with self._lock:
            return self._buffer.missing()

    def failure_count(self, kind: EventKind) -> int:
        with self._lock:
            return self._failures[kind]

    @property
    def flush_count(self) -> int:
        """Number of flushes that emitted events."""
        return self._flush_count

    def reset(self) -> None:
        """Drop any partially filled buffer and failure counts."""
        with self._lock:
            self._buffer.clear()
            for kind in SLOT_KINDS:
                self._failures[kind] = 0
