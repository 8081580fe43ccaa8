"""Subscription and dispatch of watcher events."""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from .exceptions import EnumerationError
from .models import ChangeSet, EventKind

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]

_PAYLOAD_TYPES: Dict[EventKind, Type] = {
    EventKind.CHANGE: ChangeSet,
    EventKind.CREATED: tuple,
    EventKind.DELETED: tuple,
    EventKind.MODIFIED: tuple,
    EventKind.ERROR: EnumerationError,
}


class EventBus:
    """
    Thread-safe listener registry keyed by ``EventKind``.

    Payloads are checked against the kind they are emitted on, so a
    listener for a kind always receives the same payload type.
    """

    def __init__(self):
        self._listeners: Dict[EventKind, List[Listener]] = {kind: [] for kind in EventKind}
        self._lock = threading.Lock()

    def subscribe(self, kind: EventKind, listener: Listener) -> Listener:
        """
        Register ``listener`` for events of ``kind``.

        Args:
            kind: Channel to listen on
            listener: Callable receiving the event payload

        Returns:
            The listener, so this can be used as a decorator
        """
        if not isinstance(kind, EventKind):
            kind = EventKind(kind)
        with self._lock:
            self._listeners[kind].append(listener)
        return listener

    def unsubscribe(self, kind: EventKind, listener: Listener) -> bool:
        """
        Remove one registration of ``listener``.

        Returns:
            True if the listener was registered
        """
        with self._lock:
            try:
                self._listeners[kind].remove(listener)
                return True
            except ValueError:
                return False

    def clear(self, kind: Optional[EventKind] = None) -> int:
        """
        Detach listeners of one kind, or of every kind.

        Returns:
            Number of listeners removed
        """
        kinds: Tuple[EventKind, ...] = tuple(EventKind) if kind is None else (kind,)
        removed = 0
        with self._lock:
            for k in kinds:
                removed += len(self._listeners[k])
                self._listeners[k] = []
        return removed

    def listener_count(self, kind: Optional[EventKind] = None) -> int:
        with self._lock:
            if kind is None:
                return sum(len(listeners) for listeners in self._listeners.values())
            return len(self._listeners[kind])

    def emit(self, kind: EventKind, payload: Any) -> int:
        """
        Deliver ``payload`` to every listener of ``kind``.

        A listener that raises is logged and does not stop delivery to
        the others.

        Returns:
            Number of listeners called

        Raises:
            TypeError: If the payload does not match the kind
        """
        expected = _PAYLOAD_TYPES[kind]
        if not isinstance(payload, expected):
            raise TypeError(
                f"{kind.value} payload must be {expected.__name__}, got {type(payload).__name__}"
            )

        with self._lock:
            listeners = list(self._listeners[kind])

        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Listener for '{kind.value}' failed")
        return len(listeners)
