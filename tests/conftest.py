"""Shared fixtures for pollwatch tests."""

import threading
import time
from pathlib import Path

import pytest

from pollwatch.enumerator import Enumerator
from pollwatch.events import EventBus
from pollwatch.models import EventKind


class FakeEnumerator(Enumerator):
    """
    Enumerator returning whatever the test assigned.

    Each of ``tree``, ``modified`` and ``created`` is either a collection
    of paths or an exception instance to raise. ``birth_time`` controls
    whether the created round asks for ``created`` or diffs listings.
    """

    def __init__(self, tree=(), modified=(), created=(), birth_time=True):
        self.tree = tree
        self.modified = modified
        self.created = created
        self.supports_created_since = birth_time
        self.calls = []

    @staticmethod
    def _result(value):
        if isinstance(value, Exception):
            raise value
        return frozenset(value)

    def list_all(self, root, prune=()):
        self.calls.append(("list_all", Path(root), tuple(prune)))
        return self._result(self.tree)

    def list_modified_since(self, root, seconds, prune=()):
        self.calls.append(("list_modified_since", Path(root), seconds, tuple(prune)))
        return self._result(self.modified)

    def list_created_since(self, root, seconds, prune=()):
        self.calls.append(("list_created_since", Path(root), seconds, tuple(prune)))
        return self._result(self.created)


class SlowEnumerator(FakeEnumerator):
    """FakeEnumerator whose full listing takes a while and counts overlapping calls."""

    def __init__(self, delay=0.3, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.entered = threading.Event()
        self._lock = threading.Lock()

    def list_all(self, root, prune=()):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.entered.set()
        try:
            time.sleep(self.delay)
            return super().list_all(root, prune)
        finally:
            with self._lock:
                self.active -= 1


class EventRecorder:
    """Records (kind, payload) pairs in the order listeners were called."""

    def __init__(self):
        self.events = []
        self.changed = threading.Event()
        self._lock = threading.Lock()

    def attach(self, target):
        for kind in EventKind:
            target.subscribe(kind, self._listener(kind))
        return self

    def _listener(self, kind):
        def listener(payload):
            with self._lock:
                self.events.append((kind, payload))
            if kind is EventKind.CHANGE:
                self.changed.set()
        return listener

    def kinds(self):
        with self._lock:
            return [kind for kind, _ in self.events]

    def payloads(self, kind):
        with self._lock:
            return [payload for k, payload in self.events if k is kind]

    def clear(self):
        with self._lock:
            self.events.clear()
        self.changed.clear()


@pytest.fixture
def fake_enumerator():
    return FakeEnumerator()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder():
    return EventRecorder()
