"""Tests for events module."""

import logging

import pytest

from pollwatch.events import EventBus
from pollwatch.exceptions import EnumerationError
from pollwatch.models import ChangeSet, EventKind


class TestEventBus:
    """Tests for EventBus class."""

    def test_subscribe_and_emit(self, bus):
        received = []
        bus.subscribe(EventKind.CREATED, received.append)

        count = bus.emit(EventKind.CREATED, ("a.txt",))

        assert count == 1
        assert received == [("a.txt",)]

    def test_subscribe_by_value(self, bus):
        received = []
        bus.subscribe("deleted", received.append)
        bus.emit(EventKind.DELETED, ("x",))
        assert received == [("x",)]

    def test_subscribe_returns_listener(self, bus):
        def listener(payload):
            pass

        assert bus.subscribe(EventKind.ERROR, listener) is listener
        assert bus.listener_count(EventKind.ERROR) == 1

    def test_only_matching_kind(self, bus):
        created, deleted = [], []
        bus.subscribe(EventKind.CREATED, created.append)
        bus.subscribe(EventKind.DELETED, deleted.append)

        bus.emit(EventKind.DELETED, ("y",))

        assert created == []
        assert deleted == [("y",)]

    def test_listeners_called_in_subscription_order(self, bus):
        calls = []
        bus.subscribe(EventKind.CHANGE, lambda c: calls.append("first"))
        bus.subscribe(EventKind.CHANGE, lambda c: calls.append("second"))

        bus.emit(EventKind.CHANGE, ChangeSet())

        assert calls == ["first", "second"]

    def test_unsubscribe(self, bus):
        received = []
        bus.subscribe(EventKind.MODIFIED, received.append)

        assert bus.unsubscribe(EventKind.MODIFIED, received.append) is True
        assert bus.unsubscribe(EventKind.MODIFIED, received.append) is False

        bus.emit(EventKind.MODIFIED, ("m",))
        assert received == []

    def test_clear_one_kind(self, bus):
        bus.subscribe(EventKind.CREATED, print)
        bus.subscribe(EventKind.DELETED, print)

        assert bus.clear(EventKind.CREATED) == 1
        assert bus.listener_count(EventKind.CREATED) == 0
        assert bus.listener_count(EventKind.DELETED) == 1

    def test_clear_all(self, bus):
        for kind in EventKind:
            bus.subscribe(kind, print)

        assert bus.listener_count() == len(EventKind)
        assert bus.clear() == len(EventKind)
        assert bus.listener_count() == 0

    def test_payload_type_checked(self, bus):
        with pytest.raises(TypeError):
            bus.emit(EventKind.CHANGE, {"created": []})
        with pytest.raises(TypeError):
            bus.emit(EventKind.CREATED, ["a.txt"])
        with pytest.raises(TypeError):
            bus.emit(EventKind.ERROR, RuntimeError("boom"))

    def test_error_payload(self, bus):
        received = []
        bus.subscribe(EventKind.ERROR, received.append)
        error = EnumerationError("boom")

        bus.emit(EventKind.ERROR, error)

        assert received == [error]

    def test_failing_listener_does_not_block_others(self, bus, caplog):
        received = []

        def broken(payload):
            raise RuntimeError("listener bug")

        bus.subscribe(EventKind.CREATED, broken)
        bus.subscribe(EventKind.CREATED, received.append)

        with caplog.at_level(logging.ERROR, logger="pollwatch.events"):
            bus.emit(EventKind.CREATED, ("a",))

        assert received == [("a",)]
        assert "Listener for 'created' failed" in caplog.text

    def test_listener_may_unsubscribe_during_emit(self, bus):
        calls = []

        def once(payload):
            calls.append(payload)
            bus.unsubscribe(EventKind.CREATED, once)

        bus.subscribe(EventKind.CREATED, once)
        bus.emit(EventKind.CREATED, ("a",))
        bus.emit(EventKind.CREATED, ("b",))

        assert calls == [("a",)]
