"""Tests for models module."""

import pytest

from pollwatch.models import SLOT_KINDS, ChangeSet, EventKind, PendingBuffer


class TestEventKind:
    """Tests for EventKind enum."""

    def test_values(self):
        assert EventKind.CHANGE.value == "change"
        assert EventKind.CREATED.value == "created"
        assert EventKind.DELETED.value == "deleted"
        assert EventKind.MODIFIED.value == "modified"
        assert EventKind.ERROR.value == "error"

    def test_slot_order(self):
        assert SLOT_KINDS == (EventKind.CREATED, EventKind.DELETED, EventKind.MODIFIED)


class TestChangeSet:
    """Tests for ChangeSet class."""

    def test_from_sets_sorts(self):
        changes = ChangeSet.from_sets(created={"b", "a"}, deleted=["z", "y"])
        assert changes.created == ("a", "b")
        assert changes.deleted == ("y", "z")
        assert changes.modified == ()

    def test_to_dict_has_all_keys(self):
        changes = ChangeSet.from_sets(created=["z"])
        assert changes.to_dict() == {"created": ["z"], "deleted": [], "modified": []}

    def test_from_dict(self):
        changes = ChangeSet.from_dict({"deleted": ["y"], "modified": ["b", "a"]})
        assert changes == ChangeSet(created=(), deleted=("y",), modified=("a", "b"))

    def test_is_empty_and_len(self):
        assert ChangeSet().is_empty()
        changes = ChangeSet.from_sets(created=["a"], modified=["b", "c"])
        assert not changes.is_empty()
        assert len(changes) == 3

    def test_get(self):
        changes = ChangeSet.from_sets(deleted=["x"])
        assert changes.get(EventKind.DELETED) == ("x",)
        with pytest.raises(ValueError):
            changes.get(EventKind.ERROR)

    def test_frozen(self):
        changes = ChangeSet()
        with pytest.raises(AttributeError):
            changes.created = ("a",)


class TestPendingBuffer:
    """Tests for PendingBuffer class."""

    def test_starts_empty(self):
        buffer = PendingBuffer()
        assert buffer.missing() == SLOT_KINDS
        assert not buffer.is_complete()
        assert buffer.get(EventKind.CREATED) is None

    def test_set_replaces(self):
        buffer = PendingBuffer()
        buffer.set(EventKind.DELETED, ["a"])
        buffer.set(EventKind.DELETED, ["b"])
        assert buffer.get(EventKind.DELETED) == frozenset({"b"})

    def test_empty_result_counts_as_present(self):
        buffer = PendingBuffer()
        for kind in SLOT_KINDS:
            buffer.set(kind, [])
        assert buffer.is_complete()

    def test_rejects_non_slot_kind(self):
        buffer = PendingBuffer()
        with pytest.raises(ValueError):
            buffer.set(EventKind.CHANGE, ["a"])

    def test_modified_excludes_created(self):
        buffer = PendingBuffer()
        buffer.set(EventKind.MODIFIED, ["a.txt", "b.txt"])
        buffer.set(EventKind.CREATED, ["a.txt"])
        assert buffer.get(EventKind.MODIFIED) == frozenset({"b.txt"})

    def test_correction_follows_created_updates(self):
        buffer = PendingBuffer()
        buffer.set(EventKind.CREATED, ["a.txt"])
        buffer.set(EventKind.MODIFIED, ["a.txt", "b.txt"])
        assert buffer.get(EventKind.MODIFIED) == frozenset({"b.txt"})

        buffer.set(EventKind.CREATED, [])
        assert buffer.get(EventKind.MODIFIED) == frozenset({"a.txt", "b.txt"})

    def test_to_change_set(self):
        buffer = PendingBuffer()
        buffer.set(EventKind.CREATED, ["c"])
        changes = buffer.to_change_set()
        assert changes == ChangeSet(created=("c",))

    def test_clear(self):
        buffer = PendingBuffer()
        for kind in SLOT_KINDS:
            buffer.set(kind, ["x"])
        buffer.clear()
        assert buffer.missing() == SLOT_KINDS
