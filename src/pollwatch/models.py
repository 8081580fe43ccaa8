"""Data models for the pollwatch package."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

# One snapshot or one delta: normalized, root-relative file paths.
PathSet = FrozenSet[str]


class EventKind(Enum):
    """
    Channels a watcher emits on.

    Payload per kind:
        CHANGE: ChangeSet
        CREATED, DELETED, MODIFIED: tuple of path strings
        ERROR: EnumerationError
    """
    CHANGE = "change"
    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"
    ERROR = "error"


# Buffer slots, in the order per-kind events are emitted after a flush.
SLOT_KINDS: Tuple[EventKind, ...] = (
    EventKind.CREATED,
    EventKind.DELETED,
    EventKind.MODIFIED,
)


@dataclass(frozen=True)
class ChangeSet:
    """
    Coalesced result of one flush.

    Attributes:
        created: Paths that appeared since the previous snapshot
        deleted: Paths that disappeared since the previous snapshot
        modified: Paths recently written, excluding ones also created
    """
    created: Tuple[str, ...] = ()
    deleted: Tuple[str, ...] = ()
    modified: Tuple[str, ...] = ()

    @classmethod
    def from_sets(
        cls,
        created: Iterable[str] = (),
        deleted: Iterable[str] = (),
        modified: Iterable[str] = (),
    ) -> "ChangeSet":
        """Create from unordered collections, sorting each one."""
        return cls(
            created=tuple(sorted(created)),
            deleted=tuple(sorted(deleted)),
            modified=tuple(sorted(modified)),
        )

    def get(self, kind: EventKind) -> Tuple[str, ...]:
        """Return the paths for one of the slot kinds."""
        if kind not in SLOT_KINDS:
            raise ValueError(f"not a change slot: {kind}")
        return getattr(self, kind.value)

    def is_empty(self) -> bool:
        return not (self.created or self.deleted or self.modified)

    def __len__(self) -> int:
        return len(self.created) + len(self.deleted) + len(self.modified)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "created": list(self.created),
            "deleted": list(self.deleted),
            "modified": list(self.modified),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChangeSet":
        """Create from dictionary."""
        return cls.from_sets(
            created=data.get("created", ()),
            deleted=data.get("deleted", ()),
            modified=data.get("modified", ()),
        )


class PendingBuffer:
    """
    Per-cycle buffer with one optional slot per change kind.

    A slot holds the latest result received for its kind since the last
    flush. Modified paths are stored as received; the created paths are
    subtracted on read, so the correction follows every update of
    either slot.
    """
    def __init__(self):
        self._slots: Dict[EventKind, Optional[PathSet]] = {kind: None for kind in SLOT_KINDS}

    def set(self, kind: EventKind, paths: Iterable[str]) -> None:
        """Store ``paths`` in the slot for ``kind``, replacing any earlier value."""
        if kind not in SLOT_KINDS:
            raise ValueError(f"not a change slot: {kind}")
        self._slots[kind] = frozenset(paths)

    def has(self, kind: EventKind) -> bool:
        return self._slots[kind] is not None

    def get(self, kind: EventKind) -> Optional[PathSet]:
        """Return the slot value, with the created/modified correction applied."""
        value = self._slots[kind]
        if value is None:
            return None
        if kind is EventKind.MODIFIED:
            created = self._slots[EventKind.CREATED]
            if created:
                return value - created
        return value

    def missing(self) -> Tuple[EventKind, ...]:
        """Slots not yet populated in this cycle."""
        return tuple(kind for kind in SLOT_KINDS if self._slots[kind] is None)

    def is_complete(self) -> bool:
        return not self.missing()

    def to_change_set(self) -> ChangeSet:
        """Return the current content, with absent slots as empty sequences."""
        return ChangeSet.from_sets(
            created=self.get(EventKind.CREATED) or (),
            deleted=self.get(EventKind.DELETED) or (),
            modified=self.get(EventKind.MODIFIED) or (),
        )

    def clear(self) -> None:
        for kind in SLOT_KINDS:
            self._slots[kind] = None
