"""Set differences between two path collections.

Both operations are hash based and linear in the combined input size;
trees with tens of thousands of paths are diffed on every round.
"""

from typing import Collection, FrozenSet, Tuple


def _as_set(paths: Collection[str]) -> FrozenSet[str]:
    if isinstance(paths, (set, frozenset)):
        return paths
    return frozenset(paths)


def one_way_diff(before: Collection[str], after: Collection[str]) -> FrozenSet[str]:
    """
    Paths present in ``before`` and absent from ``after``.

    Args:
        before: Previous snapshot
        after: Current snapshot

    Returns:
        The paths that disappeared
    """
    after_set = _as_set(after)
    return frozenset(path for path in before if path not in after_set)


def two_way_diff(
    before: Collection[str],
    after: Collection[str],
) -> Tuple[FrozenSet[str], FrozenSet[str]]:
    """
    Compute deletions and creations in one pass over each side.

    Args:
        before: Previous snapshot
        after: Current snapshot

    Returns:
        (deleted, created) - ``before - after`` and ``after - before``
    """
    before_set = _as_set(before)
    after_set = _as_set(after)
    return before_set - after_set, after_set - before_set
