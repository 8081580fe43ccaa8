"""Path normalization and inclusion filters."""

import fnmatch
import os
import re
from pathlib import PurePath
from typing import Callable, Iterable, List, Optional

PathFilter = Callable[[str], bool]

_SEPARATORS = re.compile(r"[\\/]")


def normalize_path(path: str, root: Optional[str] = None) -> str:
    """
    Return the canonical form of ``path``.

    Collapses ``.``/``..`` segments and duplicate separators and always
    uses ``/``. When ``root`` is given the result is relative to it.

    Args:
        path: Path as produced by an enumerator
        root: Optional directory to make the path relative to

    Returns:
        Normalized path string
    """
    path = os.fspath(path)
    if root is not None:
        path = os.path.relpath(path, os.fspath(root))
    return PurePath(os.path.normpath(path)).as_posix()


def exclude_dotfiles(path: str) -> bool:
    """
    Default filter: reject any path with a segment starting with ``.``.

    Covers ``.git/config``, ``.DS_Store`` and dotfiles at any depth.

    Returns:
        True if the path should be watched
    """
    for segment in _SEPARATORS.split(path):
        if segment.startswith(".") and segment not in (".", ".."):
            return False
    return True


class IgnorePatternFilter:
    """
    Filter that rejects paths matching any of a list of glob patterns.

    A pattern matches on the file name, on any trailing part of the path,
    or on the whole path.
    """

    def __init__(self, patterns: Iterable[str]):
        self.patterns: List[str] = list(patterns)

    def should_ignore(self, path: str) -> bool:
        """
        Check if a path matches one of the ignore patterns.

        Args:
            path: Root-relative path to check

        Returns:
            True if the path should be ignored
        """
        name = PurePath(path).name

        for pattern in self.patterns:
            if fnmatch.fnmatch(name, pattern):
                return True
            if fnmatch.fnmatch(path, f"*/{pattern}"):
                return True
            if fnmatch.fnmatch(path, pattern):
                return True

        return False

    def __call__(self, path: str) -> bool:
        return not self.should_ignore(path)

    def __repr__(self) -> str:
        return f"IgnorePatternFilter({self.patterns!r})"


def all_of(*filters: PathFilter) -> PathFilter:
    """Combine filters; a path is kept only if every filter keeps it."""
    def combined(path: str) -> bool:
        return all(f(path) for f in filters)
    return combined
