"""Directory enumeration backends.

An enumerator lists the regular files under a root, optionally only the
ones touched within the last N seconds, while never descending into
pruned directory names. Results are root-relative normalized paths.
"""

import functools
import logging
import math
import os
import stat
import subprocess
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Collection, FrozenSet, List, Optional, Tuple

from watchdog.utils.dirsnapshot import DirectorySnapshot

from .exceptions import EnumerationError
from .paths import normalize_path

logger = logging.getLogger(__name__)

# Largest amount of find(1) output accepted per call.
DEFAULT_MAX_OUTPUT_BYTES = 4000 * 1024

# Linux stat results carry no creation time; st_ctime is the inode change time.
HAS_BIRTHTIME = hasattr(os.stat_result, "st_birthtime")


def threshold_seconds(seconds: float) -> int:
    """
    Convert a lookback window into the whole seconds handed to a backend.

    Rounds up and adds one second of slack so that a file written right
    at the window boundary is never missed.
    """
    if seconds < 0:
        raise ValueError(f"lookback must be >= 0: {seconds}")
    return math.ceil(seconds) + 1


class Enumerator(ABC):
    """Abstract base class for tree enumerators."""

    # True when list_created_since can tell new files from rewritten ones.
    supports_created_since = False

    @abstractmethod
    def list_all(self, root: Path, prune: Collection[str] = ()) -> FrozenSet[str]:
        """
        List every regular file under ``root``.

        Args:
            root: Directory to list
            prune: Directory names never descended into

        Returns:
            Root-relative normalized paths

        Raises:
            EnumerationError: If listing fails
        """
        pass

    @abstractmethod
    def list_modified_since(
        self,
        root: Path,
        seconds: float,
        prune: Collection[str] = (),
    ) -> FrozenSet[str]:
        """
        List regular files whose content changed in the last ``seconds``.

        Raises:
            EnumerationError: If listing fails
        """
        pass

    def list_created_since(
        self,
        root: Path,
        seconds: float,
        prune: Collection[str] = (),
    ) -> FrozenSet[str]:
        """
        List regular files created in the last ``seconds``.

        Only used by the separate-timers strategy, and only when
        ``supports_created_since`` is set.

        Raises:
            EnumerationError: If listing fails
        """
        raise EnumerationError(
            f"{type(self).__name__} cannot list created files", root=Path(root)
        )


class SnapshotEnumerator(Enumerator):
    """
    Enumerator walking the tree with watchdog's ``DirectorySnapshot``.

    Pruning is applied in the ``listdir`` hook, so pruned directories are
    never opened. Entries are stat'ed without following symlinks and only
    regular files are reported.

    Creation queries need ``st_birthtime`` and fail on platforms without it.
    """

    supports_created_since = HAS_BIRTHTIME

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize the enumerator.

        Args:
            clock: Source of the current time for the since-queries
        """
        self.clock = clock

    @staticmethod
    def _pruning_listdir(prune: FrozenSet[str]):
        def listdir(path):
            with os.scandir(path) as entries:
                return [
                    entry for entry in entries
                    if not (entry.name in prune and entry.is_dir(follow_symlinks=False))
                ]
        return listdir

    def _walk(self, root: Path, prune: Collection[str]) -> List[Tuple[str, os.stat_result]]:
        """Snapshot ``root`` and return (relative path, stat) for each file."""
        root_str = os.fspath(root)
        try:
            snapshot = DirectorySnapshot(
                root_str,
                recursive=True,
                stat=os.lstat,
                listdir=self._pruning_listdir(frozenset(prune)),
            )
        except OSError as e:
            raise EnumerationError(f"Failed to list {root}: {e}", root=Path(root))

        files = []
        for path in snapshot.paths:
            if path == root_str:
                continue
            st = snapshot.stat_info(path)
            if stat.S_ISREG(st.st_mode):
                files.append((normalize_path(path, root_str), st))
        return files

    def list_all(self, root: Path, prune: Collection[str] = ()) -> FrozenSet[str]:
        return frozenset(path for path, _ in self._walk(root, prune))

    def list_modified_since(
        self,
        root: Path,
        seconds: float,
        prune: Collection[str] = (),
    ) -> FrozenSet[str]:
        cutoff = self.clock() - threshold_seconds(seconds)
        return frozenset(
            path for path, st in self._walk(root, prune)
            if st.st_mtime > cutoff
        )

    def list_created_since(
        self,
        root: Path,
        seconds: float,
        prune: Collection[str] = (),
    ) -> FrozenSet[str]:
        if not self.supports_created_since:
            raise EnumerationError(
                "File creation times are not available on this platform", root=Path(root)
            )
        cutoff = self.clock() - threshold_seconds(seconds)
        return frozenset(
            path for path, st in self._walk(root, prune)
            if st.st_birthtime > cutoff
        )


@functools.lru_cache(maxsize=32)
def prune_args(prune: Tuple[str, ...]) -> Tuple[str, ...]:
    """Build the ``find`` arguments that skip each directory in ``prune``."""
    args: List[str] = []
    for name in prune:
        args.extend(["-not", "(", "-type", "d", "-name", name, "-prune", ")"])
    return tuple(args)


class FindEnumerator(Enumerator):
    """
    Enumerator that shells out to ``find``.

    Runs with the root as working directory so every line of output is a
    ``./``-prefixed relative path. Time queries use ``-newermt`` and
    ``-newerBt`` with an "N seconds ago" date. ``-newerBt`` needs a find
    and filesystem that expose birth times, so created-file queries are
    not advertised and the separate strategy diffs listings instead.
    """

    def __init__(
        self,
        find_binary: str = "find",
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the enumerator.

        Args:
            find_binary: Name or path of the find executable
            max_output_bytes: Output size above which the call fails
            timeout: Seconds after which a find process is killed
        """
        self.find_binary = find_binary
        self.max_output_bytes = max_output_bytes
        self.timeout = timeout

    def _run(self, root: Path, args: List[str]) -> FrozenSet[str]:
        command = [self.find_binary, "./"] + args
        logger.debug(f"Running {' '.join(command)} in {root}")

        try:
            proc = subprocess.run(
                command,
                cwd=os.fspath(root),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise EnumerationError(
                f"find timed out after {self.timeout}s in {root}", root=Path(root)
            )
        except OSError as e:
            raise EnumerationError(f"Failed to run find in {root}: {e}", root=Path(root))

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise EnumerationError(
                f"find exited with {proc.returncode} in {root}: {stderr}",
                root=Path(root),
                returncode=proc.returncode,
            )

        if len(proc.stdout) > self.max_output_bytes:
            raise EnumerationError(
                f"find output exceeded {self.max_output_bytes} bytes in {root}",
                root=Path(root),
            )

        lines = proc.stdout.decode("utf-8", errors="surrogateescape").split("\n")
        return frozenset(normalize_path(line) for line in lines if line)

    def _build_args(self, prune: Collection[str], predicate: List[str]) -> List[str]:
        return list(prune_args(tuple(prune))) + ["-type", "f"] + predicate

    def list_all(self, root: Path, prune: Collection[str] = ()) -> FrozenSet[str]:
        return self._run(root, self._build_args(prune, []))

    def list_modified_since(
        self,
        root: Path,
        seconds: float,
        prune: Collection[str] = (),
    ) -> FrozenSet[str]:
        since = f"{threshold_seconds(seconds)} seconds ago"
        return self._run(root, self._build_args(prune, ["-newermt", since]))

    def list_created_since(
        self,
        root: Path,
        seconds: float,
        prune: Collection[str] = (),
    ) -> FrozenSet[str]:
        since = f"{threshold_seconds(seconds)} seconds ago"
        return self._run(root, self._build_args(prune, ["-newerBt", since]))
