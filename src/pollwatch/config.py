"""Configuration for the pollwatch package."""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping, Optional, Tuple

from .exceptions import InvalidPollPeriodError, RootNotFoundError


# Directory names never descended into while listing the tree.
# Read-only and shared by every watcher in the process.
DEFAULT_PRUNE_DIRS: Tuple[str, ...] = (
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "bower_components",
    "__pycache__",
    ".venv",
    ".tox",
    ".mypy_cache",
    ".pytest_cache",
)

# Lookback window of the modified/created rounds, independent of poll period.
MODIFIED_LOOKBACK_SECONDS = 1


class PollStrategy(Enum):
    """How created/deleted results are produced."""
    # One full-tree round yields deleted and created together.
    PAIRED = "paired"
    # Deleted, created and modified each run on their own timer.
    SEPARATE = "separate"


_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class WatcherConfig:
    """
    Configuration options for a polling watcher.

    Attributes:
        root: Directory to watch
        poll_period: Seconds between rounds of the full-tree poll
        path_filter: Predicate over a root-relative path, True to keep it.
            None selects the dotfile filter.
        prune: Whether to skip ``prune_dirs`` during traversal
        prune_dirs: Directory names excluded from traversal entirely
        strategy: Poll architecture, see ``PollStrategy``
        fast_modified: Run the modified round at half the poll period
        modified_lookback: Seconds the modified/created rounds look back
        max_consecutive_failures: After this many failures in a row for
            one buffer slot, fill it with an empty set so flushing can
            proceed. None keeps the slot empty until a poll succeeds.
    """
    root: Path
    poll_period: float = 1.0
    path_filter: Optional[Callable[[str], bool]] = None
    prune: bool = True
    prune_dirs: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_PRUNE_DIRS)
    strategy: PollStrategy = PollStrategy.PAIRED
    fast_modified: bool = False
    modified_lookback: float = MODIFIED_LOOKBACK_SECONDS
    max_consecutive_failures: Optional[int] = None

    def __post_init__(self):
        self.root = Path(self.root)
        self.prune_dirs = tuple(self.prune_dirs)
        if isinstance(self.strategy, str):
            self.strategy = PollStrategy(self.strategy)

    @property
    def active_prune_dirs(self) -> Tuple[str, ...]:
        """Prune list handed to the enumerator (empty when pruning is off)."""
        return self.prune_dirs if self.prune else ()

    @property
    def modified_period(self) -> float:
        """Period of the modified round."""
        if self.fast_modified:
            return self.poll_period / 2
        return self.poll_period

    def validate(self) -> None:
        """
        Check the configuration before any polling starts.

        Raises:
            RootNotFoundError: If root does not exist or is not a directory
            InvalidPollPeriodError: If poll_period is not a positive number
        """
        if isinstance(self.poll_period, bool) or not isinstance(self.poll_period, (int, float)):
            raise InvalidPollPeriodError(f"poll_period must be a number: {self.poll_period!r}")
        if not self.poll_period > 0:
            raise InvalidPollPeriodError(f"poll_period must be > 0: {self.poll_period}")
        if not self.root.exists():
            raise RootNotFoundError(f"Root folder does not exist: {self.root}")
        if not self.root.is_dir():
            raise RootNotFoundError(f"Root path is not a directory: {self.root}")
        if self.max_consecutive_failures is not None and self.max_consecutive_failures < 1:
            raise ValueError(
                f"max_consecutive_failures must be >= 1: {self.max_consecutive_failures}"
            )

    @classmethod
    def from_env(cls, root: Path, environ: Optional[Mapping[str, str]] = None) -> "WatcherConfig":
        """
        Build a config for ``root`` from POLLWATCH_* environment variables.

        Recognized variables: POLLWATCH_PERIOD, POLLWATCH_STRATEGY,
        POLLWATCH_PRUNE, POLLWATCH_FAST_MODIFIED.
        """
        env = os.environ if environ is None else environ
        config = cls(root=Path(root))

        period = env.get("POLLWATCH_PERIOD")
        if period:
            try:
                config.poll_period = float(period)
            except ValueError:
                raise InvalidPollPeriodError(f"POLLWATCH_PERIOD is not a number: {period!r}")

        strategy = env.get("POLLWATCH_STRATEGY")
        if strategy:
            config.strategy = PollStrategy(strategy.strip().lower())

        config.prune = _env_bool(env.get("POLLWATCH_PRUNE"), config.prune)
        config.fast_modified = _env_bool(env.get("POLLWATCH_FAST_MODIFIED"), config.fast_modified)
        return config
