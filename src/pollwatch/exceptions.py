"""Custom exceptions for the pollwatch package."""

from pathlib import Path
from typing import Optional


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class EnumerationError(WatcherError):
    """
    Listing the watched tree failed.

    Raised by enumerators for a missing root, permission problems,
    a crashed or timed out subprocess, or output that exceeds the
    configured buffer size. Never fatal to a running watcher.
    """

    def __init__(
        self,
        message: str,
        root: Optional[Path] = None,
        returncode: Optional[int] = None,
    ):
        super().__init__(message)
        self.root = root
        self.returncode = returncode


class ConfigError(WatcherError):
    """Invalid watcher configuration."""
    pass


class RootNotFoundError(ConfigError):
    """Watched root does not exist or is not a directory."""
    pass


class InvalidPollPeriodError(ConfigError):
    """Poll period is not a positive number."""
    pass


class WatcherAlreadyRunningError(WatcherError):
    """Watcher is already running."""
    pass
