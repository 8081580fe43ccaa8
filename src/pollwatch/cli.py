#!/usr/bin/env python3
"""
CLI for watching a directory tree by polling.

Usage:
    pollwatch /path/to/folder
    pollwatch /path/to/folder --period 2 --strategy separate --find
    python -m pollwatch /path/to/folder --ignore "*.tmp" "*.swp" -v
"""

import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import PollStrategy, WatcherConfig
from .enumerator import FindEnumerator, SnapshotEnumerator
from .exceptions import ConfigError
from .models import EventKind
from .paths import IgnorePatternFilter, all_of, exclude_dotfiles
from .watcher import Watcher

logger = logging.getLogger("pollwatch.cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def build_config(args) -> WatcherConfig:
    """Merge POLLWATCH_* environment settings with command line arguments."""
    config = WatcherConfig.from_env(Path(args.root))

    if args.period is not None:
        config.poll_period = args.period
    if args.strategy is not None:
        config.strategy = PollStrategy(args.strategy)
    if args.no_prune:
        config.prune = False
    if args.fast_modified:
        config.fast_modified = True
    if args.max_failures is not None:
        config.max_consecutive_failures = args.max_failures
    if args.ignore:
        config.path_filter = all_of(exclude_dotfiles, IgnorePatternFilter(args.ignore))

    return config


def attach_loggers(watcher: Watcher) -> None:
    """Log every event the watcher emits."""

    def on_change(changes):
        logger.info(
            f"change: {len(changes.created)} created, {len(changes.deleted)} deleted, "
            f"{len(changes.modified)} modified"
        )

    def on_paths(kind):
        def handler(paths):
            for path in paths:
                logger.info(f"{kind.value}: {path}")
        return handler

    def on_error(error):
        logger.error(f"error: {error}")

    watcher.subscribe(EventKind.CHANGE, on_change)
    for kind in (EventKind.CREATED, EventKind.DELETED, EventKind.MODIFIED):
        watcher.subscribe(kind, on_paths(kind))
    watcher.subscribe(EventKind.ERROR, on_error)


def cmd_watch(args) -> int:
    """Run a watcher until interrupted."""
    try:
        config = build_config(args)
        enumerator = FindEnumerator(timeout=args.timeout) if args.find else SnapshotEnumerator()
        watcher = Watcher(config=config, enumerator=enumerator)
    except (ConfigError, ValueError) as e:
        logger.error(str(e))
        return 1

    attach_loggers(watcher)
    shutdown = GracefulShutdown()

    with watcher:
        logger.info(f"Strategy: {watcher.config.strategy.value}")
        logger.info(f"Backend: {type(enumerator).__name__}")
        if watcher.config.prune:
            logger.info(f"Pruning: {', '.join(watcher.config.prune_dirs)}")
        logger.info("Press Ctrl+C to stop")

        while not shutdown.should_exit:
            time.sleep(0.2)

    logger.info("Watcher stopped")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pollwatch",
        description="Watch a directory tree by polling and log changes.",
    )
    parser.add_argument("root", help="Directory to watch")
    parser.add_argument(
        "--period", "-p",
        type=float,
        default=None,
        help="Seconds between polls (default: POLLWATCH_PERIOD or 1)",
    )
    parser.add_argument(
        "--strategy", "-s",
        choices=[s.value for s in PollStrategy],
        default=None,
        help="Polling strategy (default: POLLWATCH_STRATEGY or paired)",
    )
    parser.add_argument(
        "--no-prune",
        action="store_true",
        help="Descend into node_modules, .git and the other pruned directories",
    )
    parser.add_argument(
        "--fast-modified",
        action="store_true",
        help="Poll for modified files at half the period",
    )
    parser.add_argument(
        "--find",
        action="store_true",
        help="List files with find(1) instead of walking in-process",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Kill a find(1) call after this many seconds",
    )
    parser.add_argument(
        "--max-failures",
        type=int,
        default=None,
        help="Continue with empty results after this many failed polls in a row",
    )
    parser.add_argument(
        "--ignore",
        nargs="+",
        default=None,
        metavar="PATTERN",
        help="Glob patterns of files to ignore",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    return cmd_watch(args)


if __name__ == "__main__":
    sys.exit(main())
