"""Wires the notification source to the action dispatcher."""
from __future__ import annotations

import logging
import queue
from pathlib import Path

from .config import AppConfig
from .dispatcher import ActionDispatcher, DispatchStats
from .replicate import build_replicator
from .source import NotificationSource

logger = logging.getLogger(__name__)


class DestinationError(RuntimeError):
    """Raised when the destination directory cannot be created."""


def ensure_directory(path: Path) -> None:
    """Create ``path`` and its parents; an existing directory is fine."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DestinationError(f"Error making destination directory {path}: {exc}") from exc


class LinkMirror:
    """Mirrors additions to the watched directory until the watch process exits."""

    def __init__(self, config: AppConfig):
        self._config = config

    def run(self) -> DispatchStats:
        """Run the source thread and dispatch its events on the calling thread."""

        watch = self._config.watch
        ensure_directory(watch.dest_dir)

        events: "queue.Queue[object]" = queue.Queue()
        source = NotificationSource(watch.watch_dir, events, watcher=self._config.watcher)
        dispatcher = ActionDispatcher(watch, build_replicator(self._config.replicator))

        logger.info("Mirroring %s into %s", watch.watch_dir, watch.dest_dir)
        thread = source.start()
        try:
            stats = dispatcher.drain(events)
            thread.join()
            return stats
        except KeyboardInterrupt:
            logger.info("Mirror interrupted by user")
            raise
        finally:
            logger.info("Mirror stopped: %s", dispatcher.stats.summary())
