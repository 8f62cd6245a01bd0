"""Maps notification events onto filesystem actions in the destination."""
from __future__ import annotations

import logging
import os
import queue
import stat
from dataclasses import dataclass
from pathlib import Path

from .config import WatchConfig
from .events import EventKind, NotificationEvent
from .replicate import DirectoryReplicator, ReplicationError
from .source import END_OF_STREAM, StreamFailure

logger = logging.getLogger(__name__)

_ACTIONABLE = (EventKind.CREATE, EventKind.MOVED_TO, EventKind.MODIFY)


@dataclass
class DispatchStats:
    """Counters kept by the dispatcher for the final summary."""

    events_received: int = 0
    events_skipped: int = 0
    links_created: int = 0
    directories_created: int = 0
    replications: int = 0
    failures: int = 0

    def summary(self) -> str:
        return (
            f"{self.events_received} events, {self.events_skipped} skipped, "
            f"{self.links_created} links, {self.directories_created} directories, "
            f"{self.replications} subtree copies, {self.failures} failures"
        )


class ActionDispatcher:
    """Performs the destination action for each event, one event at a time.

    Creation and moved-in events create the matching directory or hardlink the
    file. Modification of a directory replicates its subtree. Modification of a
    file and deletions need nothing: linked files share their inode, and
    destination entries are never removed.
    """

    def __init__(self, config: WatchConfig, replicator: DirectoryReplicator):
        self._config = config
        self._replicator = replicator
        self.stats = DispatchStats()

    def drain(self, events: "queue.Queue[object]") -> DispatchStats:
        """Dispatch queued events until the producer closes the queue.

        A ``StreamFailure`` closing the queue is re-raised as its ``WatchError``.
        """

        while True:
            item = events.get()
            if item is END_OF_STREAM:
                return self.stats
            if isinstance(item, StreamFailure):
                raise item.error
            self.dispatch(item)

    def dispatch(self, event: NotificationEvent) -> None:
        self.stats.events_received += 1
        logger.debug("Got event %s", event.describe())

        if not event.name or not event.has_any(*_ACTIONABLE):
            self.stats.events_skipped += 1
            return

        source = self._config.watch_dir / event.name
        destination = self._config.dest_dir / event.name
        try:
            mode = os.stat(source).st_mode
        except OSError as exc:
            logger.warning("Stat error on %s: %s", source, exc)
            self.stats.events_skipped += 1
            return

        is_dir = stat.S_ISDIR(mode)
        if not is_dir and not stat.S_ISREG(mode):
            logger.debug("Ignoring %s: not a regular file or directory", source)
            self.stats.events_skipped += 1
            return

        if event.has_any(EventKind.CREATE, EventKind.MOVED_TO):
            if is_dir:
                self._make_directory(destination)
            else:
                self._link_file(source, destination)

        if event.has(EventKind.MODIFY) and is_dir:
            self._replicate(source, destination)

    def _make_directory(self, destination: Path) -> None:
        try:
            destination.mkdir(exist_ok=True)
        except OSError as exc:
            logger.error("Error creating directory %s: %s", destination, exc)
            self.stats.failures += 1
            return
        logger.info("Created directory %s", destination)
        self.stats.directories_created += 1

    def _link_file(self, source: Path, destination: Path) -> None:
        try:
            os.link(source, destination)
        except OSError as exc:
            logger.error("Error linking %s to %s: %s", source, destination, exc)
            self.stats.failures += 1
            return
        logger.info("Linked %s -> %s", destination, source)
        self.stats.links_created += 1

    def _replicate(self, source: Path, destination: Path) -> None:
        try:
            self._replicator.replicate(source, destination)
        except ReplicationError as exc:
            logger.error("Error copying directory %s: %s", source, exc)
            self.stats.failures += 1
            return
        logger.info("Copied directory %s -> %s (%s)", source, destination, self._replicator.name)
        self.stats.replications += 1
