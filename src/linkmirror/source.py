"""Notification source backed by an ``inotifywait`` child process."""
from __future__ import annotations

import logging
import queue
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Optional, cast

from .config import WatcherConfig
from .events import NotificationEvent

logger = logging.getLogger(__name__)

# One record is a kind-list line followed by a name line.
RECORD_FORMAT = "%e\n%f"

END_OF_STREAM = object()


class WatchError(RuntimeError):
    """Raised when the watch process fails or its output can no longer be trusted."""


@dataclass(frozen=True)
class StreamFailure:
    """Closes the event queue after a fatal producer error."""

    error: WatchError


def parse_records(lines: Iterable[str]) -> Iterator[NotificationEvent]:
    """Group watch process output lines into events, two lines per record."""

    iterator = iter(lines)
    for kind_line in iterator:
        kind_line = _chomp(kind_line)
        try:
            name_line = _chomp(next(iterator))
        except StopIteration:
            raise WatchError(
                f"Incomplete output from watch process: kind line {kind_line!r} has no name line"
            ) from None
        if not kind_line:
            raise WatchError(f"Malformed output from watch process: empty kind line for {name_line!r}")
        yield NotificationEvent.from_record(kind_line, name_line)


class NotificationSource:
    """Runs the watch process and publishes its notifications onto a queue.

    The queue is closed exactly once, after the stderr drain has finished and
    the process exit status is known: with ``END_OF_STREAM`` on success or a
    ``StreamFailure`` otherwise.
    """

    def __init__(
        self,
        watch_dir: Path,
        events: "queue.Queue[object]",
        *,
        watcher: Optional[WatcherConfig] = None,
    ):
        self._watch_dir = watch_dir
        self._events = events
        self._watcher = watcher or WatcherConfig()
        self.published = 0

    def command(self) -> List[str]:
        args = [*self._watcher.command, "-m", "--format", RECORD_FORMAT]
        for event in self._watcher.events:
            args.extend(["-e", event])
        args.append(str(self._watch_dir))
        return args

    def start(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name="notification-source", daemon=True)
        thread.start()
        return thread

    def run(self) -> None:
        try:
            self._watch()
        except WatchError as exc:
            self._events.put(StreamFailure(exc))
        except Exception as exc:
            logger.exception("Notification source failed")
            failure = WatchError(f"Notification source failed: {exc}")
            failure.__cause__ = exc
            self._events.put(StreamFailure(failure))
        else:
            self._events.put(END_OF_STREAM)

    def _watch(self) -> None:
        args = self.command()
        program = args[0]
        logger.info("Starting %s for %s", program, self._watch_dir)
        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="surrogateescape",
            )
        except (OSError, ValueError) as exc:
            raise WatchError(f"Error starting {program}: {exc}") from exc

        drain = threading.Thread(
            target=_log_stderr,
            args=(cast(IO[str], process.stderr), program),
            name="notification-source-stderr",
            daemon=True,
        )
        drain.start()

        stdout = cast(IO[str], process.stdout)
        try:
            try:
                for event in parse_records(stdout):
                    self._events.put(event)
                    self.published += 1
            except OSError as exc:
                raise WatchError(f"Error reading {program} output: {exc}") from exc
        except Exception:
            process.kill()
            raise
        finally:
            stdout.close()
            drain.join()
            returncode = process.wait()

        if returncode != 0:
            raise WatchError(f"{program} exited with non-zero status {returncode}")
        logger.info("%s exited after %s notifications", program, self.published)


def _log_stderr(stream: IO[str], program: str) -> None:
    with stream:
        for line in stream:
            line = line.rstrip()
            if line:
                logger.info("%s: %s", program, line)


def _chomp(line: str) -> str:
    return line[:-1] if line.endswith("\n") else line
