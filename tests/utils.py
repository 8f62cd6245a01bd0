from __future__ import annotations

import queue
import sys
from typing import List

import pytest

from linkmirror.config import WatcherConfig


posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="Needs a POSIX shell and hardlinks")


def fake_watcher(script: str) -> WatcherConfig:
    """A watcher that runs ``script`` with sh instead of inotifywait.

    The inotifywait arguments end up as positional parameters and are ignored.
    """
    return WatcherConfig(command=["sh", "-c", script, "fake-inotifywait"])


def drain_all(events: "queue.Queue[object]") -> List[object]:
    items = []
    while not events.empty():
        items.append(events.get_nowait())
    return items
