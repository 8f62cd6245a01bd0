from __future__ import annotations

from pathlib import Path

import pytest

from linkmirror.config import WatchConfig


@pytest.fixture()
def dirs(tmp_path: Path) -> WatchConfig:
    watch_dir = tmp_path / "src"
    dest_dir = tmp_path / "dst"
    watch_dir.mkdir()
    dest_dir.mkdir()
    return WatchConfig(watch_dir=watch_dir, dest_dir=dest_dir)
