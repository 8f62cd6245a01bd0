from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest
import yaml

from linkmirror.__main__ import main
from linkmirror.config import AppConfig, WatchConfig
from linkmirror.monitor import DestinationError, LinkMirror, ensure_directory
from linkmirror.source import WatchError

from .utils import fake_watcher, posix_only

pytestmark = posix_only


def test_ensure_directory_creates_parents_and_tolerates_existing(tmp_path: Path):
    target = tmp_path / "a" / "b"

    ensure_directory(target)
    ensure_directory(target)

    assert target.is_dir()


def test_ensure_directory_failure(tmp_path: Path):
    blocker = tmp_path / "file"
    blocker.write_text("")

    with pytest.raises(DestinationError, match="Error making destination directory"):
        ensure_directory(blocker / "dst")


def test_mirror_links_reported_entries(tmp_path: Path):
    watch_dir = tmp_path / "src"
    (watch_dir / "sub").mkdir(parents=True)
    (watch_dir / "x.txt").write_text("x")
    (watch_dir / "sub" / "a").write_text("a")
    (watch_dir / "sub" / "b").write_text("b")
    script = r"printf 'IGNORED\n\nCREATE\nx.txt\nCREATE,ISDIR\nsub\nMODIFY,ISDIR\nsub\nDELETE\nx.txt\n'"
    config = AppConfig(
        watch=WatchConfig(watch_dir=watch_dir, dest_dir=tmp_path / "new" / "dst"),
        watcher=fake_watcher(script),
        replicator="native",
    )

    stats = LinkMirror(config).run()

    dest_dir = tmp_path / "new" / "dst"
    assert os.path.samefile(watch_dir / "x.txt", dest_dir / "x.txt")
    assert os.path.samefile(watch_dir / "sub" / "a", dest_dir / "sub" / "a")
    assert os.path.samefile(watch_dir / "sub" / "b", dest_dir / "sub" / "b")
    assert stats.events_received == 5
    assert stats.links_created == 1
    assert stats.directories_created == 1
    assert stats.replications == 1
    assert stats.failures == 0


def test_mirror_stops_dispatching_on_truncated_record(tmp_path: Path):
    watch_dir = tmp_path / "src"
    watch_dir.mkdir()
    (watch_dir / "a").write_text("a")
    config = AppConfig(
        watch=WatchConfig(watch_dir=watch_dir, dest_dir=tmp_path / "dst"),
        watcher=fake_watcher(r"printf 'CREATE\na\nCREATE\n'"),
    )

    with pytest.raises(WatchError, match="Incomplete output"):
        LinkMirror(config).run()

    assert (tmp_path / "dst" / "a").exists()


def write_config(path: Path, script: str, **extra: str) -> Path:
    settings = {"watcher": {"command": ["sh", "-c", script, "fake-inotifywait"]}, **extra}
    path.write_text(yaml.safe_dump(settings))
    return path


def test_main_runs_until_watcher_exits(tmp_path: Path, caplog):
    caplog.set_level(logging.INFO)
    watch_dir = tmp_path / "src"
    watch_dir.mkdir()
    (watch_dir / "x.txt").write_text("x")
    config = write_config(tmp_path / "config.yaml", r"printf 'CREATE\nx.txt\n'", replicator="native")

    main([str(watch_dir), str(tmp_path / "dst"), "--config", str(config)])

    assert os.path.samefile(watch_dir / "x.txt", tmp_path / "dst" / "x.txt")
    assert "Mirror stopped: 1 events" in caplog.text


def test_main_exits_non_zero_on_watcher_failure(tmp_path: Path, caplog):
    caplog.set_level(logging.INFO)
    watch_dir = tmp_path / "src"
    watch_dir.mkdir()
    config = write_config(tmp_path / "config.yaml", "echo 'cannot watch' >&2; exit 1")

    with pytest.raises(SystemExit) as excinfo:
        main([str(watch_dir), str(tmp_path / "dst"), "--config", str(config)])

    assert excinfo.value.code == 1
    assert "exited with non-zero status 1" in caplog.text


def test_main_exits_non_zero_when_destination_cannot_be_created(tmp_path: Path):
    blocker = tmp_path / "file"
    blocker.write_text("")

    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path), str(blocker / "dst")])

    assert excinfo.value.code == 1


def test_main_rejects_invalid_config(tmp_path: Path):
    config = tmp_path / "config.yaml"
    config.write_text("replicator: rsync\n")

    with pytest.raises(SystemExit) as excinfo:
        main([str(tmp_path), str(tmp_path / "dst"), "--config", str(config)])

    assert excinfo.value.code == 2
    assert not (tmp_path / "dst").exists()


def test_main_exits_non_zero_on_truncated_record(tmp_path: Path, caplog):
    caplog.set_level(logging.INFO)
    watch_dir = tmp_path / "src"
    watch_dir.mkdir()
    config = write_config(tmp_path / "config.yaml", r"printf 'CREATE\na\nCREATE\n'")

    with pytest.raises(SystemExit) as excinfo:
        main([str(watch_dir), str(tmp_path / "dst"), "--config", str(config)])

    assert excinfo.value.code == 1
    critical = [record for record in caplog.records if record.levelno == logging.CRITICAL]
    assert len(critical) == 1
    assert "Incomplete output" in critical[0].getMessage()
