"""Directory replicators that copy a subtree while sharing file storage."""
from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Sequence

logger = logging.getLogger(__name__)


class ReplicationError(RuntimeError):
    """Raised when a subtree could not be fully replicated."""


class DirectoryReplicator(ABC):
    """Replicates a directory subtree, hardlinking every regular file."""

    name = "abstract"

    @abstractmethod
    def replicate(self, source: Path, destination: Path) -> None:
        """Mirror ``source`` into ``destination``; ``destination`` may already exist."""


class CopyCommandReplicator(DirectoryReplicator):
    """Shells out to ``cp -alT`` (archive, hardlink, no target directory)."""

    name = "cp"

    def __init__(self, command: Sequence[str] = ("cp", "-alT")):
        self._command = list(command)

    def replicate(self, source: Path, destination: Path) -> None:
        command = [*self._command, str(source), str(destination)]
        logger.debug("Executing %s", " ".join(command))
        try:
            subprocess.run(command, check=True, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise ReplicationError(f"{command[0]} is not available: {exc}") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip()
            raise ReplicationError(
                f"{' '.join(command)} failed (exit {exc.returncode}): {detail}"
            ) from exc


class HardlinkTreeReplicator(DirectoryReplicator):
    """Walks the subtree and hardlinks each file into the mirrored directories.

    Files whose destination already refers to the same inode are left alone.
    Individual link failures do not stop the walk; they are reported together
    once the whole subtree was visited.
    """

    name = "native"

    def replicate(self, source: Path, destination: Path) -> None:
        failures: List[str] = []
        linked = 0

        def unreadable(exc: OSError) -> None:
            failures.append(str(exc))

        for current, _dirnames, filenames in os.walk(source, onerror=unreadable):
            relative = os.path.relpath(current, source)
            target_dir = destination if relative == os.curdir else destination / relative
            try:
                target_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                failures.append(f"{target_dir}: {exc}")
                continue
            for filename in sorted(filenames):
                src = Path(current) / filename
                dst = target_dir / filename
                if _same_file(src, dst):
                    continue
                try:
                    os.link(src, dst)
                except OSError as exc:
                    failures.append(f"{dst}: {exc}")
                    continue
                linked += 1
        logger.debug("Linked %s files from %s into %s", linked, source, destination)
        if failures:
            raise ReplicationError(
                f"{len(failures)} entries under {destination} could not be linked; first: {failures[0]}"
            )


def build_replicator(name: str) -> DirectoryReplicator:
    if name == CopyCommandReplicator.name:
        return CopyCommandReplicator()
    if name == HardlinkTreeReplicator.name:
        return HardlinkTreeReplicator()
    raise ValueError(f"Unknown replicator '{name}'")


def _same_file(src: Path, dst: Path) -> bool:
    try:
        return os.path.samefile(src, dst)
    except OSError:
        return False
