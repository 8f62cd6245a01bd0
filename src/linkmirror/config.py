"""Configuration loading utilities for the link mirror."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

import yaml # type: ignore


logger = logging.getLogger(__name__)

REPLICATORS = ("cp", "native")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


@dataclass(frozen=True)
class WatchConfig:
    """The watched directory and the directory it is mirrored into."""

    watch_dir: Path
    dest_dir: Path

    @classmethod
    def from_paths(cls, watch_dir: str, dest_dir: str) -> "WatchConfig":
        return cls(
            watch_dir=Path(watch_dir).expanduser().absolute(),
            dest_dir=Path(dest_dir).expanduser().absolute(),
        )


@dataclass
class WatcherConfig:
    """How the external notification process is launched."""

    command: List[str] = field(default_factory=lambda: ["inotifywait"])
    events: List[str] = field(default_factory=list)


@dataclass
class AppConfig:
    """Top-level configuration structure."""

    watch: WatchConfig
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    replicator: str = "cp"
    log_level: Optional[str] = None


def load_config(path: Path) -> dict:
    """Load the YAML configuration file and return its validated raw mapping."""

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:  # pragma: no cover - logging helper
        raise ConfigError(f"Failed to parse YAML configuration: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")
    return data


def build_config(watch: WatchConfig, raw: Optional[dict] = None) -> AppConfig:
    """Combine the command-line directories with optional file settings."""

    raw = raw or {}
    unknown = sorted(set(raw) - {"watcher", "replicator", "log_level"})
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    watcher_cfg = _parse_watcher_config(raw.get("watcher"))

    replicator = raw.get("replicator", "cp")
    if replicator not in REPLICATORS:
        raise ConfigError(f"replicator must be one of: {', '.join(REPLICATORS)}")

    log_level = raw.get("log_level")
    if log_level is not None:
        if not isinstance(log_level, str) or log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        log_level = log_level.upper()

    app_config = AppConfig(
        watch=watch,
        watcher=watcher_cfg,
        replicator=replicator,
        log_level=log_level,
    )
    logger.debug(
        "Loaded configuration: watcher=%s replicator=%s",
        " ".join(app_config.watcher.command),
        app_config.replicator,
    )
    return app_config


def _parse_watcher_config(raw: Any) -> WatcherConfig:
    if raw is None:
        return WatcherConfig()
    if not isinstance(raw, dict):
        raise ConfigError("'watcher' section must be a mapping")

    command = _ensure_str_list(raw.get("command", ["inotifywait"]), "watcher.command")
    if not command:
        raise ConfigError("watcher.command must not be empty")
    if any("\0" in part for part in command):
        raise ConfigError("watcher.command must not contain null bytes")

    events = [event.lower() for event in _ensure_str_list(raw.get("events", []), "watcher.events")]
    return WatcherConfig(command=command, events=events)


def _ensure_str_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"{field_name} must be a list of strings")
    items: List[str] = []
    for elem in value:
        if not isinstance(elem, str):
            raise ConfigError(f"{field_name} must contain only strings")
        items.append(elem)
    return items
