"""Command-line entry point for the link mirror."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, WatchConfig, build_config, load_config
from .monitor import DestinationError, LinkMirror
from .source import WatchError


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Mirror new files and directories into another directory using hardlinks"
    )
    parser.add_argument("watch_dir", help="Directory to watch for new entries")
    parser.add_argument("dest_dir", help="Directory receiving the hardlinked copies")
    parser.add_argument(
        "--config",
        default=None,
        help="Optional path to a YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR); overrides the configuration file",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, (args.log_level or "INFO").upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    try:
        raw = load_config(Path(args.config)) if args.config else {}
        app_config = build_config(WatchConfig.from_paths(args.watch_dir, args.dest_dir), raw)
    except ConfigError as exc:
        logging.error("%s", exc)
        raise SystemExit(2) from exc

    if app_config.log_level and not args.log_level:
        logging.getLogger().setLevel(app_config.log_level)

    mirror = LinkMirror(app_config)
    try:
        mirror.run()
    except (DestinationError, WatchError) as exc:
        logging.critical("%s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
