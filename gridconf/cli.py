"""
gridconf Command Line Interface

    gridconf show  --role master --config cluster.json
    gridconf start --role worker --config cluster.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from gridconf.exceptions import ConfigurationError, GridError
from gridconf.factory import GridFactory
from gridconf.log_config import setup_logging
from gridconf.settings import get_settings
from gridconf.types import ClusterRole


def load_config(path: Optional[Path]) -> Dict[str, Any]:
    """Load the application configuration from a JSON file."""
    if path is None:
        return {}
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid config file {path}: expected a JSON object, got {type(data).__name__}"
        )
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gridconf",
        description="Grid bootstrap configuration",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("show", "Print the assembled grid configuration"),
        ("start", "Start the grid in this process"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--role",
            choices=[r.value for r in ClusterRole],
            default=ClusterRole.WORKER.value,
            help="Role of this node",
        )
        sub.add_argument("--config", type=Path, help="JSON configuration file")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    setup_logging(settings.log_level.value, settings.log_format)

    try:
        factory = GridFactory(args.role, load_config(args.config))
        if args.command == "show":
            print(factory.config().model_dump_json(indent=2))
        elif args.command == "start":
            handle = factory.start()
            print(f"Started grid '{handle.name}' as {factory.role.value}")
    except (GridError, FileNotFoundError, json.JSONDecodeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
