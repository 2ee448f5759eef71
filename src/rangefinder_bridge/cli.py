"""CLI entry point for the Rangefinder Bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .bridge import run_bridge
from .config import save_default_config
from .errors import ConfigError

LOG_LEVELS = ("trace", "debug", "info", "warning", "warn", "error")


def setup_logging(level_name: str = "info") -> None:
    """Set up logging configuration."""
    level_name = level_name.lower()
    if level_name == "trace":
        level_name = "debug"
    elif level_name == "warn":
        level_name = "warning"

    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rangefinder-bridge",
        description=(
            "Connects to a BLE rangefinder and translates distance readings into "
            "haptic intensity for toys via Intiface Engine."
        ),
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to YAML configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Write a default configuration file to --config and exit",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        default="info",
        choices=LOG_LEVELS,
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (same as --log-level debug)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    setup_logging("debug" if args.debug else args.log_level)

    if args.generate_config:
        path = save_default_config(args.config)
        logging.getLogger(__name__).info(f"Default config written to {path}")
        return 0

    try:
        asyncio.run(run_bridge(args.config))
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nBridge stopped by user")
    except Exception as e:
        print(f"Bridge failed: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
