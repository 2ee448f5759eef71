#!/usr/bin/env python3
"""CLI entry point for the Rangefinder Bridge."""

import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rangefinder_bridge.cli import main


if __name__ == "__main__":
    sys.exit(main())
