"""Parser for rangefinder range characteristic notifications.

The peripheral notifies the current distance as a little-endian unsigned
16-bit value in millimeters. Firmware may append extra bytes, which are
ignored.
"""

from __future__ import annotations

import struct
from typing import Optional


def parse_range(payload: bytes) -> Optional[int]:
    """Return the distance in millimeters, or None if the payload is too short."""
    if not payload or len(payload) < 2:
        return None
    return struct.unpack_from("<H", payload, 0)[0]
