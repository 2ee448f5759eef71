"""BLE package for the rangefinder peripheral."""

from .range_parse import parse_range
from .rangefinder import RANGE_CHAR_UUID, RANGE_SERVICE_UUID, RangefinderSource, find_rangefinder

__all__ = ["RANGE_CHAR_UUID", "RANGE_SERVICE_UUID", "RangefinderSource", "find_rangefinder", "parse_range"]
