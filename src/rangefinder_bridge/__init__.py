"""Rangefinder Bridge - BLE distance sensor to haptic toy control."""

__version__ = "0.1.0"

from .bridge import Bridge, run_bridge
from .config import AppConfig, MappingConfig, load_config, load_or_default
from .mapper import RangeMapper
from .session import EndReason, Session, SessionResult, SessionState
from .shutdown import ShutdownFlag

__all__ = [
    "AppConfig",
    "Bridge",
    "EndReason",
    "MappingConfig",
    "RangeMapper",
    "Session",
    "SessionResult",
    "SessionState",
    "ShutdownFlag",
    "load_config",
    "load_or_default",
    "run_bridge",
]
