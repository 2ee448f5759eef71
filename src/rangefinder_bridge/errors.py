"""Exception types raised by the Rangefinder Bridge."""

from __future__ import annotations

from typing import List, Optional


class BridgeError(Exception):
    """Base class for all bridge errors."""


class ConfigError(BridgeError):
    """Configuration could not be loaded or violates an invariant."""

    def __init__(self, message: str, problems: Optional[List[str]] = None) -> None:
        self.problems = list(problems or [])
        if self.problems:
            message = message + ": " + "; ".join(self.problems)
        super().__init__(message)


class ConnectError(BridgeError):
    """A session could not be established. Retried by the supervisor."""


class SensorNotFoundError(ConnectError):
    """The rangefinder was not seen within the scan timeout."""


class SensorProtocolError(ConnectError):
    """The rangefinder is missing the expected GATT characteristic."""


class ActuatorUnavailableError(ConnectError):
    """The toy server is unreachable or offers no usable device."""


class CommandError(BridgeError):
    """A single actuator command failed."""
