"""Device event types and the collaborator contracts used by a session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Protocol, Union


@dataclass(frozen=True)
class Connected:
    """Sensor transport is connected and range notifications are enabled."""


@dataclass(frozen=True)
class RangeUpdate:
    """One range reading from the sensor."""

    distance_mm: int


@dataclass(frozen=True)
class Disconnected:
    """Sensor link is gone. No further events follow."""


DeviceEvent = Union[Connected, RangeUpdate, Disconnected]


class DeviceEventSource(Protocol):
    """Something that produces sensor events for one connection."""

    def events(self) -> AsyncIterator[DeviceEvent]:
        """Yield events until the connection ends.

        Disconnected, when yielded, is the last event. Closing the iterator
        releases the underlying connection.
        """
        ...


class ActuatorSink(Protocol):
    """Something that accepts intensity commands for one actuator."""

    async def set_intensity(self, value: float) -> None:
        ...

    async def stop(self) -> None:
        ...

    def is_connected(self) -> bool:
        ...

    async def disconnect(self) -> None:
        ...
