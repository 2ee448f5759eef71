"""Shared fakes for session and supervisor tests."""

import asyncio
from typing import List, Optional

import pytest

from rangefinder_bridge.config import MappingConfig


class FakeSource:
    """Device event source that replays a fixed list of events."""

    def __init__(self, events=(), hold_open: bool = False, error: Optional[Exception] = None):
        self._events = list(events)
        self._hold_open = hold_open
        self._error = error
        self.started = False
        self.closed = False

    async def events(self):
        self.started = True
        try:
            for event in self._events:
                await asyncio.sleep(0)
                yield event
            if self._error is not None:
                raise self._error
            if self._hold_open:
                await asyncio.Event().wait()
        finally:
            self.closed = True


class FakeSink:
    """Actuator sink that records every call."""

    def __init__(
        self,
        connected: bool = True,
        fail_set_times: int = 0,
        fail_stop: bool = False,
        fail_disconnect: bool = False,
    ):
        self.connected = connected
        self.fail_set_times = fail_set_times
        self.fail_stop = fail_stop
        self.fail_disconnect = fail_disconnect
        self.set_attempts: List[float] = []
        self.intensities: List[float] = []
        self.stop_calls = 0
        self.disconnect_calls = 0

    async def set_intensity(self, value: float) -> None:
        self.set_attempts.append(value)
        if self.fail_set_times > 0:
            self.fail_set_times -= 1
            raise RuntimeError("device busy")
        self.intensities.append(value)

    async def stop(self) -> None:
        self.stop_calls += 1
        if self.fail_stop:
            raise RuntimeError("stop failed")

    def is_connected(self) -> bool:
        return self.connected

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.fail_disconnect:
            raise RuntimeError("disconnect failed")


def factory(obj):
    """Wrap an object in an async zero-argument factory."""
    async def make():
        return obj
    return make


@pytest.fixture
def unsmoothed_mapping():
    return MappingConfig(
        invert=True,
        min_range_mm=30,
        max_range_mm=300,
        min_intensity=0.0,
        max_intensity=1.0,
        deadzone_mm=500,
        smoothing=0.0,
    )
