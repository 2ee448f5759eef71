"""One bridge session: a live sensor connection driving a live actuator connection."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from .config import MappingConfig
from .interfaces import ActuatorSink, Connected, DeviceEventSource, Disconnected, RangeUpdate
from .mapper import RangeMapper
from .shutdown import ShutdownFlag

logger = logging.getLogger(__name__)

LIVENESS_INTERVAL_SECS = 1.0

# Commands closer than this to the last sent value are dropped
INTENSITY_EPSILON = 0.01

SourceFactory = Callable[[], Awaitable[DeviceEventSource]]
SinkFactory = Callable[[], Awaitable[ActuatorSink]]


class SessionState(Enum):
    ESTABLISHING = "establishing"
    ACTIVE = "active"
    TERMINATING = "terminating"
    ENDED = "ended"


class EndReason(str, Enum):
    SHUTDOWN = "shutdown"
    SENSOR_DISCONNECTED = "sensor_disconnected"
    ACTUATOR_LOST = "actuator_lost"
    ESTABLISH_FAILED = "establish_failed"


@dataclass
class SessionResult:
    """Outcome of a session, handed back to the supervisor."""

    reason: EndReason
    error: Optional[BaseException] = None
    events_received: int = 0
    samples_mapped: int = 0
    commands_sent: int = 0

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        """Convert result to dictionary for logging."""
        return {
            "reason": self.reason.value,
            "error": str(self.error) if self.error is not None else None,
            "error_type": type(self.error).__name__ if self.error is not None else None,
            "events_received": self.events_received,
            "samples_mapped": self.samples_mapped,
            "commands_sent": self.commands_sent,
        }


class Session:
    """Runs one sensor/actuator pairing from setup to teardown.

    The session owns a fresh RangeMapper, so smoothing never carries over
    between reconnects. Sensor events are pumped by a background task into
    an unbounded queue; the session loop waits on that queue and on a fixed
    liveness schedule at the same time.
    """

    def __init__(
        self,
        source_factory: SourceFactory,
        sink_factory: SinkFactory,
        mapping: MappingConfig,
        shutdown: ShutdownFlag,
        liveness_interval: float = LIVENESS_INTERVAL_SECS,
    ) -> None:
        self._source_factory = source_factory
        self._sink_factory = sink_factory
        self._shutdown = shutdown
        self.liveness_interval = liveness_interval

        self.mapper = RangeMapper(mapping)
        self.state = SessionState.ESTABLISHING
        self.source: Optional[DeviceEventSource] = None
        self.sink: Optional[ActuatorSink] = None

        self._last_sent: Optional[float] = None
        self._producer_error: Optional[BaseException] = None

    async def run(self) -> SessionResult:
        """Establish, drive and tear down the session."""
        self.state = SessionState.ESTABLISHING

        if self._shutdown.is_set():
            return self._finish(SessionResult(EndReason.SHUTDOWN))

        try:
            self.source = await self._source_factory()
            self.sink = await self._sink_factory()
        except Exception as e:
            logger.error(f"Session setup failed: {e}")
            return self._finish(SessionResult(EndReason.ESTABLISH_FAILED, error=e))

        self.state = SessionState.ACTIVE
        logger.info("Session active")

        queue: asyncio.Queue = asyncio.Queue()
        producer = asyncio.create_task(self._pump(self.source, queue))
        result = SessionResult(EndReason.SENSOR_DISCONNECTED)

        try:
            result.reason = await self._drive(queue, result)
        finally:
            self.state = SessionState.TERMINATING
            await self._teardown(producer)

        if result.reason is EndReason.SENSOR_DISCONNECTED and self._producer_error is not None:
            result.error = self._producer_error

        return self._finish(result)

    async def _drive(self, queue: asyncio.Queue, result: SessionResult) -> EndReason:
        loop = asyncio.get_running_loop()
        next_probe = loop.time() + self.liveness_interval
        get_task: Optional[asyncio.Future] = None

        try:
            while True:
                if self._shutdown.is_set():
                    logger.info("Shutdown requested, ending session")
                    return EndReason.SHUTDOWN

                now = loop.time()
                if now >= next_probe:
                    next_probe += self.liveness_interval
                    if next_probe <= now:
                        next_probe = now + self.liveness_interval
                    if not self.sink.is_connected():
                        logger.warning("Lost connection to actuator server")
                        return EndReason.ACTUATOR_LOST
                    continue

                if get_task is None:
                    get_task = asyncio.ensure_future(queue.get())

                done, _ = await asyncio.wait({get_task}, timeout=next_probe - now)
                if not done:
                    continue

                event = get_task.result()
                get_task = None
                result.events_received += 1

                if isinstance(event, RangeUpdate):
                    intensity = self.mapper.map(event.distance_mm)
                    result.samples_mapped += 1
                    if await self._send(intensity):
                        result.commands_sent += 1
                elif isinstance(event, Connected):
                    logger.info("Rangefinder connected")
                elif isinstance(event, Disconnected):
                    logger.warning("Rangefinder disconnected")
                    return EndReason.SENSOR_DISCONNECTED
        finally:
            if get_task is not None and not get_task.done():
                get_task.cancel()

    async def _send(self, intensity: float) -> bool:
        """Forward intensity to the sink unless it is within 1% of the last value sent."""
        if self._last_sent is not None and abs(intensity - self._last_sent) < INTENSITY_EPSILON:
            return False

        try:
            await self.sink.set_intensity(intensity)
        except Exception as e:
            logger.warning(f"Failed to set intensity: {e}")
            return False

        self._last_sent = intensity
        return True

    async def _pump(self, source: DeviceEventSource, queue: asyncio.Queue) -> None:
        """Move events from the source into the session queue."""
        events = source.events()
        try:
            async for event in events:
                queue.put_nowait(event)
                if isinstance(event, Disconnected):
                    return
            logger.warning("Rangefinder event stream ended")
        except Exception as e:
            logger.error(f"Rangefinder client error: {e}")
            self._producer_error = e
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception as e:
                    logger.warning(f"Error closing rangefinder stream: {e}")

        queue.put_nowait(Disconnected())

    async def _teardown(self, producer: asyncio.Task) -> None:
        """Best-effort stop and disconnect. Errors are logged, never raised."""
        logger.info("Stopping device...")

        try:
            await self.sink.stop()
        except Exception as e:
            logger.warning(f"Failed to stop device: {e}")
        self._last_sent = None

        try:
            await self.sink.disconnect()
        except Exception as e:
            logger.warning(f"Failed to disconnect actuator: {e}")

        producer.cancel()
        try:
            await producer
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"Rangefinder task failed during teardown: {e}")

    def _finish(self, result: SessionResult) -> SessionResult:
        self.state = SessionState.ENDED
        logger.info(f"Session ended: {result.reason.value}")
        return result
