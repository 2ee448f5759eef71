"""Rangefinder BLE client producing device events."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError

from ..errors import SensorNotFoundError, SensorProtocolError
from ..interfaces import Connected, DeviceEvent, Disconnected, RangeUpdate
from .range_parse import parse_range

logger = logging.getLogger(__name__)

# Must match the firmware's range service definition
RANGE_SERVICE_UUID = "00000001-7272-6e67-6669-6e6465720000"
RANGE_CHAR_UUID = "00000002-7272-6e67-6669-6e6465720000"


async def find_rangefinder(device_name: str, scan_timeout_secs: float) -> "RangefinderSource":
    """Scan for a peripheral advertising `device_name` and wrap it as an event source."""
    logger.info(f"Scanning for '{device_name}' ({scan_timeout_secs:.0f}s timeout)...")

    try:
        device = await BleakScanner.find_device_by_name(device_name, timeout=scan_timeout_secs)
    except BleakError as e:
        raise SensorNotFoundError(f"BLE scan failed: {e}") from e

    if device is None:
        raise SensorNotFoundError(f"Scan timeout: '{device_name}' not found")

    logger.info(f"Found device: {device_name} ({device.address})")
    return RangefinderSource(device)


class RangefinderSource:
    """Event source for one connection to the rangefinder peripheral."""

    def __init__(self, device: BLEDevice) -> None:
        self.device = device
        self._sample_count = 0

    @property
    def sample_count(self) -> int:
        return self._sample_count

    async def events(self) -> AsyncIterator[DeviceEvent]:
        """Connect, subscribe and yield events until the link drops."""
        # None marks the end of the connection
        queue: asyncio.Queue = asyncio.Queue()

        def on_disconnect(_: BleakClient) -> None:
            logger.warning(f"Rangefinder {self.device.address} disconnected")
            queue.put_nowait(None)

        def on_notification(_sender, data: bytearray) -> None:
            distance_mm = parse_range(bytes(data))
            if distance_mm is None:
                logger.debug(f"Short range payload ignored: {bytes(data).hex()}")
                return
            self._sample_count += 1
            queue.put_nowait(RangeUpdate(distance_mm))

        client = BleakClient(self.device, disconnected_callback=on_disconnect)
        subscribed = False

        try:
            await client.connect()
            logger.info(f"Connected to rangefinder {self.device.address}")

            characteristic = client.services.get_characteristic(RANGE_CHAR_UUID)
            if characteristic is None:
                raise SensorProtocolError(f"Range characteristic {RANGE_CHAR_UUID} not found")

            await client.start_notify(characteristic, on_notification)
            subscribed = True
            logger.info("Subscribed to range notifications")

            yield Connected()

            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event

            logger.warning("Notification stream ended")
            yield Disconnected()
        finally:
            await self._release(client, subscribed)

    async def _release(self, client: BleakClient, subscribed: bool) -> None:
        logger.info(f"Releasing rangefinder {self.device.address} after {self._sample_count} samples")

        if subscribed and client.is_connected:
            try:
                await client.stop_notify(RANGE_CHAR_UUID)
            except Exception as e:
                logger.debug(f"stop_notify failed during release: {e}")

        try:
            if client.is_connected:
                await client.disconnect()
        except Exception as e:
            logger.warning(f"Error during rangefinder disconnect: {e}")
