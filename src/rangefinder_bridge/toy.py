"""Intiface / Buttplug toy controller used as the session's actuator sink."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from buttplug import Client, ProtocolSpec, WebsocketConnector

from .config import ButtplugConfig
from .errors import ActuatorUnavailableError, CommandError

logger = logging.getLogger(__name__)

CLIENT_NAME = "Rangefinder Bridge"

# Changes smaller than this are not sent to the device
INTENSITY_EPSILON = 0.01


class ToyController:
    """Wrapper around a Buttplug client that drives one target device."""

    def __init__(self, client: Any, scan_secs: float = 5.0) -> None:
        self._client = client
        self.scan_secs = scan_secs
        self.target_device: Optional[Any] = None
        self._actuators: List[Any] = []
        self._last_intensity = 0.0

    @classmethod
    async def connect(cls, server_address: str, scan_secs: float = 5.0) -> "ToyController":
        """Connect to Intiface Engine over its websocket endpoint."""
        client = Client(CLIENT_NAME, ProtocolSpec.v3)
        connector = WebsocketConnector(server_address, logger=client.logger)

        try:
            await client.connect(connector)
        except Exception as e:
            raise ActuatorUnavailableError(
                f"Cannot reach Intiface Engine at {server_address}: {e}"
            ) from e

        logger.info(f"Connected to Intiface Engine at {server_address}")
        return cls(client, scan_secs=scan_secs)

    @property
    def last_intensity(self) -> float:
        return self._last_intensity

    async def find_device(
        self,
        device_index: Optional[int] = None,
        actuator_types: Sequence[str] = ("Vibrate",),
    ) -> Any:
        """Scan for devices and select the target."""
        logger.info("Scanning for Buttplug devices...")
        await self._client.start_scanning()
        await asyncio.sleep(self.scan_secs)
        await self._client.stop_scanning()

        devices = list(self._client.devices.values())
        if not devices:
            raise ActuatorUnavailableError(
                "No Buttplug devices found. Make sure your toy is on and paired in Intiface."
            )

        wanted = {t.lower() for t in actuator_types}

        if device_index is not None:
            device = next((d for d in devices if d.index == device_index), None)
            if device is None:
                raise ActuatorUnavailableError(f"Device index {device_index} not found")
        else:
            device = next((d for d in devices if _matching_actuators(d, wanted)), None)
            if device is None:
                device = devices[0]

        actuators = _matching_actuators(device, wanted)
        if not actuators:
            actuators = list(getattr(device, "actuators", ()))
        if not actuators:
            raise ActuatorUnavailableError(f"Device '{device.name}' has no scalar actuators")

        logger.info(f"Using device: {device.name} (index {device.index}, {len(actuators)} actuator(s))")
        self.target_device = device
        self._actuators = actuators
        return device

    async def set_intensity(self, intensity: float) -> None:
        """Set output intensity (0.0 - 1.0), skipping negligible changes."""
        if self.target_device is None:
            raise CommandError("No target device")

        if abs(intensity - self._last_intensity) < INTENSITY_EPSILON:
            return

        clamped = min(max(intensity, 0.0), 1.0)
        logger.debug(f"Setting intensity: {clamped:.3f}")

        try:
            for actuator in self._actuators:
                await actuator.command(clamped)
        except Exception as e:
            raise CommandError(f"Intensity command failed: {e}") from e

        self._last_intensity = clamped

    async def stop(self) -> None:
        """Stop all output on the target device."""
        if self.target_device is None:
            return

        try:
            await self.target_device.stop()
        except Exception as e:
            raise CommandError(f"Stop command failed: {e}") from e

        self._last_intensity = 0.0

    def is_connected(self) -> bool:
        return bool(self._client.connected)

    async def disconnect(self) -> None:
        """Disconnect from Intiface. Failures are logged, never raised."""
        try:
            await self._client.disconnect()
        except Exception as e:
            logger.warning(f"Error during Intiface disconnect: {e}")
            return
        logger.info("Disconnected from Intiface Engine")


def _matching_actuators(device: Any, wanted: set) -> List[Any]:
    return [
        a for a in getattr(device, "actuators", ())
        if str(getattr(a, "type", "")).lower() in wanted
    ]


async def connect_toy(config: ButtplugConfig) -> ToyController:
    """Connect to the toy server and select the configured device."""
    toy = await ToyController.connect(config.server_address, scan_secs=config.scan_secs)
    try:
        await toy.find_device(config.device_index, config.actuator_types)
    except BaseException:
        await toy.disconnect()
        raise
    return toy
