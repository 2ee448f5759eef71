"""Supervisor that keeps a rangefinder-to-toy session running until shutdown."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Union

from .config import AppConfig, load_or_default
from .logs import NdjsonLogger, NullLogger
from .session import EndReason, Session, SessionResult, SinkFactory, SourceFactory
from .shutdown import ShutdownFlag, install_signal_handlers

logger = logging.getLogger(__name__)


class Bridge:
    """Repeatedly runs sessions with a fixed delay between attempts."""

    def __init__(
        self,
        config: AppConfig,
        shutdown: Optional[ShutdownFlag] = None,
        source_factory: Optional[SourceFactory] = None,
        sink_factory: Optional[SinkFactory] = None,
        status_log: Optional[Union[NdjsonLogger, NullLogger]] = None,
    ) -> None:
        self.config = config
        self.shutdown = shutdown or ShutdownFlag()
        self._source_factory = source_factory or self._connect_rangefinder
        self._sink_factory = sink_factory or self._connect_toy

        if status_log is None:
            if config.logging.enabled:
                status_log = NdjsonLogger(config.logging.dir, config.logging.file_prefix)
            else:
                status_log = NullLogger()
        self.status_log = status_log

        self.results: List[SessionResult] = []
        self.current_session: Optional[Session] = None

    async def run(self) -> None:
        """Run sessions until shutdown is requested."""
        mapping = self.config.mapping
        self.status_log.status("Bridge starting", {
            "device_name": self.config.ble.device_name,
            "server_address": self.config.buttplug.server_address,
            "mapping": {
                "invert": mapping.invert,
                "min_range_mm": mapping.min_range_mm,
                "max_range_mm": mapping.max_range_mm,
                "min_intensity": mapping.min_intensity,
                "max_intensity": mapping.max_intensity,
                "deadzone_mm": mapping.deadzone_mm,
                "smoothing": mapping.smoothing,
            },
        })

        attempt = 0
        while not self.shutdown.is_set():
            attempt += 1
            self.status_log.status("Session starting", {"attempt": attempt})

            self.current_session = Session(
                self._source_factory,
                self._sink_factory,
                self.config.mapping,
                self.shutdown,
            )
            result = await self.current_session.run()
            self.results.append(result)
            self._report(attempt, result)

            if self.shutdown.is_set():
                break

            delay = self.config.ble.reconnect_delay_secs
            logger.info(f"Reconnecting in {delay:g}s...")
            if await self.shutdown.wait(delay):
                break

        self.current_session = None
        self.status_log.status("Bridge stopped", {"sessions": len(self.results)})
        logger.info("Goodbye")

    def close(self) -> None:
        self.status_log.close()

    def _report(self, attempt: int, result: SessionResult) -> None:
        data = dict(result.to_dict(), attempt=attempt)
        if result.reason is EndReason.ESTABLISH_FAILED:
            logger.error(f"Session error: {result.error}")
            self.status_log.error("Session failed", data)
        elif result.failed:
            logger.warning(f"Session ended ({result.reason.value}): {result.error}")
            self.status_log.error("Session ended with error", data)
        else:
            logger.info(f"Session ended ({result.reason.value})")
            self.status_log.status("Session ended", data)

    async def _connect_rangefinder(self):
        from .ble.rangefinder import find_rangefinder

        return await find_rangefinder(
            self.config.ble.device_name,
            self.config.ble.scan_timeout_secs,
        )

    async def _connect_toy(self):
        from .toy import connect_toy

        return await connect_toy(self.config.buttplug)


def describe_config(config: AppConfig) -> None:
    """Log a short summary of the active configuration."""
    m = config.mapping
    logger.info("Configuration loaded:")
    logger.info(f"  BLE device: {config.ble.device_name}")
    logger.info(
        f"  Mapping: range [{m.min_range_mm}-{m.max_range_mm}mm] -> "
        f"intensity [{m.min_intensity}-{m.max_intensity}], invert={m.invert}, "
        f"deadzone={m.deadzone_mm}mm, smoothing={m.smoothing}"
    )
    logger.info(f"  Buttplug server: {config.buttplug.server_address}")


async def run_bridge(config_path: str) -> None:
    """Run the bridge with the specified configuration."""
    config = load_or_default(config_path)
    describe_config(config)

    shutdown = ShutdownFlag()
    install_signal_handlers(shutdown)

    bridge = Bridge(config, shutdown)
    try:
        await bridge.run()
    finally:
        bridge.close()
