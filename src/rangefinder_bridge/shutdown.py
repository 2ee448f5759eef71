"""Process-wide shutdown flag and signal handler installation."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

logger = logging.getLogger(__name__)


class ShutdownFlag:
    """One-shot flag polled by the supervisor and session loops."""

    def __init__(self) -> None:
        self._set = False
        self._event: Optional[asyncio.Event] = None

    def is_set(self) -> bool:
        return self._set

    def set(self) -> bool:
        """Request shutdown. Returns True only for the first request."""
        if self._set:
            return False
        self._set = True
        if self._event is not None:
            self._event.set()
        return True

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait until shutdown is requested or `timeout` elapses. Returns the flag."""
        if self._set:
            return True
        if self._event is None:
            self._event = asyncio.Event()
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            pass
        return self._set


def install_signal_handlers(flag: ShutdownFlag, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Route SIGINT/SIGTERM to `flag`."""
    loop = loop or asyncio.get_running_loop()

    def _request_shutdown(signame: str) -> None:
        if flag.set():
            logger.info(f"Shutdown requested ({signame})...")

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_shutdown, sig.name)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(
                sig,
                lambda signum, frame: loop.call_soon_threadsafe(
                    _request_shutdown, signal.Signals(signum).name
                ),
            )
