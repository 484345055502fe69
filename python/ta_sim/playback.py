"""Playback controller: steps a ledger on a timer.

Runs on the asyncio event loop (single-threaded, cooperative). The driver
task is owned by the controller instance; at most one exists at a time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .trader import PortfolioLedger

logger = logging.getLogger(__name__)


def _check_speed(ms: int) -> int:
    if int(ms) <= 0:
        raise ValueError("speed_ms must be positive")
    return int(ms)


class PlaybackController:
    """Calls ``ledger.step()`` every ``speed_ms`` milliseconds until the last bar.

    ``on_tick`` (optional) is called with the ledger after every executed step.
    """

    def __init__(
        self,
        ledger: PortfolioLedger,
        speed_ms: int = 500,
        on_tick: Optional[Callable[[PortfolioLedger], None]] = None,
    ):
        self.ledger = ledger
        self.on_tick = on_tick
        self._speed_ms = _check_speed(speed_ms)
        self._task: Optional[asyncio.Task] = None

    @property
    def speed_ms(self) -> int:
        return self._speed_ms

    @property
    def is_playing(self) -> bool:
        return self._task is not None and not self._task.done()

    def play(self) -> None:
        """Start the driver. No-op if it is already running.

        Must be called from within a running event loop.
        """
        if self.is_playing:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())
        logger.debug("Playback started (speed_ms=%d, index=%d)", self._speed_ms, self.ledger.current_index)

    def pause(self) -> None:
        """Cancel the driver if there is one. Idempotent."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Playback paused at index=%d", self.ledger.current_index)

    def set_speed_ms(self, ms: int) -> None:
        """Change the tick interval; a running driver restarts with a fresh interval."""
        ms = _check_speed(ms)
        was_playing = self.is_playing
        if was_playing:
            self.pause()
        self._speed_ms = ms
        if was_playing:
            self.play()

    async def join(self) -> None:
        """Wait until the current driver (if any) has finished or been cancelled."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def aclose(self) -> None:
        task = self._task
        self.pause()
        if task is not None:
            await asyncio.wait({task})

    async def __aenter__(self) -> "PlaybackController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _run(self) -> None:
        interval = self._speed_ms / 1000.0
        try:
            while True:
                await asyncio.sleep(interval)
                if self.ledger.is_at_end:
                    break
                self.ledger.step()
                if self.on_tick is not None:
                    self.on_tick(self.ledger)
                if self.ledger.is_at_end:
                    logger.debug("Playback reached the last bar (index=%d)", self.ledger.current_index)
                    break
        finally:
            if self._task is asyncio.current_task():
                self._task = None
