"""Tick sources for the controller run-loop.

A controller asks its ticker for the next tick boundary, does one tick of work,
and only then asks again. Ticks therefore never overlap, and a slow handler
delays the following tick rather than queueing extra ones.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Ticker(Protocol):
    async def wait(self) -> None: ...

    def close(self) -> None: ...


class AsyncioTicker:
    """Real-time ticker that sleeps ``interval_ms`` on the running loop."""

    def __init__(self, interval_ms: float) -> None:
        if interval_ms < 0:
            raise ValueError(f"Tick interval must be >= 0, got {interval_ms}")
        self.interval_ms = interval_ms
        self.closed = False

    async def wait(self) -> None:
        if self.closed:
            raise RuntimeError("Ticker is closed")
        await asyncio.sleep(self.interval_ms / 1000)

    def close(self) -> None:
        self.closed = True


class ManualTicker:
    """Ticker advanced explicitly, for deterministic tests.

    ``await ticker.advance()`` releases one tick and returns once the controller
    has finished that tick's work: it is either parked waiting for the next
    tick again, or it has closed the ticker.
    """

    def __init__(self) -> None:
        self._ticks = asyncio.Semaphore(0)
        self._parked = asyncio.Event()
        self.fired = 0
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    async def wait(self) -> None:
        if self.closed:
            raise RuntimeError("Ticker is closed")
        self._parked.set()
        await self._ticks.acquire()
        self.fired += 1

    def close(self) -> None:
        self.close_count += 1
        if self.close_count > 1:
            logger.warning("Ticker closed more than once", extra={"close_count": self.close_count})
        self._parked.set()

    async def advance(self, ticks: int = 1) -> None:
        for _ in range(ticks):
            await self._parked.wait()
            if self.closed:
                return
            self._parked.clear()
            self._ticks.release()
            await self._parked.wait()

    async def run_until_closed(self, limit: int = 1000) -> int:
        """Advance until the controller releases the ticker. Returns ticks fired."""
        for _ in range(limit):
            if self.closed:
                break
            await self.advance()
        return self.fired
