# backend/clients/polling.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PollingTask:
    """Fixed-interval timer that runs at most one poll at a time.

    When a tick fires while the previous poll is still running, the tick is
    skipped instead of starting an overlapping poll.
    """

    def __init__(self, poll: Callable[[], Awaitable[None]], interval: float):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._poll = poll
        self.interval = interval
        self.ticks = 0
        self.skipped_ticks = 0
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    # Must be called from inside a running event loop
    def start(self) -> "PollingTask":
        if self._cancelled:
            raise RuntimeError("cannot restart a cancelled polling task")
        if self._timer is None:
            self._timer = asyncio.get_running_loop().create_task(self._run())
        return self

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._tick()

    def _tick(self) -> None:
        self.ticks += 1
        if self._in_flight is not None and not self._in_flight.done():
            self.skipped_ticks += 1
            logger.debug("Previous poll still in flight, skipping tick")
            return
        self._in_flight = asyncio.get_running_loop().create_task(self._poll_once())

    async def _poll_once(self) -> None:
        try:
            await self._poll()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Polling tick failed")

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for task in (self._timer, self._in_flight):
            if task is not None and not task.done():
                task.cancel()
