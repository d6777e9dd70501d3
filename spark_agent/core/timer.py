"""
Spark Agent - Interval Timer

Repeating asyncio task that awaits a callback every ``interval`` seconds.
Ticks never overlap: a slow callback delays the next tick.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class IntervalTimer:
    """Cancellable fixed-interval ticker."""

    def __init__(self, interval: float, callback: Callable[[], Awaitable[None]], name: str = "interval-timer"):
        if interval <= 0:
            raise ValueError("interval must be greater than 0")

        self._interval = interval
        self._callback = callback
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False
        self._in_tick = False
        self._ticks = 0

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done() and not self._cancelled

    @property
    def in_tick(self) -> bool:
        return self._in_tick

    @property
    def ticks(self) -> int:
        return self._ticks

    def start(self) -> None:
        """Arm the timer. The first tick fires one interval from now."""
        if self._task is not None:
            raise RuntimeError("Timer already started")

        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)

    def cancel(self) -> None:
        """Stop ticking.

        Once this returns no further callback will begin. A callback that is
        already running is left to finish.
        """
        self._cancelled = True
        if self._task is not None and not self._in_tick:
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait for the timer task to finish after :meth:`cancel`."""
        task = self._task
        if task is None or task is asyncio.current_task():
            return

        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._interval

        while not self._cancelled:
            await asyncio.sleep(max(0, next_tick - loop.time()))
            if self._cancelled:
                break

            self._in_tick = True
            try:
                await self._callback()
            except Exception as e:
                logger.exception("Timer callback error", timer=self._name, error=str(e))
            finally:
                self._in_tick = False
                self._ticks += 1

            # A late tick runs once as soon as possible; missed ticks are not replayed
            next_tick = max(next_tick + self._interval, loop.time())
