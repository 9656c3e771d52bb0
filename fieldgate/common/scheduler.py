"""
Recurring Timer for Poll Entries

Provides RecurringTimer, which fires an async callback every period
on the running event loop, relative to the moment it was started.

Compared with a bare `while True: await asyncio.sleep(interval)` loop:
- Next tick is scheduled from the original schedule, not from when
  the callback finished
- Ticks never overlap; missed periods are skipped, not queued
- stop() cancels the backing task, so no callback runs afterwards

Usage:
    async def tick():
        ...

    timer = RecurringTimer(1.0, tick, name="10.0.0.5/1 readHoldingRegisters_0")
    await timer.start()

    # Later:
    timer.stop()
"""

import asyncio
import time
from typing import Callable, Awaitable

from .logging_setup import get_service_logger

logger = get_service_logger("scheduler")


class RecurringTimer:
    """
    Interval timer backed by a single asyncio task.

    The first tick fires one period after start(). A callback that
    raises is logged and the timer keeps running.

    Attributes:
        interval: Seconds between ticks
        callback: Async function to call each tick
        execution_count: Completed callback runs
        skipped_count: Periods skipped because a callback overran
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
        name: str = "unnamed",
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.interval = interval_seconds
        self.callback = callback
        self.name = name

        self._next_run: float = 0
        self._running = False
        self._task: asyncio.Task | None = None

        self._skipped_count: int = 0
        self._execution_count: int = 0
        self._last_execution_time: float = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the timer in a background task."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run(), name=f"timer:{self.name}")

    def stop(self) -> None:
        """Stop the timer; the callback will not be invoked again."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        self._next_run = time.monotonic() + self.interval

        while self._running:
            sleep_duration = self._next_run - time.monotonic()
            if sleep_duration > 0:
                try:
                    await asyncio.sleep(sleep_duration)
                except asyncio.CancelledError:
                    break

            if not self._running:
                break

            start = time.monotonic()
            try:
                await self.callback()
                self._execution_count += 1
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Timer callback '{self.name}' error: {e}")
            self._last_execution_time = time.monotonic() - start

            # Skip missed periods (don't queue up missed executions)
            now = time.monotonic()
            skipped = 0
            while self._next_run <= now:
                self._next_run += self.interval
                skipped += 1

            # First skip is expected (the one we just executed)
            if skipped > 1:
                self._skipped_count += skipped - 1
                logger.warning(
                    f"Timer '{self.name}' skipped {skipped - 1} periods "
                    f"(callback took {self._last_execution_time:.3f}s)"
                )

    @property
    def skipped_count(self) -> int:
        return self._skipped_count

    @property
    def execution_count(self) -> int:
        return self._execution_count

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "interval_s": self.interval,
            "execution_count": self._execution_count,
            "skipped_count": self._skipped_count,
            "last_execution_s": round(self._last_execution_time, 3),
        }
