"""Animation loop that drives ``tick(dt)`` from asyncio.

The loop ticks at a fixed rate while something is moving and parks on an
event once the callback reports that nothing is active. Any state change
that needs frames again calls ``wake()``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

from loguru import logger


class AnimationLoop:
    """Fixed-rate ticker with idle parking.

    Args:
        tick: Called with the elapsed seconds; returns True while active
        tick_rate: Ticks per second while active
        clock: Monotonic clock (injectable for tests)
    """

    def __init__(
        self,
        tick: Callable[[float], bool],
        tick_rate: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if tick_rate <= 0:
            raise ValueError("tick_rate must be positive")
        self._tick = tick
        self.interval = 1.0 / tick_rate
        self._clock = clock
        self._wake = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def wake(self) -> None:
        """Resume ticking if the loop is parked."""
        self._wake.set()

    async def run(self) -> None:
        """Tick until cancelled."""
        last = self._clock()
        while True:
            self._wake.clear()
            now = self._clock()
            active = self._tick(now - last)
            last = now
            self.ticks += 1

            if active:
                await asyncio.sleep(self.interval)
            else:
                await self._wake.wait()
                # Do not count the idle time as one huge frame
                last = self._clock()

    def start(self) -> asyncio.Task[None]:
        if self.running:
            return self._task
        self._task = asyncio.create_task(self.run())
        logger.debug(f"Animation loop started at {1 / self.interval:.0f} Hz")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug(f"Animation loop stopped after {self.ticks} ticks")

    def run_until_idle(self, dt: float | None = None, max_ticks: int = 10_000) -> int:
        """Tick synchronously until the callback goes idle.

        Useful for headless rendering and tests.

        Returns:
            Number of ticks performed
        """
        dt = self.interval if dt is None else dt
        count = 0
        while count < max_ticks:
            count += 1
            if not self._tick(dt):
                break
        self.ticks += count
        return count
