"""Tests for AnimationLoop."""

import asyncio

import pytest

from map_my_repo.visualization.scheduler import AnimationLoop


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        self.now += 0.01
        return self.now


class TestRunUntilIdle:
    def test_ticks_until_inactive(self):
        remaining = [3]

        def tick(dt: float) -> bool:
            remaining[0] -= 1
            return remaining[0] > 0

        loop = AnimationLoop(tick, tick_rate=60)
        assert loop.run_until_idle() == 3
        assert loop.ticks == 3

    def test_respects_max_ticks(self):
        loop = AnimationLoop(lambda dt: True)
        assert loop.run_until_idle(max_ticks=5) == 5

    def test_passes_dt(self):
        seen = []
        loop = AnimationLoop(lambda dt: seen.append(dt) or False, tick_rate=50)
        loop.run_until_idle()
        assert seen == [0.02]

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            AnimationLoop(lambda dt: False, tick_rate=0)


class TestAsyncLoop:
    @pytest.mark.asyncio
    async def test_parks_when_idle_and_wakes(self):
        calls = []

        def tick(dt: float) -> bool:
            calls.append(dt)
            return False

        loop = AnimationLoop(tick, tick_rate=1000, clock=FakeClock())
        loop.start()
        await asyncio.sleep(0.01)
        assert len(calls) == 1
        assert loop.running

        loop.wake()
        await asyncio.sleep(0.01)
        assert len(calls) == 2

        await loop.stop()
        assert not loop.running

    @pytest.mark.asyncio
    async def test_keeps_ticking_while_active(self):
        budget = [5]

        def tick(dt: float) -> bool:
            budget[0] -= 1
            return budget[0] > 0

        loop = AnimationLoop(tick, tick_rate=1000)
        loop.start()
        for _ in range(100):
            if budget[0] <= 0:
                break
            await asyncio.sleep(0.005)
        await loop.stop()

        assert budget[0] == 0
        assert loop.ticks == 5

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        loop = AnimationLoop(lambda dt: False)
        first = loop.start()
        assert loop.start() is first
        await loop.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        await AnimationLoop(lambda dt: False).stop()
