"""
Spark Agent - Interval Timer Tests
"""

import asyncio

import pytest

from spark_agent.core.timer import IntervalTimer


class TestIntervalTimer:
    """Test the repeating timer."""

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            IntervalTimer(0, lambda: None)

    @pytest.mark.asyncio
    async def test_ticks_repeatedly(self, wait_until):
        """Test the callback fires on every interval."""
        calls = []

        async def tick():
            calls.append(1)

        timer = IntervalTimer(0.01, tick)
        timer.start()

        assert await wait_until(lambda: len(calls) >= 3)

        timer.cancel()
        await timer.wait_closed()
        assert timer.is_active is False

    @pytest.mark.asyncio
    async def test_no_ticks_after_cancel(self):
        """Test cancel stops further callbacks."""
        calls = []

        async def tick():
            calls.append(1)

        timer = IntervalTimer(0.01, tick)
        timer.start()
        await asyncio.sleep(0.035)
        timer.cancel()
        await timer.wait_closed()
        seen = len(calls)

        await asyncio.sleep(0.05)

        assert len(calls) == seen

    @pytest.mark.asyncio
    async def test_in_flight_tick_completes(self, wait_until):
        """Test a tick running during cancel is not interrupted."""
        started = asyncio.Event()
        finished = []

        async def slow_tick():
            started.set()
            await asyncio.sleep(0.05)
            finished.append(1)

        timer = IntervalTimer(0.01, slow_tick)
        timer.start()
        await asyncio.wait_for(started.wait(), timeout=1)

        assert timer.in_tick is True
        timer.cancel()
        await timer.wait_closed()

        assert finished == [1]
        assert timer.ticks == 1

    @pytest.mark.asyncio
    async def test_ticks_do_not_overlap(self, wait_until):
        active = []
        overlaps = []

        async def tick():
            if active:
                overlaps.append(1)
            active.append(1)
            await asyncio.sleep(0.02)
            active.pop()

        timer = IntervalTimer(0.005, tick)
        timer.start()
        assert await wait_until(lambda: timer.ticks >= 3)
        timer.cancel()
        await timer.wait_closed()

        assert overlaps == []

    @pytest.mark.asyncio
    async def test_callback_error_keeps_ticking(self, wait_until):
        calls = []

        async def failing():
            calls.append(1)
            raise RuntimeError("tick failed")

        timer = IntervalTimer(0.01, failing)
        timer.start()

        assert await wait_until(lambda: len(calls) >= 2)

        timer.cancel()
        await timer.wait_closed()

    @pytest.mark.asyncio
    async def test_start_twice(self):
        async def tick():
            pass

        timer = IntervalTimer(0.01, tick)
        timer.start()
        with pytest.raises(RuntimeError):
            timer.start()
        timer.cancel()
        await timer.wait_closed()
