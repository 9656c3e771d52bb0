"""Tests for RecurringTimer."""
import asyncio

import pytest

from fieldgate.common.scheduler import RecurringTimer


async def test_first_tick_after_one_period():
    ticks = []

    async def tick():
        ticks.append(asyncio.get_running_loop().time())

    timer = RecurringTimer(0.05, tick, name="test")
    await timer.start()
    await asyncio.sleep(0.02)
    assert ticks == []

    await asyncio.sleep(0.14)
    timer.stop()

    assert len(ticks) >= 2
    assert timer.execution_count == len(ticks)


async def test_stop_prevents_further_ticks():
    count = 0

    async def tick():
        nonlocal count
        count += 1

    timer = RecurringTimer(0.02, tick)
    await timer.start()
    await asyncio.sleep(0.07)
    timer.stop()
    seen = count
    await asyncio.sleep(0.06)

    assert seen >= 2
    assert count == seen
    assert not timer.is_running


async def test_callback_error_keeps_timer_running():
    count = 0

    async def tick():
        nonlocal count
        count += 1
        raise RuntimeError("tick failed")

    timer = RecurringTimer(0.02, tick)
    await timer.start()
    await asyncio.sleep(0.09)
    timer.stop()

    assert count >= 3


async def test_slow_callback_skips_periods():
    async def tick():
        await asyncio.sleep(0.05)

    timer = RecurringTimer(0.02, tick)
    await timer.start()
    await asyncio.sleep(0.15)
    timer.stop()

    assert timer.skipped_count >= 1
    assert timer.get_stats()["skipped_count"] == timer.skipped_count


def test_rejects_non_positive_interval():
    async def tick():
        pass

    with pytest.raises(ValueError):
        RecurringTimer(0, tick)
