"""가상 시계와 주기 작업."""

import pytest

from trading_desk.trading.clock import PeriodicTask, VirtualClock


@pytest.mark.asyncio
async def test_virtual_clock_wakes_sleepers_in_order():
    clock = VirtualClock()
    ticks: list[float] = []

    async def step():
        ticks.append(clock.elapsed)

    task = PeriodicTask("ticker", 3.0, step, clock)
    task.start()
    await clock.advance(10.0)

    assert ticks == [3.0, 6.0, 9.0]
    assert task.runs == 3
    assert clock.elapsed == 10.0
    await task.stop()
    assert not task.running


@pytest.mark.asyncio
async def test_inactive_task_skips_ticks():
    clock = VirtualClock()
    active = {"on": False}
    calls = []

    async def step():
        calls.append(clock.elapsed)

    task = PeriodicTask("sweep", 5.0, step, clock, is_active=lambda: active["on"])
    task.start()
    await clock.advance(10.0)
    active["on"] = True
    await clock.advance(10.0)

    assert calls == [15.0, 20.0]
    await task.stop()


@pytest.mark.asyncio
async def test_step_error_does_not_stop_task():
    clock = VirtualClock()

    async def step():
        raise RuntimeError("transient")

    task = PeriodicTask("flaky", 1.0, step, clock)
    task.start()
    await clock.advance(3.0)

    assert task.errors == 3
    assert task.running
    await task.stop()
