#!/usr/bin/env python3
"""test cancellation tokens, polled waits and the poll scheduler"""

import asyncio
import time

import pytest

from iscp_receiver import CancellationToken, OperationCancelledError, PollScheduler
from iscp_receiver.client import polled_wait


@pytest.mark.asyncio
async def test_token_sleep_completes():
    """an uncancelled sleep runs to completion"""
    token = CancellationToken()
    assert await token.sleep(0.01)


@pytest.mark.asyncio
async def test_token_cancel_wakes_sleeper():
    """cancel cuts a sleep short"""
    token = CancellationToken()
    start = time.monotonic()
    sleeper = asyncio.create_task(token.sleep(5.0))
    await asyncio.sleep(0.05)
    token.cancel()
    assert not await sleeper
    assert time.monotonic() - start < 1.0
    token.reset()
    assert not token.is_cancelled


@pytest.mark.asyncio
async def test_polled_wait_result():
    """the awaited value is returned"""
    async def answer():
        await asyncio.sleep(0.01)
        return 42
    assert await polled_wait(answer(), 1.0, 0.01) == 42


@pytest.mark.asyncio
async def test_polled_wait_timeout():
    """a slow awaitable times out"""
    with pytest.raises(asyncio.TimeoutError):
        await polled_wait(asyncio.sleep(5.0), 0.05, 0.01)


@pytest.mark.asyncio
async def test_polled_wait_cancelled():
    """setting the token ends the wait within an increment"""
    token = CancellationToken()
    asyncio.get_running_loop().call_later(0.05, token.cancel)
    start = time.monotonic()
    with pytest.raises(OperationCancelledError):
        await polled_wait(asyncio.sleep(5.0), 5.0, 0.02, token)
    assert time.monotonic() - start < 1.0


@pytest.mark.asyncio
async def test_polled_wait_already_cancelled():
    """an already-set token never starts the wait"""
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OperationCancelledError):
        await polled_wait(asyncio.sleep(5.0), 5.0, 0.02, token)


@pytest.mark.asyncio
async def test_scheduler_ticks_and_initial_refresh():
    """periodic ticks plus one initial refresh"""
    calls = []

    async def refresh():
        calls.append(time.monotonic())

    scheduler = PollScheduler(refresh, lambda: 50, initial_delay=0.01)
    scheduler.start()
    await asyncio.sleep(0.3)
    await scheduler.stop()
    count = len(calls)
    assert count >= 4
    await asyncio.sleep(0.1)
    assert len(calls) == count
    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_scheduler_reevaluate_interval():
    """a changed interval takes effect without waiting out the old one"""
    calls = []
    interval = {"ms": 60000}

    async def refresh():
        calls.append(1)

    scheduler = PollScheduler(refresh, lambda: interval["ms"], initial_delay=None)
    scheduler.start()
    await asyncio.sleep(0.05)
    assert calls == []
    interval["ms"] = 20
    scheduler.reevaluate()
    await asyncio.sleep(0.2)
    await scheduler.stop()
    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_scheduler_survives_refresh_errors():
    """an exception in one refresh does not stop the timer"""
    calls = []

    async def refresh():
        calls.append(1)
        raise RuntimeError("boom")

    scheduler = PollScheduler(refresh, lambda: 20, initial_delay=None)
    scheduler.start()
    await asyncio.sleep(0.2)
    await scheduler.stop()
    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_scheduler_stop_before_initial_refresh():
    """stopping cancels a pending initial refresh"""
    calls = []

    async def refresh():
        calls.append(1)

    scheduler = PollScheduler(refresh, lambda: 60000, initial_delay=0.2)
    scheduler.start()
    await scheduler.stop()
    await asyncio.sleep(0.3)
    assert calls == []
    assert scheduler.token.is_cancelled
