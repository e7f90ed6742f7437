from __future__ import annotations

import asyncio

import pytest

from common.rate_limiter import AsyncSlidingWindowRateLimiter, RateLimitError


class FakeClock:
    def __init__(self, t: float = 0.0) -> None:
        self.t = t

    def __call__(self) -> float:  # acts like time.monotonic
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def test_non_blocking_exceeds_limit():
    clock = FakeClock()
    rl = AsyncSlidingWindowRateLimiter(max_calls=2, per_seconds=60.0, clock=clock)

    async def scenario():
        await rl.acquire(blocking=True)
        await rl.acquire(blocking=True)
        with pytest.raises(RateLimitError):
            await rl.acquire(blocking=False)

        clock.advance(60.0)
        await rl.acquire(blocking=False)  # now allowed

    asyncio.run(scenario())


def test_blocking_allows_after_window_expires():
    clock = FakeClock()
    rl = AsyncSlidingWindowRateLimiter(max_calls=1, per_seconds=10.0, clock=clock)

    async def scenario():
        await rl.acquire(blocking=True)
        # Advance the fake clock instead of sleeping through the window.
        clock.advance(10.0)
        await asyncio.wait_for(rl.acquire(blocking=True), timeout=1.0)

    asyncio.run(scenario())


def test_blocking_waits_then_proceeds():
    clock = FakeClock()
    rl = AsyncSlidingWindowRateLimiter(max_calls=1, per_seconds=5.0, clock=clock)

    async def scenario():
        await rl.acquire()
        waiter = asyncio.create_task(rl.acquire())
        await asyncio.sleep(0)
        assert not waiter.done()
        clock.advance(5.0)
        await asyncio.wait_for(waiter, timeout=2.0)

    asyncio.run(scenario())


@pytest.mark.parametrize("max_calls,per_seconds", [(0, 1.0), (1, 0.0)])
def test_rejects_invalid_config(max_calls, per_seconds):
    with pytest.raises(ValueError):
        AsyncSlidingWindowRateLimiter(max_calls=max_calls, per_seconds=per_seconds)


def test_remaining_counts_free_slots():
    clock = FakeClock()
    rl = AsyncSlidingWindowRateLimiter(max_calls=3, per_seconds=1.0, clock=clock)

    async def scenario():
        assert rl.remaining() == 3
        await rl.acquire()
        await rl.acquire()
        assert rl.remaining() == 1
        clock.advance(1.0)
        assert rl.remaining() == 3

    asyncio.run(scenario())


def test_queued_waiters_are_served_in_arrival_order():
    clock = FakeClock()
    rl = AsyncSlidingWindowRateLimiter(max_calls=1, per_seconds=1.0, clock=clock, poll_interval=0.01)
    order = []

    async def request(name: str) -> None:
        await rl.acquire()
        order.append(name)

    async def scenario():
        await rl.acquire()
        first = asyncio.create_task(request("count"))
        await asyncio.sleep(0)
        second = asyncio.create_task(request("growth"))
        await asyncio.sleep(0)

        # A non-blocking caller does not jump the queue.
        with pytest.raises(RateLimitError):
            await rl.acquire(blocking=False)

        clock.advance(1.0)
        await asyncio.wait_for(first, timeout=1.0)
        clock.advance(1.0)
        await asyncio.wait_for(second, timeout=1.0)

    asyncio.run(scenario())
    assert order == ["count", "growth"]
