import asyncio

import pytest

from src.serviceability.services.resolver.rate_limit import RateLimiter


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_limit_refuses_calls_past_the_window_budget():
    limiter = RateLimiter(window_seconds=60, clock=FakeClock())

    results = [await limiter.acquire("postalpincode.in", 3) for _ in range(5)]

    assert results == [True, True, True, False, False]
    assert limiter.remaining("postalpincode.in", 3) == 0


@pytest.mark.asyncio
async def test_window_resets_after_it_elapses():
    clock = FakeClock()
    limiter = RateLimiter(window_seconds=60, clock=clock)
    assert await limiter.acquire("data.gov.in", 1)
    assert not await limiter.acquire("data.gov.in", 1)

    clock.now += 59.9
    assert not await limiter.acquire("data.gov.in", 1)

    clock.now += 0.1
    assert await limiter.acquire("data.gov.in", 1)


@pytest.mark.asyncio
async def test_counters_are_per_source():
    limiter = RateLimiter(clock=FakeClock())

    assert await limiter.acquire("a", 1)
    assert not await limiter.acquire("a", 1)
    assert await limiter.acquire("b", 1)


@pytest.mark.asyncio
async def test_zero_limit_never_allows():
    limiter = RateLimiter(clock=FakeClock())

    assert not await limiter.acquire("a", 0)


@pytest.mark.asyncio
async def test_concurrent_acquires_never_exceed_limit():
    limiter = RateLimiter(clock=FakeClock())

    results = await asyncio.gather(*(limiter.acquire("a", 10) for _ in range(25)))

    assert sum(results) == 10


@pytest.mark.asyncio
async def test_clear_resets_counters():
    limiter = RateLimiter(clock=FakeClock())
    await limiter.acquire("a", 1)

    limiter.clear()

    assert limiter.remaining("a", 1) == 1
    assert await limiter.acquire("a", 1)
