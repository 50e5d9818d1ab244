"""
Unit tests for rate-limit retry with backoff.
"""

import pytest

from src.safeguard.utils.errors import RateLimited, StoreError
from src.safeguard.utils.resilience import RATE_LIMIT_DELAYS, retry_with_backoff


class FakeSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def flaky(failures, error=RateLimited):
    calls = {"count": 0}

    async def func():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise error("throttled")
        return "ok"

    return func, calls


async def test_returns_immediately_on_success():
    sleep = FakeSleep()
    func, calls = flaky(0)

    assert await retry_with_backoff(func, sleep=sleep) == "ok"
    assert calls["count"] == 1
    assert sleep.delays == []


async def test_retries_rate_limited_with_doubling_delays():
    sleep = FakeSleep()
    func, calls = flaky(3)

    assert await retry_with_backoff(func, sleep=sleep) == "ok"
    assert calls["count"] == 4
    assert sleep.delays == [1.0, 2.0, 4.0]
    assert tuple(sleep.delays) == RATE_LIMIT_DELAYS


async def test_gives_up_after_three_retries():
    sleep = FakeSleep()
    func, calls = flaky(10)

    with pytest.raises(RateLimited):
        await retry_with_backoff(func, sleep=sleep)
    assert calls["count"] == 4
    assert sleep.delays == [1.0, 2.0, 4.0]


async def test_other_errors_are_not_retried():
    sleep = FakeSleep()
    func, calls = flaky(1, error=StoreError)

    with pytest.raises(StoreError):
        await retry_with_backoff(func, sleep=sleep)
    assert calls["count"] == 1
    assert sleep.delays == []
