"""Unit tests for the auth rate limiter."""

from __future__ import annotations

from plantwatch.server.ratelimit import RateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_limit() -> None:
    limiter = RateLimiter(limit=3, window=60, clock=FakeClock())

    assert [limiter.hit("10.0.0.1") for _ in range(4)] == [True, True, True, False]


def test_clients_are_counted_separately() -> None:
    limiter = RateLimiter(limit=1, window=60, clock=FakeClock())

    assert limiter.hit("10.0.0.1") is True
    assert limiter.hit("10.0.0.2") is True
    assert limiter.hit("10.0.0.1") is False


def test_window_resets() -> None:
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window=60, clock=clock)
    limiter.hit("10.0.0.1")
    assert limiter.hit("10.0.0.1") is False

    clock.now += 60

    assert limiter.hit("10.0.0.1") is True


def test_retry_after() -> None:
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window=60, clock=clock)

    assert limiter.retry_after("10.0.0.1") == 0
    limiter.hit("10.0.0.1")
    clock.now += 20.5

    assert limiter.retry_after("10.0.0.1") == 40


def test_reset() -> None:
    limiter = RateLimiter(limit=1, window=60, clock=FakeClock())
    limiter.hit("10.0.0.1")

    limiter.reset()

    assert limiter.hit("10.0.0.1") is True
