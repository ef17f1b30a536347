"""Tests for the sliding-window rate limiter."""

from __future__ import annotations

import pytest

from mdconvert.errors import RateLimitExceeded
from mdconvert.ratelimit import RateLimiter


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestAdmission:
    def test_window_slides(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=2, window_ms=1000, clock=clock)
        assert limiter.can_make_request() is True
        clock.advance(10)
        assert limiter.can_make_request() is True
        clock.advance(10)
        assert limiter.can_make_request() is False
        clock.now = 1001
        assert limiter.can_make_request() is True

    def test_refused_request_is_not_recorded(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=1, window_ms=1000, clock=clock)
        assert limiter.can_make_request()
        for _ in range(5):
            clock.advance(100)
            assert not limiter.can_make_request()
        # only the first request counts, so it expires at t=1000
        clock.now = 1000
        assert limiter.can_make_request()

    def test_entry_expires_exactly_at_window(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=1, window_ms=500, clock=clock)
        limiter.can_make_request()
        clock.now = 499
        assert not limiter.can_make_request()
        clock.now = 500
        assert limiter.can_make_request()

    def test_zero_capacity_refuses_everything(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=0, window_ms=1000, clock=clock)
        assert not limiter.can_make_request()
        assert limiter.get_remaining_requests() == 0

    def test_never_exceeds_capacity_in_window(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=3, window_ms=1000, clock=clock)
        admitted = []
        for _ in range(40):
            if limiter.can_make_request():
                admitted.append(clock.now)
            clock.advance(100)
        for t in admitted:
            in_window = [a for a in admitted if t <= a < t + 1000]
            assert len(in_window) <= 3


class TestRemaining:
    def test_remaining_does_not_consume(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=3, window_ms=1000, clock=clock)
        assert limiter.get_remaining_requests() == 3
        assert limiter.get_remaining_requests() == 3
        limiter.can_make_request()
        assert limiter.get_remaining_requests() == 2

    def test_remaining_recovers_after_window(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=2, window_ms=1000, clock=clock)
        limiter.can_make_request()
        limiter.can_make_request()
        assert limiter.get_remaining_requests() == 0
        clock.advance(1000)
        assert limiter.get_remaining_requests() == 2

    def test_reset(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=1, window_ms=1000, clock=clock)
        limiter.can_make_request()
        limiter.reset()
        assert limiter.get_remaining_requests() == 1


class TestAcquire:
    def test_acquire_raises_when_full(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=1, window_ms=1000, clock=clock)
        limiter.acquire()
        clock.advance(250)
        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.acquire()
        assert exc_info.value.remaining == 0
        assert exc_info.value.retry_after_ms == 750
        assert "Too many requests" in str(exc_info.value)

    def test_retry_after_zero_with_room(self, clock: FakeClock) -> None:
        limiter = RateLimiter(max_requests=2, window_ms=1000, clock=clock)
        limiter.acquire()
        assert limiter.retry_after_ms() == 0


class TestConstruction:
    def test_defaults(self) -> None:
        limiter = RateLimiter()
        assert limiter.max_requests == 10
        assert limiter.window_ms == 60_000

    @pytest.mark.parametrize("kwargs", [{"max_requests": -1}, {"window_ms": 0}, {"window_ms": -5}])
    def test_invalid_arguments(self, kwargs) -> None:
        with pytest.raises(ValueError):
            RateLimiter(**kwargs)

    def test_instances_are_independent(self, clock: FakeClock) -> None:
        a = RateLimiter(max_requests=1, window_ms=1000, clock=clock)
        b = RateLimiter(max_requests=1, window_ms=1000, clock=clock)
        assert a.can_make_request()
        assert b.can_make_request()
