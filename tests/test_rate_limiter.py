"""Tests for the sliding-window rate limiter."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from wordposty.errors import RateLimitError
from wordposty.orchestrator.rate_limiter import (
    RateLimitConfig,
    RateLimiter,
    with_rate_limit,
)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(
        {
            "research": RateLimitConfig(2, 60.0, "research"),
            "default": RateLimitConfig(3, 60.0, "default"),
        },
        clock=clock,
    )


class TestCheckLimit:
    def test_allows_up_to_max_requests(self, limiter):
        assert limiter.check_limit("research", "1.2.3.4")
        assert limiter.check_limit("research", "1.2.3.4")
        assert not limiter.check_limit("research", "1.2.3.4")

    def test_rejection_is_not_recorded(self, limiter, clock):
        limiter.check_limit("research", "a")
        clock.now += 10
        limiter.check_limit("research", "a")
        clock.now += 10
        assert not limiter.check_limit("research", "a")
        assert not limiter.check_limit("research", "a")

        # The first entry expires at t=1060, leaving one slot
        clock.now = 1060.0
        assert limiter.check_limit("research", "a")

    def test_keys_are_independent_per_client(self, limiter):
        limiter.check_limit("research", "a")
        limiter.check_limit("research", "a")
        assert limiter.check_limit("research", "b")

    def test_unknown_service_uses_default_config(self, limiter):
        for _ in range(3):
            assert limiter.check_limit("imagen", "a")
        assert not limiter.check_limit("imagen", "a")

    def test_window_slides(self, limiter, clock):
        limiter.check_limit("research", "a")
        limiter.check_limit("research", "a")
        clock.now += 60
        assert limiter.check_limit("research", "a")


class TestRemainingAndReset:
    def test_remaining_counts_down(self, limiter):
        assert limiter.remaining("research", "a") == 2
        limiter.check_limit("research", "a")
        assert limiter.remaining("research", "a") == 1

    def test_reset_time_is_oldest_entry_plus_window(self, limiter, clock):
        limiter.check_limit("research", "a")
        clock.now += 5
        limiter.check_limit("research", "a")
        assert limiter.reset_time("research", "a") == 1060.0

    def test_reset_time_none_when_window_empty(self, limiter, clock):
        assert limiter.reset_time("research", "a") is None
        limiter.check_limit("research", "a")
        clock.now += 61
        assert limiter.reset_time("research", "a") is None


class TestConfigAndCleanup:
    def test_set_config_merges_over_default(self, limiter):
        config = limiter.set_config("wordpress", max_requests=1)
        assert config.max_requests == 1
        assert config.window_seconds == 60.0
        assert config.service == "wordpress"
        assert limiter.check_limit("wordpress", "a")
        assert not limiter.check_limit("wordpress", "a")

    def test_set_config_keeps_unset_fields(self, limiter):
        limiter.set_config("research", window_seconds=10.0)
        assert limiter.config_for("research").max_requests == 2

    def test_cleanup_drops_expired_keys(self, limiter, clock):
        limiter.check_limit("research", "a")
        clock.now += 30
        limiter.check_limit("research", "b")
        clock.now += 40

        limiter.cleanup()

        assert "research:a" not in limiter._requests
        assert limiter._requests["research:b"] == [1030.0]


class TestWaitForLimit:
    def test_returns_immediately_when_slot_free(self, limiter):
        asyncio.run(limiter.wait_for_limit("research", "a"))
        assert limiter.remaining("research", "a") == 1

    def test_sleeps_until_slot_opens(self, limiter, clock):
        limiter.check_limit("research", "a")
        limiter.check_limit("research", "a")

        async def fake_sleep(delay):
            clock.now += delay

        with patch("wordposty.orchestrator.rate_limiter.asyncio.sleep", side_effect=fake_sleep) as sleep:
            asyncio.run(limiter.wait_for_limit("research", "a"))

        # Polls at most once per second until the first entry expires
        assert all(call.args[0] <= 1.0 for call in sleep.call_args_list)
        assert clock.now >= 1060.0

    def test_raises_when_max_wait_exceeded(self, limiter, clock):
        limiter.check_limit("research", "a")
        limiter.check_limit("research", "a")

        async def fake_sleep(delay):
            clock.now += delay

        with patch("wordposty.orchestrator.rate_limiter.asyncio.sleep", side_effect=fake_sleep):
            with pytest.raises(RateLimitError):
                asyncio.run(limiter.wait_for_limit("research", "a", max_wait=2.5))


class TestWithRateLimit:
    def test_runs_operation_when_allowed(self, limiter):
        operation = AsyncMock(return_value="done")

        result = asyncio.run(with_rate_limit(limiter, "research", "a", operation))

        assert result == "done"
        operation.assert_awaited_once()

    def test_raises_with_retry_after(self, limiter, clock):
        limiter.check_limit("research", "a")
        limiter.check_limit("research", "a")
        clock.now += 20.5
        operation = AsyncMock()

        with pytest.raises(RateLimitError) as exc_info:
            asyncio.run(with_rate_limit(limiter, "research", "a", operation))

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == 40
        operation.assert_not_awaited()
