"""
Unit tests for the token bucket rate limiter.
"""

from unittest.mock import AsyncMock, patch

import pytest

from arbcollect.exchange.rate_limiter import RateLimiter, TokenBucket


class TestTokenBucket:
    """Tests for TokenBucket."""

    def test_starts_full(self) -> None:
        """Test a new bucket holds its capacity."""
        bucket = TokenBucket(capacity=4, refill_rate=2.0)

        assert bucket.tokens == 4.0

    def test_try_acquire(self) -> None:
        """Test try_acquire consumes until empty."""
        bucket = TokenBucket(capacity=2, refill_rate=0.001)

        assert bucket.try_acquire()
        assert bucket.try_acquire()
        assert not bucket.try_acquire()

    @pytest.mark.asyncio
    async def test_acquire_waits_when_short(self) -> None:
        """Test acquire sleeps for the missing tokens."""
        bucket = TokenBucket(capacity=1, refill_rate=10.0)
        bucket.try_acquire()

        with patch("arbcollect.exchange.rate_limiter.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await bucket.acquire()

        sleep.assert_awaited_once()
        assert 0 < sleep.await_args.args[0] <= 0.1


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_burst_is_twice_rate(self) -> None:
        """Test burst capacity."""
        limiter = RateLimiter(requests_per_second=5)

        assert limiter.available == 10.0

    def test_weighted(self) -> None:
        """Test heavy requests consume more tokens."""
        limiter = RateLimiter(requests_per_second=5)

        assert limiter.try_acquire(weight=10)
        assert not limiter.try_acquire(weight=5)

    def test_rejects_non_positive_rate(self) -> None:
        """Test rate must be positive."""
        with pytest.raises(ValueError):
            RateLimiter(requests_per_second=0)
