"""
Token bucket rate limiter for exchange REST requests.

Each collector owns one limiter sized to its exchange's public-endpoint
limits, so bursts against one exchange never delay another.
"""

import asyncio
import time

from arbcollect.config.constants import DEFAULT_REQUESTS_PER_SECOND


class TokenBucket:
    """
    Bucket of request credits refilled continuously.

    Holds at most `capacity` credits and gains `refill_rate` credits per
    second of monotonic time. A request of weight N spends N credits.
    """

    def __init__(self, capacity: int, refill_rate: float) -> None:
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = float(capacity)
        self._stamp = time.monotonic()
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"TokenBucket(capacity={self.capacity}, refill_rate={self.refill_rate}, tokens={self.tokens:.2f})"

    def _top_up(self) -> None:
        now = time.monotonic()
        gained = (now - self._stamp) * self.refill_rate
        self._stamp = now
        if gained > 0:
            self.tokens = min(float(self.capacity), self.tokens + gained)

    def _spend(self, tokens: int) -> bool:
        self._top_up()
        if self.tokens < tokens:
            return False
        self.tokens -= tokens
        return True

    def try_acquire(self, tokens: int = 1) -> bool:
        """Spend credits if enough are on hand; never waits."""
        return self._spend(tokens)

    async def acquire(self, tokens: int = 1) -> None:
        """
        Spend credits, sleeping until the shortfall has refilled.

        Waiters are served one at a time so a heavy request cannot be
        starved by a stream of light ones.
        """
        async with self._lock:
            if self._spend(tokens):
                return

            shortfall = tokens - self.tokens
            await asyncio.sleep(shortfall / self.refill_rate)
            self._top_up()
            self.tokens -= tokens


class RateLimiter:
    """
    Per-exchange request limiter.

    Burst capacity is twice the sustained per-second rate.
    """

    def __init__(self, requests_per_second: int = DEFAULT_REQUESTS_PER_SECOND) -> None:
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")

        self.requests_per_second = requests_per_second
        self._bucket = TokenBucket(
            capacity=2 * requests_per_second,
            refill_rate=float(requests_per_second),
        )

    async def acquire(self, weight: int = 1) -> None:
        """Wait until a request of `weight` may be sent."""
        await self._bucket.acquire(weight)

    def try_acquire(self, weight: int = 1) -> bool:
        """Acquire without waiting; False if the bucket is short."""
        return self._bucket.try_acquire(weight)

    @property
    def available(self) -> float:
        """Credits currently on hand, as of the last refill."""
        return self._bucket.tokens
