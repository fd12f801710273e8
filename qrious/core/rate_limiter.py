"""
Per-client token bucket rate limiting for the API surface.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict

from qrious.config.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TokenBucket:
    tokens: float
    last_refill: float


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check"""
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds


class RateLimiter:
    """
    In-memory token bucket keyed by client identifier.

    Each client holds up to ``requests_per_minute`` tokens; tokens refill
    continuously at the same rate per minute.
    """

    def __init__(self, requests_per_minute: int = 100, clock: Callable[[], float] = time.time):
        self.max_tokens = requests_per_minute
        self.window_seconds = 60.0
        self.refill_rate = requests_per_minute / self.window_seconds  # tokens per second
        self._clock = clock
        self._buckets: Dict[str, TokenBucket] = {}

    def check(self, identifier: str) -> RateLimitResult:
        """Consume one token for identifier if one is available."""
        now = self._clock()
        bucket = self._buckets.get(identifier)
        if bucket is None:
            bucket = TokenBucket(tokens=float(self.max_tokens), last_refill=now)
            self._buckets[identifier] = bucket

        elapsed = now - bucket.last_refill
        bucket.tokens = min(self.max_tokens, bucket.tokens + elapsed * self.refill_rate)
        bucket.last_refill = now

        if bucket.tokens >= 1:
            bucket.tokens -= 1
            reset_at = now + (self.max_tokens - bucket.tokens) / self.refill_rate
            return RateLimitResult(allowed=True, remaining=int(bucket.tokens), reset_at=reset_at)

        reset_at = now + (1 - bucket.tokens) / self.refill_rate
        logger.debug("Rate limit exceeded", client=identifier)
        return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)

    def cleanup(self) -> int:
        """Drop buckets idle for more than two windows."""
        now = self._clock()
        max_age = self.window_seconds * 2
        stale = [k for k, b in self._buckets.items() if now - b.last_refill > max_age]
        for key in stale:
            del self._buckets[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._buckets)
