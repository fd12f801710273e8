"""
Unit tests for the result cache and the token bucket rate limiter.
"""

import asyncio

import pytest

from qrious.core.cache import CacheKey, ResultCache, run_periodically
from qrious.core.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestCacheKey:

    def test_keys_are_namespaced_by_operation(self):
        assert CacheKey.resolve("https://example.com/") == "resolve:https://example.com/"
        assert CacheKey.analyze("https://example.com/") == "analyze:https://example.com/"


class TestResultCache:

    async def test_get_set(self, clock):
        cache = ResultCache(default_ttl_seconds=60, clock=clock)
        await cache.set("k", {"v": 1})

        assert await cache.get("k") == {"v": 1}
        assert await cache.has("k")
        assert cache.get_stats()["hits"] == 1

    async def test_miss(self, clock):
        cache = ResultCache(clock=clock)
        assert await cache.get("missing") is None
        assert cache.stats["misses"] == 1

    async def test_entry_expires(self, clock):
        cache = ResultCache(default_ttl_seconds=60, clock=clock)
        await cache.set("k", "v")

        clock.advance(61)

        assert await cache.get("k") is None
        assert not await cache.has("k")
        assert len(cache) == 0

    async def test_per_entry_ttl(self, clock):
        cache = ResultCache(default_ttl_seconds=3600, clock=clock)
        await cache.set("short", "v", ttl_seconds=5)
        await cache.set("long", "v")

        clock.advance(10)

        assert await cache.get("short") is None
        assert await cache.get("long") == "v"

    async def test_cleanup_removes_only_expired(self, clock):
        cache = ResultCache(default_ttl_seconds=60, clock=clock)
        await cache.set("old", 1)
        clock.advance(30)
        await cache.set("new", 2)
        clock.advance(31)

        removed = await cache.cleanup()

        assert removed == 1
        assert len(cache) == 1
        assert await cache.get("new") == 2

    async def test_delete_and_clear(self, clock):
        cache = ResultCache(clock=clock)
        await cache.set("a", 1)
        await cache.set("b", 2)

        await cache.delete("a")
        assert await cache.get("a") is None

        await cache.clear()
        assert len(cache) == 0


class TestRunPeriodically:

    async def test_calls_sync_and_async_until_cancelled(self):
        calls = []

        async def async_sweep():
            calls.append("async")

        def failing_sweep():
            calls.append("sync")
            raise RuntimeError("sweep failed")

        tasks = [
            asyncio.create_task(run_periodically("a", 0.01, async_sweep)),
            asyncio.create_task(run_periodically("b", 0.01, failing_sweep)),
        ]
        await asyncio.sleep(0.05)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        assert calls.count("async") >= 2
        assert calls.count("sync") >= 2


class TestRateLimiter:

    def test_allows_up_to_capacity(self, clock):
        limiter = RateLimiter(requests_per_minute=3, clock=clock)

        results = [limiter.check("client") for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0]

    def test_clients_are_independent(self, clock):
        limiter = RateLimiter(requests_per_minute=1, clock=clock)

        assert limiter.check("a").allowed
        assert limiter.check("b").allowed
        assert not limiter.check("a").allowed

    def test_tokens_refill_continuously(self, clock):
        limiter = RateLimiter(requests_per_minute=60, clock=clock)
        for _ in range(60):
            limiter.check("client")
        assert not limiter.check("client").allowed

        clock.advance(1)

        assert limiter.check("client").allowed
        assert not limiter.check("client").allowed

    def test_reset_time(self, clock):
        limiter = RateLimiter(requests_per_minute=60, clock=clock)

        allowed = limiter.check("client")
        assert allowed.reset_at == pytest.approx(clock.now + 1)

        for _ in range(59):
            limiter.check("client")
        denied = limiter.check("client")
        assert not denied.allowed
        assert denied.reset_at == pytest.approx(clock.now + 1)

    def test_cleanup_drops_idle_buckets(self, clock):
        limiter = RateLimiter(requests_per_minute=10, clock=clock)
        limiter.check("idle")
        clock.advance(100)
        limiter.check("active")
        clock.advance(30)

        assert limiter.cleanup() == 1
        assert len(limiter) == 1
