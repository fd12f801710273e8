"""
In-memory TTL cache for analysis results.

Entries are immutable once written and only ever expire, so a single asyncio
lock around the dict is enough for concurrent requests on one event loop.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from qrious.config.logging import get_logger

logger = get_logger(__name__)


class CacheKey:
    """Cache key builders."""

    SEPARATOR = ":"

    @staticmethod
    def build(operation: str, url: str) -> str:
        return f"{operation}{CacheKey.SEPARATOR}{url}"

    @staticmethod
    def resolve(url: str) -> str:
        return CacheKey.build("resolve", url)

    @staticmethod
    def analyze(url: str) -> str:
        return CacheKey.build("analyze", url)


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


class ResultCache:
    """TTL cache shared across requests."""

    def __init__(self, default_ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self.stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "expired": 0,
        }

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() > entry.expires_at

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats["misses"] += 1
                return None
            if self._is_expired(entry):
                del self._entries[key]
                self.stats["expired"] += 1
                self.stats["misses"] += 1
                return None
            self.stats["hits"] += 1
            return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds else self.default_ttl
        async with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
            self.stats["sets"] += 1

    async def has(self, key: str) -> bool:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._is_expired(entry):
                del self._entries[key]
                self.stats["expired"] += 1
                return False
            return True

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def cleanup(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        async with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for key in expired:
                del self._entries[key]
            self.stats["expired"] += len(expired)

        if expired:
            logger.info("Cleared expired cache entries", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        total = self.stats["hits"] + self.stats["misses"]
        return {
            **self.stats,
            "entries": len(self._entries),
            "hit_rate": round(self.stats["hits"] / total, 3) if total else 0.0,
        }


async def run_periodically(name: str, interval_seconds: float, func: Callable) -> None:
    """Call a sweep function every interval until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            result = func()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Periodic task failed", task=name)
