"""
Key-value cache stores with per-key expiration.

Two backends share the same async interface:

  RedisCacheStore   GET / SET ... EX against a redis.asyncio client
  MemoryCacheStore  in-process dict, used when Redis is not reachable

Values are strings; callers own serialisation. Absence is always a valid
answer (cache miss) and never an error.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 10_000
DEFAULT_SWEEP_INTERVAL_S = 60.0


class CacheStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_s: int) -> None: ...


class RedisCacheStore:
    """Thin adapter over an async Redis client (decode_responses=True)."""

    backend = "redis"

    def __init__(self, redis) -> None:
        self._redis = redis

    async def get(self, key: str) -> str | None:
        return await self._redis.get(key)

    async def set(self, key: str, value: str, ttl_s: int) -> None:
        await self._redis.set(key, value, ex=ttl_s)


class MemoryCacheStore:
    """
    Process-local TTL store.

    Entries are (expires_at, value) with expires_at on the monotonic clock.
    Expired entries read as absent and are evicted on access. Keys that are
    never read again are reclaimed by a sweep that runs from set() at most
    once per sweep_interval_s. At max_entries, inserting a new key first
    evicts the entry closest to expiry.
    """

    backend = "memory"

    def __init__(
        self,
        clock=time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        sweep_interval_s: float = DEFAULT_SWEEP_INTERVAL_S,
    ) -> None:
        self._entries: dict[str, tuple[float, str]] = {}
        self._clock = clock
        self._max_entries = max_entries
        self._sweep_interval_s = sweep_interval_s
        self._next_sweep = clock() + sweep_interval_s

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_s: int) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)
        if key not in self._entries and len(self._entries) >= self._max_entries:
            soonest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[soonest]
        self._entries[key] = (now + ttl_s, value)

    def _sweep(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]
        self._next_sweep = now + self._sweep_interval_s
        if expired:
            logger.debug("Memory cache sweep dropped %d expired entries", len(expired))

    def __len__(self) -> int:
        return len(self._entries)


def build_cache_store(redis) -> RedisCacheStore | MemoryCacheStore:
    """Pick Redis when a client is available, otherwise fall back to memory."""
    if redis is not None:
        return RedisCacheStore(redis)
    logger.warning("Redis unavailable; weather cache falls back to in-process memory")
    return MemoryCacheStore()
