"""
Best-effort throttling keyed by a pseudonymous client fingerprint.
Counters live in an expiring cache (in-process or Redis); reads and increments
are not atomic together, so concurrent requests may slightly overshoot.
"""
from __future__ import annotations

import hashlib
import logging
import time
from typing import Optional, Protocol

from services.errors import RateLimitError

logger = logging.getLogger(__name__)

_KEY_PREFIX = "submit_rate:"
_USER_AGENT_CHARS = 20


def client_fingerprint(ip: Optional[str], user_agent: Optional[str]) -> str:
    """One-way digest of a coarse IP/user-agent pair; raw values are never stored."""
    raw = f"{ip or 'unknown'}_{(user_agent or 'unknown')[:_USER_AGENT_CHARS]}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class CounterStore(Protocol):
    async def get(self, key: str) -> int: ...

    async def increment(self, key: str, window_seconds: int) -> int: ...


class MemoryCounterStore:
    """In-process TTL map; suitable for a single worker."""

    def __init__(self, max_entries: int = 10_000):
        self._entries: dict[str, tuple[float, int]] = {}
        self._max_entries = max_entries

    def _live(self, key: str) -> Optional[tuple[float, int]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, _ = entry
        if expires_at <= time.monotonic():
            self._entries.pop(key, None)
            return None
        return entry

    async def get(self, key: str) -> int:
        entry = self._live(key)
        return entry[1] if entry else 0

    async def increment(self, key: str, window_seconds: int) -> int:
        entry = self._live(key)
        if entry is None:
            if len(self._entries) >= self._max_entries:
                self._evict_expired()
            # Window starts at the first request
            entry = (time.monotonic() + window_seconds, 0)
        expires_at, count = entry
        self._entries[key] = (expires_at, count + 1)
        return count + 1

    def _evict_expired(self) -> None:
        now = time.monotonic()
        for k in [k for k, (exp, _) in self._entries.items() if exp <= now]:
            del self._entries[k]
        if len(self._entries) >= self._max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]


class RedisCounterStore:
    """Shared counters across workers (INCR + EXPIRE on first hit)."""

    def __init__(self, client):
        self._client = client

    async def get(self, key: str) -> int:
        value = await self._client.get(key)
        return int(value) if value else 0

    async def increment(self, key: str, window_seconds: int) -> int:
        count = await self._client.incr(key)
        if count == 1:
            await self._client.expire(key, window_seconds)
        return int(count)


def build_counter_store(backend: str, redis_url: str) -> CounterStore:
    if backend == "redis":
        import redis.asyncio as aioredis

        return RedisCounterStore(aioredis.from_url(redis_url, decode_responses=True))
    if backend != "memory":
        raise ValueError(f"Unknown rate limit backend: {backend}")
    return MemoryCounterStore()


class RateLimiter:
    def __init__(self, store: CounterStore, max_requests: int, window_seconds: int):
        self.store = store
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def hit(self, client_id: str) -> int:
        """Reject once the counter has reached the maximum; otherwise count this request."""
        key = f"{_KEY_PREFIX}{client_id}"
        current = await self.store.get(key)
        if current >= self.max_requests:
            raise RateLimitError(f"client {client_id[:12]} made {current} requests")
        return await self.store.increment(key, self.window_seconds)
