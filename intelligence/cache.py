"""Query cache: avoid rebuilding queries and refetching identical results.

Keys are derived from the normalized content of a Preferences object, so two
users with identical preferences share one entry. Values are whatever the
caller stores (a ProviderQuery, a list of articles, ...).

Expiry:
    An entry set with ``ttl_seconds`` is returned while
    ``now < inserted_at + ttl_seconds`` and treated as missing afterwards.

Concurrency:
    get_or_compute serializes fills per key with an asyncio.Lock, so
    concurrent misses on the same key compute the value once and every waiter
    receives the winner's result. Locks live only while a fill is in flight.

The storage backend is a CacheStore; MemoryCacheStore keeps entries in
process. A Redis or Firestore backed store only needs get/set/delete/clear.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Awaitable, Callable, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Seconds each provider's results stay fresh
SOURCE_TTL_SECONDS = {
    "newsapi": 3600,
    "reuters": 3600,
    "politico": 7200,
    "fred": 21600,
    "bloomberg": 3600,
}
DEFAULT_TTL_SECONDS = 3600


def source_ttl(source: str) -> int:
    """Default TTL for a provider's cached queries and results."""
    return SOURCE_TTL_SECONDS.get(source, DEFAULT_TTL_SECONDS)


def normalize(value: Any) -> Any:
    """Reduce models and containers to plain JSON-compatible data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, dict):
        return {str(k): normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize(v) for v in value]
    return value


def cache_key(source: str, preferences: Any) -> str:
    """Deterministic cache key for ``(source, preferences)``.

    The preferences are serialized to JSON with sorted keys, so field order
    never affects the key.

    Returns:
        ``"<source>:<32 hex chars>"``
    """
    payload = json.dumps(normalize(preferences), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    digest = sha256(f"{source}|{payload}".encode()).hexdigest()[:32]
    return f"{source}:{digest}"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float
    inserted_at: float


class CacheStore(Protocol):
    """Key-value backend for QueryCache."""

    def get(self, key: str) -> CacheEntry | None: ...

    def set(self, entry: CacheEntry) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def entries(self) -> list[CacheEntry]: ...


class MemoryCacheStore:
    """In-process dict store."""

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def set(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> list[CacheEntry]:
        return list(self._entries.values())


class QueryCache:
    """TTL cache with hit-rate accounting.

    Args:
        store: Backend store (defaults to MemoryCacheStore)
        clock: Monotonic time source in seconds (injectable for tests)
        default_ttl: TTL used when set() is called without one

    Example:
        >>> cache = QueryCache()
        >>> cache.set("k", {"q": "AI"}, ttl_seconds=60)
        >>> cache.get("k")
        {'q': 'AI'}
    """

    def __init__(
        self,
        store: CacheStore | None = None,
        clock: Callable[[], float] = time.monotonic,
        default_ttl: int = DEFAULT_TTL_SECONDS,
    ):
        self.store = store if store is not None else MemoryCacheStore()
        self.clock = clock
        self.default_ttl = default_ttl
        self.hits = 0
        self.misses = 0
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self.store.get(key)
        if entry is None:
            return None
        if self.clock() >= entry.expires_at:
            self.store.delete(key)
            return None
        return entry

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        entry = self._live_entry(key)
        if entry is None:
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def is_cached(self, key: str) -> bool:
        """True if a live entry exists. Does not count as a hit or miss."""
        return self._live_entry(key) is not None

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a value for ``ttl_seconds`` (default: the cache default)."""
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl}")
        now = self.clock()
        self.store.set(CacheEntry(key=key, value=value, expires_at=now + ttl, inserted_at=now))
        logger.debug("Cache set | key=%s ttl=%ds", key, ttl)

    def invalidate(self, key: str) -> None:
        self.store.delete(key)

    def clear(self) -> None:
        self.store.clear()
        self.hits = 0
        self.misses = 0

    async def get_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl_seconds: int | None = None,
        should_cache: Callable[[Any], bool] | None = None,
    ) -> Any:
        """Return the cached value or compute, store and return it.

        Concurrent callers for the same key wait on one lock; only the first
        runs ``factory``. A factory exception is propagated and nothing is
        stored, so the next caller retries. Values rejected by
        ``should_cache`` are returned without being stored.

        Each call counts as exactly one hit or one miss. A key's lock is
        dropped once no caller holds or awaits it.
        """
        entry = self._live_entry(key)
        if entry is not None:
            self.hits += 1
            return entry.value

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                # Another waiter may have filled it while we queued
                entry = self._live_entry(key)
                if entry is not None:
                    self.hits += 1
                    return entry.value
                self.misses += 1
                value = await factory()
                if should_cache is None or should_cache(value):
                    self.set(key, value, ttl_seconds)
                return value
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                del self._locks[key]

    def get_stats(self) -> dict[str, Any]:
        """Entry count and hit rate for observability."""
        now = self.clock()
        live = [e for e in self.store.entries() if now < e.expires_at]
        lookups = self.hits + self.misses
        return {
            "totalEntries": len(live),
            "hits": self.hits,
            "misses": self.misses,
            "hitRate": round(self.hits / lookups, 4) if lookups else 0.0,
            "oldestEntryAge": round(now - min(e.inserted_at for e in live), 2) if live else None,
            "newestEntryAge": round(now - max(e.inserted_at for e in live), 2) if live else None,
        }
