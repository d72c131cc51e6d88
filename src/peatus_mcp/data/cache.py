"""Simple TTL-based cache for live departure feeds."""

import asyncio
import time
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class KeyedTTLCache(Generic[K, V]):
    """Per-key TTL cache.

    Each key expires independently. One async lock per key keeps concurrent
    requests for the same key from fetching twice.
    """

    def __init__(self, ttl: float = 30.0, max_entries: int = 1024):
        """Initialize the cache.

        Args:
            ttl: Time-to-live in seconds for cached values.
            max_entries: Oldest entries are evicted past this size.
        """
        self._ttl = ttl
        self._max_entries = max_entries
        self._values: dict[K, tuple[V, float]] = {}
        self._locks: dict[K, asyncio.Lock] = {}

    def get(self, key: K) -> V | None:
        """Get the cached value for a key if it hasn't expired."""
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            del self._values[key]
            return None
        return value

    def set(self, key: K, value: V) -> None:
        """Set a value for a key with TTL."""
        self._values.pop(key, None)
        if len(self._values) >= self._max_entries:
            oldest = next(iter(self._values))
            del self._values[oldest]
            # a held lock guards a fetch in flight; it must outlive the value
            lock = self._locks.get(oldest)
            if lock is not None and not lock.locked():
                del self._locks[oldest]
        self._values[key] = (value, time.monotonic() + self._ttl)

    def clear(self) -> None:
        """Clear all cached values."""
        self._values.clear()
        self._locks = {key: lock for key, lock in self._locks.items() if lock.locked()}

    def lock(self, key: K) -> asyncio.Lock:
        """Get the async lock for coordinating fetches of one key."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._values)
