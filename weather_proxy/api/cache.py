"""
In-memory cache for weather lookups.

Cache Strategy:
- Cache key: lower-cased, trimmed city name (or rounded "lat,lon")
- Expiry: ttl seconds after insertion, checked lazily on read
- Capacity: max_entries; expired entries are purged first, then the
  oldest insertion is evicted
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """A cached value and the clock reading at insertion."""

    key: str
    value: V
    inserted_at: float

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.inserted_at >= ttl


class WeatherCache(Generic[V]):
    """
    Bounded TTL cache safe for concurrent use.

    Entries are kept in insertion order so the oldest one is always at the
    front. Every read and write happens under a single lock.
    """

    def __init__(
        self,
        ttl: float = 600,
        max_entries: int = 100,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize cache.

        Args:
            ttl: Seconds an entry stays valid after insertion
            max_entries: Maximum number of entries held at once
            clock: Monotonic time source, ``time.monotonic`` if None
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()

        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str, record_miss: bool = True) -> Optional[V]:
        """
        Return the live value for key, or None if absent or expired.

        An expired entry is dropped on the way out. With record_miss=False
        only hits are counted, for a first check that is followed by another.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                if record_miss:
                    self.misses += 1
                logger.debug(f"Cache miss: {key}")
                return None

            if entry.is_expired(self._clock(), self.ttl):
                del self._entries[key]
                if record_miss:
                    self.misses += 1
                logger.debug(f"Cache expired: {key}")
                return None

            self.hits += 1
            logger.debug(f"Cache hit: {key}")
            return entry.value

    def peek(self, key: str) -> Optional[V]:
        """Like get(), but leaves the hit/miss counters alone."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._clock(), self.ttl):
                return None
            return entry.value

    def set(self, key: str, value: V) -> None:
        """Store value under key, evicting the oldest entry when full."""
        with self._lock:
            now = self._clock()

            # A re-insert gets a fresh timestamp and moves to the back
            self._entries.pop(key, None)

            if len(self._entries) >= self.max_entries:
                self._purge_expired(now)

            while len(self._entries) >= self.max_entries:
                oldest_key, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"Cache full, evicted: {oldest_key}")

            self._entries[key] = CacheEntry(key=key, value=value, inserted_at=now)
            logger.debug(f"Cached: {key}")

    def delete(self, key: str) -> bool:
        """Remove key; returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """
        Clear all cached data.

        Returns:
            Number of entries dropped
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()

        logger.info(f"Cleared {count} cache entries")
        return count

    def clear_expired(self) -> int:
        """
        Clear only expired entries.

        Returns:
            Number of entries dropped
        """
        with self._lock:
            count = self._purge_expired(self._clock())

        logger.debug(f"Cleared {count} expired cache entries")
        return count

    def _purge_expired(self, now: float) -> int:
        """Drop expired entries. Caller must hold the lock."""
        expired = [k for k, e in self._entries.items() if e.is_expired(now, self.ttl)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache statistics
        """
        with self._lock:
            return {
                "entries": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """True only for a live (non-expired) entry; does not touch counters."""
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired(self._clock(), self.ttl)
