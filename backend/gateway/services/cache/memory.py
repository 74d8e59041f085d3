"""
In-process Translation Memory

Caches provider results keyed by request fingerprint so that repeated UI
strings and document chunks are served without a provider call.

Example benefit:
- A product page is translated to Spanish by 500 visitors
- The first request stores ("Add to cart", en->es) -> "Añadir al carrito"
- The next 499 requests hit the memory and never reach the provider

Entries expire passively (checked on lookup) and the store is bounded by an
LRU ceiling so one-off phrases cannot grow it without limit.
"""
from collections import OrderedDict
from typing import Callable, Optional
import logging
import threading
import time

from gateway.services.core.types import CacheEntry

logger = logging.getLogger(__name__)


class InMemoryTranslationMemory:
    """LRU + TTL cache for translation results."""

    def __init__(self, max_entries: int = 10000, clock: Callable[[], float] = time.time):
        """
        Initialize translation memory.

        Args:
            max_entries: Maximum number of cached results before LRU eviction
            clock: Wall-clock source (seconds), injectable for tests
        """
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._stale_writes = 0

    async def lookup(self, key: str) -> Optional[CacheEntry]:
        """
        Retrieve a live entry.

        An expired entry is removed and reported as a miss.

        Args:
            key: Translation memory key

        Returns:
            CacheEntry if present and not expired, None otherwise
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(now):
                del self._entries[key]
                self._misses += 1
                logger.debug(f"Translation memory EXPIRED for key {key[:19]}")
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry

    async def store(
        self,
        key: str,
        result_text: str,
        *,
        detected_source: Optional[str] = None,
        ttl_seconds: float,
        sequence: int,
    ) -> bool:
        """
        Upsert a result.

        A live entry written with a newer sequence is never replaced by an
        older one, so a slow retry cannot clobber a fresher result.

        Args:
            key: Translation memory key
            result_text: Translated text
            detected_source: Source language reported by the provider
            ttl_seconds: Time to live
            sequence: Write stamp of the producing provider attempt

        Returns:
            True if the entry was written, False if a newer entry was kept
        """
        now = self._clock()
        entry = CacheEntry(
            key=key,
            result_text=result_text,
            detected_source=detected_source,
            created_at=now,
            expires_at=now + ttl_seconds,
            sequence=sequence,
        )
        with self._lock:
            current = self._entries.get(key)
            if current is not None and not current.is_expired(now) and current.sequence > sequence:
                self._stale_writes += 1
                logger.debug(f"Translation memory kept newer entry for key {key[:19]}")
                return False

            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                oldest_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Translation memory evicted oldest entry: {oldest_key[:19]}")
            return True

    async def evict(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self):
        """Clear all cached entries."""
        with self._lock:
            self._entries.clear()
        logger.info("Translation memory cleared")

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dict with hits, misses, hit_rate, size and eviction counters
        """
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total * 100) if total > 0 else 0
            return {
                "backend": "memory",
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate_percent": round(hit_rate, 2),
                "cache_size": len(self._entries),
                "max_size": self._max_entries,
                "evictions": self._evictions,
                "stale_writes": self._stale_writes,
            }
