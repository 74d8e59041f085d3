"""
Translation Memory Module

Content-addressed cache of translation results with TTL expiry.
Backends:
- InMemoryTranslationMemory: per-process LRU (default)
- RedisTranslationMemory: shared across processes
"""
from typing import Optional, Protocol

from gateway.services.core.types import CacheEntry
from .memory import InMemoryTranslationMemory
from .redis_cache import RedisTranslationMemory


class TranslationMemory(Protocol):
    """Interface implemented by every translation memory backend."""

    async def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return a live entry or None (expired entries count as misses)."""
        ...

    async def store(
        self,
        key: str,
        result_text: str,
        *,
        detected_source: Optional[str] = None,
        ttl_seconds: float,
        sequence: int,
    ) -> bool:
        """Upsert unless a live entry with a newer sequence exists."""
        ...

    async def evict(self, key: str) -> bool:
        ...

    async def clear(self):
        ...

    def get_stats(self) -> dict:
        ...


__all__ = [
    "TranslationMemory",
    "InMemoryTranslationMemory",
    "RedisTranslationMemory",
]
