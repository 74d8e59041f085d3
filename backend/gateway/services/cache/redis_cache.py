"""
Redis Translation Memory

Shares the translation memory between gateway processes. Values are JSON
documents stored with a millisecond TTL; writes go through WATCH/MULTI so the
newer-sequence rule holds across processes as well.

The entry ceiling is delegated to the server (configure
``maxmemory-policy allkeys-lru``).
"""
import json
import logging
import time
from typing import Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from gateway.config.constants import CACHE_KEY_PREFIX
from gateway.services.core.exceptions import CacheUnavailableError
from gateway.services.core.types import CacheEntry

logger = logging.getLogger(__name__)

# Bounded optimistic-lock retries for a contended key
MAX_WATCH_RETRIES = 5


class RedisTranslationMemory:
    """Translation memory backed by a shared Redis instance."""

    def __init__(self, client: redis.Redis, clock: Callable[[], float] = time.time):
        self._redis = client
        self._clock = clock

    @staticmethod
    def _decode(key: str, raw) -> CacheEntry:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
        return CacheEntry(
            key=key,
            result_text=data["text"],
            detected_source=data.get("detected_source"),
            created_at=data["created_at"],
            expires_at=data["expires_at"],
            sequence=data["sequence"],
        )

    @classmethod
    def _decode_or_none(cls, key: str, raw) -> Optional[CacheEntry]:
        """Decode a stored value; a malformed value reads as absent."""
        try:
            return cls._decode(key, raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Malformed translation memory value at {key[:19]}, ignoring: {e}")
            return None

    @staticmethod
    def _encode(entry: CacheEntry) -> str:
        return json.dumps({
            "text": entry.result_text,
            "detected_source": entry.detected_source,
            "created_at": entry.created_at,
            "expires_at": entry.expires_at,
            "sequence": entry.sequence,
        }, ensure_ascii=False)

    async def lookup(self, key: str) -> Optional[CacheEntry]:
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            raise CacheUnavailableError(f"Redis lookup failed: {e}") from e
        if raw is None:
            return None

        entry = self._decode_or_none(key, raw)
        if entry is None or entry.is_expired(self._clock()):
            return None
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
        now = self._clock()
        entry = CacheEntry(
            key=key,
            result_text=result_text,
            detected_source=detected_source,
            created_at=now,
            expires_at=now + ttl_seconds,
            sequence=sequence,
        )
        payload = self._encode(entry)
        ttl_ms = max(1, int(ttl_seconds * 1000))

        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                for _ in range(MAX_WATCH_RETRIES):
                    try:
                        await pipe.watch(key)
                        raw = await pipe.get(key)
                        current = None if raw is None else self._decode_or_none(key, raw)
                        if current is not None and not current.is_expired(now) and current.sequence > sequence:
                            await pipe.unwatch()
                            logger.debug(f"Redis translation memory kept newer entry for {key[:19]}")
                            return False
                        pipe.multi()
                        pipe.set(key, payload, px=ttl_ms)
                        await pipe.execute()
                        return True
                    except WatchError:
                        logger.debug(f"Concurrent write on {key[:19]}, retrying")
                        continue
        except RedisError as e:
            raise CacheUnavailableError(f"Redis store failed: {e}") from e

        logger.warning(f"Gave up writing {key[:19]} after {MAX_WATCH_RETRIES} contended attempts")
        return False

    async def evict(self, key: str) -> bool:
        try:
            return bool(await self._redis.delete(key))
        except RedisError as e:
            raise CacheUnavailableError(f"Redis evict failed: {e}") from e

    async def clear(self):
        """Delete every translation memory key (``tm:*``)."""
        try:
            async for key in self._redis.scan_iter(match=f"{CACHE_KEY_PREFIX}*", count=500):
                await self._redis.delete(key)
        except RedisError as e:
            raise CacheUnavailableError(f"Redis clear failed: {e}") from e
        logger.info("Redis translation memory cleared")

    def get_stats(self) -> dict:
        return {"backend": "redis"}
