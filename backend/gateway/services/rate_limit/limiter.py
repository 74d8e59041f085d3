"""
Rate Limiter - Fixed-window request accounting per identity.

Two backends with the same contract:
- InMemoryRateLimiter: window state in a dict guarded by a lock
- RedisRateLimiter: window state in Redis, updated in one MULTI transaction

Usage:
    limiter = InMemoryRateLimiter(window_ms=60000, max_requests=60)
    decision = await limiter.admit(identity)  # raises RateLimitedError when over
"""
from dataclasses import dataclass
import logging
import threading
import time
from typing import Callable, Dict

import redis.asyncio as redis
from redis.exceptions import RedisError

from gateway.config.constants import RATE_LIMIT_KEY_PREFIX, RATE_LIMIT_PRUNE_THRESHOLD
from gateway.services.core.exceptions import RateLimitedError
from gateway.services.core.types import Identity, RateLimitDecision
from gateway.services import metrics

logger = logging.getLogger(__name__)


@dataclass
class RateLimitWindow:
    """Counter state for one identity."""
    window_start: float
    count: int
    limit: int


class InMemoryRateLimiter:
    """
    Fixed-window limiter for a single gateway process.

    The rollover check and the increment happen under one lock, so two
    concurrent admissions can never both observe the same pre-increment count.
    """

    def __init__(
        self,
        window_ms: int,
        max_requests: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()

    def _window_seconds(self) -> float:
        return self.window_ms / 1000.0

    def _prune(self, now: float):
        span = self._window_seconds()
        stale = [subject for subject, w in self._windows.items() if now - w.window_start >= span]
        for subject in stale:
            del self._windows[subject]

    async def admit(self, identity: Identity) -> RateLimitDecision:
        """
        Count one request for an identity.

        Returns:
            RateLimitDecision for an admitted request

        Raises:
            RateLimitedError with the time remaining until the window resets
        """
        now = self._clock()
        span = self._window_seconds()

        with self._lock:
            window = self._windows.get(identity.subject)
            if window is None or now - window.window_start >= span:
                if len(self._windows) >= RATE_LIMIT_PRUNE_THRESHOLD:
                    self._prune(now)
                window = RateLimitWindow(window_start=now, count=0, limit=self.max_requests)
                self._windows[identity.subject] = window

            reset_after_ms = max(0, int((window.window_start + span - now) * 1000))
            if window.count >= window.limit:
                allowed = False
            else:
                window.count += 1
                allowed = True
            remaining = window.limit - window.count

        if not allowed:
            metrics.rate_limited.inc()
            logger.info(f"Rate limit exceeded for {identity.subject}, retry in {reset_after_ms} ms")
            raise RateLimitedError(retry_after_ms=reset_after_ms, limit=self.max_requests)

        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=remaining,
            reset_after_ms=reset_after_ms,
        )

    def reset(self):
        with self._lock:
            self._windows.clear()


class RedisRateLimiter:
    """
    Fixed-window limiter shared by every gateway process.

    ``SET NX PX`` opens the window, ``INCR`` counts and ``PTTL`` reports the
    time left; all three run in one transaction. When Redis is unreachable
    the limiter admits the request and logs a warning.
    """

    def __init__(self, client: redis.Redis, window_ms: int, max_requests: int):
        self._redis = client
        self.window_ms = window_ms
        self.max_requests = max_requests

    async def admit(self, identity: Identity) -> RateLimitDecision:
        key = f"{RATE_LIMIT_KEY_PREFIX}{identity.subject}"
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, px=self.window_ms, nx=True)
                pipe.incr(key)
                pipe.pttl(key)
                _, count, ttl_ms = await pipe.execute()
        except RedisError as e:
            logger.warning(f"Rate limiter backend unavailable, admitting {identity.subject}: {e}")
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests,
                reset_after_ms=self.window_ms,
            )

        reset_after_ms = int(ttl_ms) if ttl_ms and ttl_ms > 0 else self.window_ms
        if count > self.max_requests:
            metrics.rate_limited.inc()
            logger.info(f"Rate limit exceeded for {identity.subject}, retry in {reset_after_ms} ms")
            raise RateLimitedError(retry_after_ms=reset_after_ms, limit=self.max_requests)

        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - int(count),
            reset_after_ms=reset_after_ms,
        )
