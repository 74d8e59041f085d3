"""
Rate Limit Module

Per-identity fixed-window admission control.
"""
from typing import Protocol

from gateway.services.core.types import Identity, RateLimitDecision
from .limiter import InMemoryRateLimiter, RedisRateLimiter, RateLimitWindow


class RateLimiter(Protocol):
    async def admit(self, identity: Identity) -> RateLimitDecision:
        """Admit one request or raise RateLimitedError."""
        ...


__all__ = [
    "RateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "RateLimitWindow",
]
