import asyncio

import pytest
import fakeredis.aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from gateway.services.core.exceptions import RateLimitedError
from gateway.services.core.types import Identity
from gateway.services.rate_limit import InMemoryRateLimiter, RedisRateLimiter


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


ALICE = Identity(subject="alice")
BOB = Identity(subject="bob")


@pytest.mark.asyncio
async def test_exactly_max_requests_admitted_per_window():
    limiter = InMemoryRateLimiter(window_ms=60000, max_requests=5, clock=FakeClock())

    for expected_remaining in (4, 3, 2, 1, 0):
        decision = await limiter.admit(ALICE)
        assert decision.allowed
        assert decision.remaining == expected_remaining

    with pytest.raises(RateLimitedError) as exc_info:
        await limiter.admit(ALICE)
    assert exc_info.value.retry_after_ms == 60000
    assert exc_info.value.headers["Retry-After"] == "60"


@pytest.mark.asyncio
async def test_window_rollover_admits_again():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(window_ms=1000, max_requests=1, clock=clock)
    await limiter.admit(ALICE)

    clock.now = 0.4
    with pytest.raises(RateLimitedError) as exc_info:
        await limiter.admit(ALICE)
    assert exc_info.value.retry_after_ms == 600

    clock.now = 1.0
    assert (await limiter.admit(ALICE)).allowed


@pytest.mark.asyncio
async def test_identities_are_counted_separately():
    limiter = InMemoryRateLimiter(window_ms=60000, max_requests=1, clock=FakeClock())
    await limiter.admit(ALICE)
    assert (await limiter.admit(BOB)).allowed
    with pytest.raises(RateLimitedError):
        await limiter.admit(ALICE)


@pytest.mark.asyncio
async def test_concurrent_admissions_never_exceed_limit():
    limiter = InMemoryRateLimiter(window_ms=60000, max_requests=10)

    async def attempt():
        try:
            await limiter.admit(ALICE)
            return True
        except RateLimitedError:
            return False

    outcomes = await asyncio.gather(*(attempt() for _ in range(50)))
    assert sum(outcomes) == 10


@pytest.mark.asyncio
async def test_concurrent_admissions_from_threads_never_exceed_limit():
    limiter = InMemoryRateLimiter(window_ms=60000, max_requests=25)

    def attempt():
        try:
            asyncio.run(limiter.admit(ALICE))
            return True
        except RateLimitedError:
            return False

    loop = asyncio.get_running_loop()
    outcomes = await asyncio.gather(*(loop.run_in_executor(None, attempt) for _ in range(100)))
    assert sum(outcomes) == 25


@pytest.fixture
async def redis_client():
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.mark.asyncio
async def test_redis_limiter_boundary(redis_client):
    limiter = RedisRateLimiter(redis_client, window_ms=60000, max_requests=3)
    for _ in range(3):
        assert (await limiter.admit(ALICE)).allowed

    with pytest.raises(RateLimitedError) as exc_info:
        await limiter.admit(ALICE)
    assert 0 < exc_info.value.retry_after_ms <= 60000

    assert (await limiter.admit(BOB)).allowed
    assert 0 < await redis_client.pttl("ratelimit:alice") <= 60000


@pytest.mark.asyncio
async def test_redis_limiter_fails_open(redis_client, monkeypatch):
    limiter = RedisRateLimiter(redis_client, window_ms=60000, max_requests=1)

    def _down(*args, **kwargs):
        raise RedisConnectionError("connection refused")

    monkeypatch.setattr(redis_client, "pipeline", _down)
    decision = await limiter.admit(ALICE)
    assert decision.allowed
    assert (await limiter.admit(ALICE)).allowed
