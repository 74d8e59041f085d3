import asyncio
import sys
import os

# Add backend to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gateway.config.constants import RATE_LIMIT_KEY_PREFIX
from gateway.config.redis import close_redis, create_redis
from gateway.config.settings import settings
from gateway.services.cache import RedisTranslationMemory


async def clear_redis(include_rate_limits: bool):
    print("🧹 Clearing translation memory...")
    redis = create_redis(settings)
    try:
        await RedisTranslationMemory(redis).clear()
        print("✅ Translation memory cleared.")

        if include_rate_limits:
            keys = [key async for key in redis.scan_iter(match=f"{RATE_LIMIT_KEY_PREFIX}*")]
            if keys:
                await redis.delete(*keys)
            print(f"✅ Removed {len(keys)} rate limit windows.")
    finally:
        await close_redis(redis)


if __name__ == "__main__":
    asyncio.run(clear_redis(include_rate_limits="--rate-limits" in sys.argv))
