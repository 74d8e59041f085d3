"""
Gateway container.

Owns every piece of shared state of the request pipeline (credential store,
rate limiter, translation memory, provider chain, Redis client, database
engine) and builds it from Settings once at startup. The app keeps the
container on ``app.state.gateway``; nothing here is a module-level singleton.
"""
from dataclasses import dataclass, field
import logging
from typing import List, Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine

from gateway.config.redis import close_redis, create_redis
from gateway.config.settings import Settings
from gateway.models.database import create_engine, create_session_factory
from gateway.services.auth import (
    Authenticator,
    CredentialStore,
    JwtCredentialStore,
    SqlCredentialStore,
    StaticCredentialStore,
)
from gateway.services.cache import InMemoryTranslationMemory, RedisTranslationMemory, TranslationMemory
from gateway.services.providers import TranslationProvider, build_providers
from gateway.services.rate_limit import InMemoryRateLimiter, RateLimiter, RedisRateLimiter
from gateway.services.speech import SpeechService, create_speech_service
from gateway.services.translation import BatchCoordinator, LanguageService, ProviderDispatcher, RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class Gateway:
    """Request-pipeline services for one running app."""
    authenticator: Authenticator
    rate_limiter: RateLimiter
    coordinator: BatchCoordinator
    languages: LanguageService
    cache: TranslationMemory
    providers: List[TranslationProvider] = field(default_factory=list)
    speech: Optional[SpeechService] = None
    redis: Optional[Redis] = None
    engine: Optional[AsyncEngine] = None

    async def aclose(self):
        """Release provider transports, Redis and the database pool."""
        for provider in self.providers:
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"Error closing provider {provider.provider_id}: {e}")
        if self.speech is not None:
            await self.speech.close()
        await close_redis(self.redis)
        self.redis = None
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None


def _build_credential_store(settings: Settings, engine: Optional[AsyncEngine]) -> CredentialStore:
    if settings.AUTH_BACKEND == "static":
        return StaticCredentialStore(settings.static_api_keys)
    if settings.AUTH_BACKEND == "jwt":
        return JwtCredentialStore(settings.JWT_SECRET_KEY, settings.JWT_ALGORITHM)
    if settings.AUTH_BACKEND == "api_key":
        return SqlCredentialStore(create_session_factory(engine))
    raise ValueError(f"Unsupported auth backend `{settings.AUTH_BACKEND}`.")


def build_gateway(
    settings: Settings,
    *,
    providers: Optional[List[TranslationProvider]] = None,
    speech: Optional[SpeechService] = None,
    redis_client: Optional[Redis] = None,
    engine: Optional[AsyncEngine] = None,
) -> Gateway:
    """
    Assemble the gateway from settings.

    Any collaborator passed explicitly replaces the one settings would build.
    Nothing connects here: Redis, the database and provider clients are
    opened lazily on first use.
    """
    uses_redis = "redis" in (settings.CACHE_BACKEND, settings.RATE_LIMIT_BACKEND)
    if uses_redis and redis_client is None:
        redis_client = create_redis(settings)
    if settings.AUTH_BACKEND == "api_key" and engine is None:
        engine = create_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)

    if settings.CACHE_BACKEND == "redis":
        cache = RedisTranslationMemory(redis_client)
        logger.warning(
            f"CACHE_MAX_ENTRIES={settings.CACHE_MAX_ENTRIES} is not enforced on the Redis backend; "
            "bound the translation memory with maxmemory and maxmemory-policy allkeys-lru"
        )
    elif settings.CACHE_BACKEND == "memory":
        cache = InMemoryTranslationMemory(max_entries=settings.CACHE_MAX_ENTRIES)
    else:
        raise ValueError(f"Unsupported cache backend `{settings.CACHE_BACKEND}`.")

    if settings.RATE_LIMIT_BACKEND == "redis":
        rate_limiter = RedisRateLimiter(
            redis_client, settings.RATE_LIMIT_WINDOW_MS, settings.RATE_LIMIT_MAX_REQUESTS
        )
    elif settings.RATE_LIMIT_BACKEND == "memory":
        rate_limiter = InMemoryRateLimiter(settings.RATE_LIMIT_WINDOW_MS, settings.RATE_LIMIT_MAX_REQUESTS)
    else:
        raise ValueError(f"Unsupported rate limit backend `{settings.RATE_LIMIT_BACKEND}`.")

    authenticator = Authenticator(
        _build_credential_store(settings, engine),
        timeout_ms=settings.CREDENTIAL_STORE_TIMEOUT_MS,
    )

    providers = providers if providers is not None else build_providers(settings)
    dispatcher = ProviderDispatcher(
        providers,
        RetryPolicy(
            max_attempts=settings.PROVIDER_MAX_RETRIES,
            base_delay_ms=settings.PROVIDER_RETRY_BASE_DELAY_MS,
            max_delay_ms=settings.PROVIDER_RETRY_MAX_DELAY_MS,
        ),
        timeout_ms=settings.PROVIDER_TIMEOUT_MS,
    )
    coordinator = BatchCoordinator(
        dispatcher,
        cache,
        cache_ttl_seconds=settings.CACHE_TTL_SECONDS,
        max_units_per_call=settings.PROVIDER_MAX_UNITS_PER_CALL,
        request_timeout_ms=settings.REQUEST_TIMEOUT_MS,
    )

    if speech is None:
        speech = create_speech_service(settings)

    logger.info(
        f"Gateway built: providers={[p.provider_id for p in providers]} cache={settings.CACHE_BACKEND} "
        f"rate_limit={settings.RATE_LIMIT_BACKEND} auth={settings.AUTH_BACKEND} speech={settings.SPEECH_BACKEND}"
    )
    return Gateway(
        authenticator=authenticator,
        rate_limiter=rate_limiter,
        coordinator=coordinator,
        languages=LanguageService(dispatcher),
        cache=cache,
        providers=providers,
        speech=speech,
        redis=redis_client,
        engine=engine,
    )
