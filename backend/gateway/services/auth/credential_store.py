"""
Credential Stores

Resolve a raw bearer credential to an Identity. A store returns None for a
credential it does not recognize and raises CredentialStoreError when its
backing store fails; the Authenticator turns both into a 403.

Implementations:
- StaticCredentialStore: keys from configuration (hashed in memory)
- SqlCredentialStore: hashed keys in the ``api_keys`` table
- JwtCredentialStore: signed JWTs whose ``sub`` claim names the caller
"""
import hmac
import logging
from typing import Iterable, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gateway.models.api_key import ApiKey
from gateway.services.auth.tokens import decode_token, hash_api_key
from gateway.services.core.exceptions import CredentialStoreError
from gateway.services.core.types import Identity

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    async def resolve(self, credential: str) -> Optional[Identity]:
        """Return the Identity for a credential, or None if unknown."""
        ...


class StaticCredentialStore:
    """API keys supplied through configuration (STATIC_API_KEYS)."""

    def __init__(self, api_keys: Iterable[str]):
        self._hashes = [hash_api_key(key) for key in api_keys]

    async def resolve(self, credential: str) -> Optional[Identity]:
        candidate = hash_api_key(credential)
        matched = False
        # Compare against every hash so timing does not reveal the position
        for known in self._hashes:
            if hmac.compare_digest(candidate, known):
                matched = True
        if not matched:
            return None
        return Identity(subject=candidate[:16], kind="api_key")


class SqlCredentialStore:
    """API keys stored hashed in the ``api_keys`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def resolve(self, credential: str) -> Optional[Identity]:
        key_hash = hash_api_key(credential)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ApiKey).where(ApiKey.key_hash == key_hash, ApiKey.is_active.is_(True))
                )
                api_key = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"API key lookup failed: {e}")
            raise CredentialStoreError("API key store unavailable") from e

        if api_key is None:
            return None
        return Identity(subject=api_key.id, kind="api_key", name=api_key.name)


class JwtCredentialStore:
    """Signed bearer tokens; the ``sub`` claim is the caller identity."""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self._secret_key = secret_key
        self._algorithm = algorithm

    async def resolve(self, credential: str) -> Optional[Identity]:
        payload = decode_token(credential, self._secret_key, self._algorithm)
        if not payload or not payload.get("sub"):
            return None
        return Identity(subject=str(payload["sub"]), kind="jwt")
