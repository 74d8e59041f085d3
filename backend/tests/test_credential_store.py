from datetime import datetime, timedelta, UTC

import pytest
from sqlalchemy.exc import OperationalError

from gateway.models import ApiKey
from gateway.services.auth import (
    JwtCredentialStore,
    SqlCredentialStore,
    api_key_prefix,
    decode_token,
    generate_api_key,
    hash_api_key,
)
from gateway.services.core.exceptions import CredentialStoreError

from helpers import make_settings


async def _add_key(session_factory, name: str, active: bool = True) -> tuple[str, ApiKey]:
    raw_key = generate_api_key()
    api_key = ApiKey(name=name, key_prefix=api_key_prefix(raw_key), key_hash=hash_api_key(raw_key))
    if not active:
        api_key.revoke()
    async with session_factory() as session:
        session.add(api_key)
        await session.commit()
    return raw_key, api_key


def test_generated_keys_are_unique_and_hashed():
    first, second = generate_api_key(), generate_api_key()
    assert first != second
    assert first.startswith("tg_")
    assert len(hash_api_key(first)) == 64
    assert hash_api_key(first) == hash_api_key(first)


@pytest.mark.asyncio
async def test_active_key_resolves(session_factory):
    raw_key, api_key = await _add_key(session_factory, "mobile app")
    store = SqlCredentialStore(session_factory)

    identity = await store.resolve(raw_key)
    assert identity.subject == api_key.id
    assert identity.name == "mobile app"
    assert await store.resolve("tg_unknown") is None


@pytest.mark.asyncio
async def test_revoked_key_does_not_resolve(session_factory):
    raw_key, api_key = await _add_key(session_factory, "old client", active=False)
    store = SqlCredentialStore(session_factory)

    assert await store.resolve(raw_key) is None
    assert api_key.to_dict()["revoked_at"] is not None
    assert "key_hash" not in api_key.to_dict()


@pytest.mark.asyncio
async def test_database_error_raises_store_error():
    class BrokenSession:
        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        async def execute(self, statement):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

    store = SqlCredentialStore(lambda: BrokenSession())
    with pytest.raises(CredentialStoreError):
        await store.resolve("tg_anything")


@pytest.mark.asyncio
async def test_issued_jwt_uses_configured_lifetime():
    from scripts.create_api_key import issue_access_token

    settings = make_settings(AUTH_BACKEND="jwt", JWT_SECRET_KEY="issuer-secret", JWT_EXP_DAYS=3)
    token = issue_access_token("client-9", settings)

    claims = decode_token(token, "issuer-secret")
    expected = datetime.now(UTC) + timedelta(days=3)
    assert abs(claims["exp"] - expected.timestamp()) < 60

    identity = await JwtCredentialStore("issuer-secret").resolve(token)
    assert identity.subject == "client-9"
