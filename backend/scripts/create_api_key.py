"""
Issue or revoke gateway credentials.

Usage:
    python scripts/create_api_key.py <name>
    python scripts/create_api_key.py --revoke <key_prefix>
    python scripts/create_api_key.py --jwt <subject>

API keys live in the api_keys table (AUTH_BACKEND=api_key). JWTs are signed
with JWT_SECRET_KEY and expire after JWT_EXP_DAYS (AUTH_BACKEND=jwt).
"""
import asyncio
import sys
import os
from datetime import datetime, timedelta, UTC

# Add backend to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from gateway.config.settings import Settings, settings
from gateway.models.api_key import ApiKey
from gateway.models.database import create_engine, create_session_factory, init_db
from gateway.services.auth import api_key_prefix, create_access_token, generate_api_key, hash_api_key


async def create_api_key(name: str):
    engine = create_engine(settings.DATABASE_URL)
    try:
        await init_db(engine)
        raw_key = generate_api_key()
        async with create_session_factory(engine)() as session:
            session.add(ApiKey(
                name=name,
                key_prefix=api_key_prefix(raw_key),
                key_hash=hash_api_key(raw_key),
            ))
            await session.commit()
    finally:
        await engine.dispose()

    print(f"✅ API key created for '{name}'")
    print(f"\n    {raw_key}\n")
    print("Store it now; only its hash is kept.")


async def revoke_api_key(prefix: str):
    engine = create_engine(settings.DATABASE_URL)
    try:
        async with create_session_factory(engine)() as session:
            result = await session.execute(
                select(ApiKey).where(ApiKey.key_prefix == prefix, ApiKey.is_active.is_(True))
            )
            keys = result.scalars().all()
            if not keys:
                print(f"❌ No active key with prefix '{prefix}'")
                return
            for key in keys:
                key.revoke()
            await session.commit()
    finally:
        await engine.dispose()

    print(f"✅ Revoked {len(keys)} key(s) at {datetime.now(UTC).isoformat()}")


def issue_access_token(subject: str, config: Settings = settings) -> str:
    return create_access_token(
        subject,
        config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
        expires_delta=timedelta(days=config.JWT_EXP_DAYS),
    )


if __name__ == "__main__":
    if len(sys.argv) == 3 and sys.argv[1] == "--revoke":
        asyncio.run(revoke_api_key(sys.argv[2]))
    elif len(sys.argv) == 3 and sys.argv[1] == "--jwt":
        print(f"✅ JWT for '{sys.argv[2]}' (valid {settings.JWT_EXP_DAYS} days)")
        print(f"\n    {issue_access_token(sys.argv[2])}\n")
    elif len(sys.argv) == 2:
        asyncio.run(create_api_key(sys.argv[1]))
    else:
        print(__doc__)
        sys.exit(1)
