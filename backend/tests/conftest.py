import os
import sys
from pathlib import Path

import pytest

# Add backend/ (1 level up from tests/) to sys.path so tests can import 'gateway'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

# Settings are read at import time; keep tests off Postgres, Redis and GCP
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_BACKEND", "static")
os.environ.setdefault("STATIC_API_KEYS", "test-key")
os.environ.setdefault("PROVIDERS", "self_hosted")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("SPEECH_BACKEND", "none")
os.environ.setdefault("METRICS_ENABLED", "false")

from sqlalchemy.ext.asyncio import create_async_engine

from gateway.models.database import Base, create_session_factory
from gateway.services.cache import InMemoryTranslationMemory

from helpers import StubProvider


@pytest.fixture
async def sql_engine():
    """In-memory SQLite engine with the credential tables created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sql_engine):
    return create_session_factory(sql_engine)


@pytest.fixture
def memory_cache():
    return InMemoryTranslationMemory(max_entries=100)


@pytest.fixture
def stub_provider():
    return StubProvider()
