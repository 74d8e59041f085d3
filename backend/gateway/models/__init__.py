"""
Database Models Package

SQLAlchemy models for the translation gateway.

Tables:
1. api_keys - Hashed API keys resolved by the SQL credential store
"""

from .database import (
    Base,
    create_engine,
    create_session_factory,
    init_db,
)

from .api_key import ApiKey

__all__ = [
    # Database utilities
    "Base",
    "create_engine",
    "create_session_factory",
    "init_db",

    # Models
    "ApiKey",
]
