"""
API Key Model - Gateway credentials

Purpose: Resolve bearer API keys to caller identities

Key Fields:
- `key_hash`: SHA-256 hex digest of the raw key; the raw key is never stored
- `key_prefix`: first characters of the raw key, for display and support
- `is_active`: revoked keys stay in the table with is_active = FALSE
"""
from sqlalchemy import Column, String, DateTime, Boolean
from datetime import datetime
import uuid

from .database import Base


class ApiKey(Base):
    """Hashed API key issued to a gateway client"""
    __tablename__ = "api_keys"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    key_prefix = Column(String(12), nullable=False)
    key_hash = Column(String(64), unique=True, nullable=False, index=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    def revoke(self):
        """Deactivate the key"""
        self.is_active = False
        self.revoked_at = datetime.utcnow()

    def to_dict(self):
        """Convert to dictionary (never includes the hash)"""
        return {
            "id": self.id,
            "name": self.name,
            "key_prefix": self.key_prefix,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "revoked_at": self.revoked_at.isoformat() if self.revoked_at else None,
        }

    def __repr__(self):
        return f"<ApiKey {self.name} {self.key_prefix}...>"
