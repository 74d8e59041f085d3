"""
Authenticator - bearer credential gate in front of every API route.

Flow:
1. Parse ``Authorization: Bearer <token>``; missing or malformed -> 401
2. Resolve the token through the configured CredentialStore, bounded by a
   timeout; unknown, timed out or failed lookups -> 403 (fail closed)
3. Emit an audit record and return the Identity for this request
"""
import asyncio
import logging
from typing import Optional

from gateway.services import metrics
from gateway.services.auth.credential_store import CredentialStore
from gateway.services.core.exceptions import CredentialStoreError, ForbiddenError, UnauthorizedError
from gateway.services.core.types import Identity

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("gateway.audit")


def parse_bearer(authorization: Optional[str]) -> str:
    """Extract the token from an Authorization header value."""
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("Authorization header must be 'Bearer <token>'")
    return token


class Authenticator:
    """Validates bearer credentials against a CredentialStore."""

    def __init__(self, store: CredentialStore, timeout_ms: int = 500):
        self._store = store
        self._timeout = timeout_ms / 1000.0

    async def authenticate(self, authorization: Optional[str]) -> Identity:
        """
        Authenticate a request.

        Args:
            authorization: Raw Authorization header value

        Returns:
            Identity of the caller

        Raises:
            UnauthorizedError: no bearer credential present
            ForbiddenError: credential unknown, or the store timed out / failed
        """
        try:
            token = parse_bearer(authorization)
        except UnauthorizedError:
            metrics.auth_outcomes.labels(outcome="missing").inc()
            raise

        try:
            identity = await asyncio.wait_for(self._store.resolve(token), timeout=self._timeout)
        except asyncio.TimeoutError:
            metrics.auth_outcomes.labels(outcome="timeout").inc()
            audit_logger.warning("auth rejected: credential store timed out")
            raise ForbiddenError("Credential check timed out")
        except CredentialStoreError:
            metrics.auth_outcomes.labels(outcome="error").inc()
            audit_logger.warning("auth rejected: credential store unavailable")
            raise ForbiddenError("Credential check failed")

        if identity is None:
            metrics.auth_outcomes.labels(outcome="invalid").inc()
            audit_logger.info("auth rejected: unknown credential")
            raise ForbiddenError("Invalid credential")

        metrics.auth_outcomes.labels(outcome="ok").inc()
        audit_logger.info(f"auth ok: {identity.kind}:{identity.subject}")
        return identity
