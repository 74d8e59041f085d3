from typing import Optional
import logging

from fastapi import Depends, Header, Request, Response

from gateway.services.container import Gateway
from gateway.services.core.types import Identity, RateLimitDecision

logger = logging.getLogger(__name__)


def get_gateway(request: Request) -> Gateway:
    """
    Dependency returning the gateway container built at startup.
    """
    return request.app.state.gateway


async def get_identity(
    authorization: Optional[str] = Header(None),
    gateway: Gateway = Depends(get_gateway),
) -> Identity:
    """
    Authenticate the bearer credential.
    Raises UnauthorizedError (401) or ForbiddenError (403).
    """
    return await gateway.authenticator.authenticate(authorization)


def rate_limit_headers(decision: RateLimitDecision) -> dict:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }


async def admit_request(
    request: Request,
    response: Response,
    identity: Identity = Depends(get_identity),
    gateway: Gateway = Depends(get_gateway),
) -> Identity:
    """
    Authenticate, then charge one request against the caller's window.
    Raises RateLimitedError (429) when the window is exhausted.
    """
    decision = await gateway.rate_limiter.admit(identity)
    request.state.rate_limit = decision
    response.headers.update(rate_limit_headers(decision))
    return identity
