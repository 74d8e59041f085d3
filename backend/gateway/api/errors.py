"""
Error handlers mapping the gateway error taxonomy to JSON responses.

Every error body has the shape ``{"error": {"kind": ..., "message": ..., ...}}``.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gateway.services.core.exceptions import GatewayError, InvalidRequestError

logger = logging.getLogger(__name__)


def _error_response(exc: GatewayError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.to_dict()},
        headers=exc.headers,
    )


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.message}")
    return _error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {"loc": (), "msg": "invalid request"}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "header", "form")]
    field = ".".join(loc) or "body"
    return _error_response(InvalidRequestError(field, first.get("msg", "invalid value")))


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
