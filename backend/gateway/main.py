"""
Translation Gateway - Main Application

This is the entry point for the FastAPI application.
It handles:
- REST API endpoints (translate, detect, languages, speech)
- Gateway container lifecycle (providers, cache, rate limiter, credential store)
- Prometheus metrics server
"""
from contextlib import asynccontextmanager
import logging
import time
from datetime import datetime, UTC
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from gateway.api import router as api_router
from gateway.api.errors import register_exception_handlers
from gateway.config.settings import Settings, get_settings
from gateway.models.database import init_db
from gateway.services import metrics
from gateway.services.container import Gateway, build_gateway

# Configure logging
logging.basicConfig(level=get_settings().LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

# Metric label for requests that match no route
UNMATCHED_ROUTE_LABEL = "unmatched"


def create_app(settings: Optional[Settings] = None, gateway: Optional[Gateway] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use (defaults to environment settings)
        gateway: Pre-built gateway container (tests); built from settings otherwise
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Handles startup and shutdown events using the modern FastAPI pattern.
        """
        # === STARTUP ===
        logger.info("🚀 Starting Translation Gateway...")

        if app.state.gateway is None:
            app.state.gateway = build_gateway(settings)
        current: Gateway = app.state.gateway
        logger.info("✅ Gateway services ready")

        if current.engine is not None:
            await init_db(current.engine)
            logger.info("✅ Credential tables created")

        if settings.METRICS_ENABLED:
            metrics.start_metrics_server(settings.METRICS_PORT)

        yield  # Application runs here

        # === SHUTDOWN ===
        logger.info("🛑 Shutting down...")
        await current.aclose()

    app = FastAPI(
        title="Translation Gateway",
        description="Batched, cached text translation across pluggable providers",
        version="1.0.0",
        debug=settings.DEBUG,
        lifespan=lifespan
    )
    app.state.gateway = gateway

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def count_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", UNMATCHED_ROUTE_LABEL)
        metrics.requests_total.labels(endpoint, str(response.status_code)).inc()
        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({(time.perf_counter() - started) * 1000:.1f} ms)"
        )
        return response

    register_exception_handlers(app)

    # Include REST API routes
    app.include_router(api_router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Translation Gateway",
            "version": "1.0.0",
            "status": "running"
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=get_settings().API_HOST, port=get_settings().API_PORT)
