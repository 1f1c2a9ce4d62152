from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated apps with their own rate limiter.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from quotagate.api.routes import demo_router, health_router
from quotagate.core.config import settings
from quotagate.core.exception_handlers import setup_exception_handlers
from quotagate.core.logging import configure_logging
from quotagate.core.middleware import request_id_middleware
from quotagate.core.openapi import apply_openapi_customizations
from quotagate.core.rate_limit import build_rate_limiter, rate_limit_middleware
from quotagate.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the limiter at startup (unless injected) and close its store."""

    owned = getattr(app.state, "rate_limiter", None) is None
    if owned:
        # Fails startup when Redis is unreachable
        app.state.rate_limiter = build_rate_limiter(settings)
    try:
        yield
    finally:
        if owned:
            app.state.rate_limiter.store.close()
            app.state.rate_limiter = None
            logger.info("rate_limiter.closed")


def create_app(rate_limiter: RateLimiter | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Pre-built limiter (tests). When omitted, one is built
            from settings during startup.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="quotagate",
        description=(
            "HTTP service protected by a fixed-window rate limiter. Callers are "
            "limited by IP unless they send an API token with its own policy. "
            "Every response carries X-RateLimit-* headers; callers over quota "
            "get 429 and stay blocked for the configured block time."
        ),
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.state.rate_limiter = rate_limiter

    # Middleware: the last registered runs first, so request ids cover the limiter
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(demo_router)

    apply_openapi_customizations(app)

    return app
