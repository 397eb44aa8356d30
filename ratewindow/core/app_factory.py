from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (lifespan, middleware, handlers, routers) so
tests can build isolated instances.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ratewindow.api.routes import health_router, quota_router
from ratewindow.core.config import settings
from ratewindow.core.exception_handlers import setup_exception_handlers
from ratewindow.core.logging import configure_logging
from ratewindow.core.middleware import request_id_middleware
from ratewindow.core.rate_limit import close_rate_limiter, get_rate_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the limiter at startup and release the store on shutdown.

    Building eagerly makes an invalid limit or window fail the startup
    instead of the first request.
    """
    limiter = await get_rate_limiter()
    reachable = await limiter.store.ping()
    logger.info(
        "app.startup",
        extra={
            "app_env": settings.app_env,
            "store_backend": limiter.store.backend,
            "store_reachable": reachable,
        },
    )
    try:
        yield
    finally:
        await close_rate_limiter()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="ratewindow",
        description=(
            "Distributed sliding-window rate limiting backed by Redis. "
            "Rate-limited routes report X-RateLimit-Limit and "
            "X-RateLimit-Remaining and answer 429 once the quota is spent."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(quota_router, prefix="/v1")
    app.include_router(health_router)

    return app
