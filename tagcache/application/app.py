#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Exposes the cache health and admin endpoints. Host applications normally use
CacheService directly; this app is the operational surface around it.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tagcache.application.api.routes.admin import router as admin_router
from tagcache.application.api.routes.health import router as health_router
from tagcache.application.services.cache_service import close_cache_service, init_cache_service
from tagcache.core.config.settings import get_settings
from tagcache.core.exceptions import TagCacheError
from tagcache.core.logging.logger import get_logger, setup_logging

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).
    """
    settings = get_settings()

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting cache service",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    try:
        cache_service = await init_cache_service()
        app.state.cache_service = cache_service
        logger.info("Cache ready", backend=cache_service.backend, degraded=cache_service.degraded)

        yield

    finally:
        logger.info("Shutting down application")
        await close_cache_service()
        app.state.cache_service = None
        logger.info("Application shutdown complete")


# ============================================================================
# Exception Handlers
# ============================================================================


async def cache_exception_handler(request: Request, exc: TagCacheError):
    """Render cache-layer exceptions as a JSON error body."""
    logger.error(f"Cache exception: {exc.message}", error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content=exc.to_dict())


# ============================================================================
# Application Factory
# ============================================================================


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Tagged cache-aside layer: health and admin endpoints",
        lifespan=lifespan,
    )

    app.add_exception_handler(TagCacheError, cache_exception_handler)

    app.include_router(health_router)
    app.include_router(admin_router)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "health": "/health/cache",
        }

    return app


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        create_app(),
        host="0.0.0.0",
        port=8000,
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
