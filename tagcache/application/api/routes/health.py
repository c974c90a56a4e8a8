"""
Health Routes

GET /health/cache reports which store is active and whether it answers.
A degraded (in-process) cache is still healthy: requests keep being served.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from tagcache.application.api.dependencies import CacheServiceDep
from tagcache.application.api.models.admin import CacheHealthResponse

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("/cache", response_model=CacheHealthResponse)
async def cache_health(cache: CacheServiceDep):
    """
    Cache health check.

    Returns 200 when the active store is healthy, 503 otherwise.
    """
    health = await cache.health_check()
    details = {k: v for k, v in health.items() if k not in ("status", "backend", "degraded")}

    response = CacheHealthResponse(
        status=health.get("status", "unhealthy"),
        backend=health.get("backend", cache.backend),
        degraded=cache.degraded,
        timestamp=datetime.now(timezone.utc).isoformat(),
        details=details,
    )

    if response.status != "healthy":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=response.model_dump()
        )
    return response
