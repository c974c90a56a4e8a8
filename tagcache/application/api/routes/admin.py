"""
Admin Routes

Operational cache endpoints, all behind the admin bearer token:

- GET  /admin/cache/stats  hit/miss counters
- POST /admin/cache/clear  invalidate a cached scope by tag
"""

from fastapi import APIRouter, Depends, status

from tagcache.application.api.dependencies import CacheServiceDep, verify_admin_access
from tagcache.application.api.models.admin import (
    CacheStatsResponse,
    ClearCacheRequest,
    ClearCacheResponse,
    ClearCacheType,
)
from tagcache.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)

router = APIRouter(
    prefix="/admin/cache",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_access)],
)


@router.get("/stats", response_model=CacheStatsResponse, status_code=status.HTTP_200_OK)
async def get_cache_statistics(cache: CacheServiceDep):
    """Hit/miss counters of the active store."""
    stats = await cache.get_stats()
    return CacheStatsResponse(backend=cache.backend, **stats.to_dict())


@router.post("/clear", response_model=ClearCacheResponse, status_code=status.HTTP_200_OK)
async def clear_cache(body: ClearCacheRequest, cache: CacheServiceDep):
    """
    Invalidate a cached scope.

    products -> PRODUCTS tag
    search -> SEARCH tag
    conversations -> CONVERSATIONS tag
    all -> PRODUCTS and SEARCH tags
    """
    invalidated = 0

    if body.type in (ClearCacheType.PRODUCTS, ClearCacheType.ALL):
        invalidated += await cache.invalidate_all_products()
    if body.type in (ClearCacheType.SEARCH, ClearCacheType.ALL):
        invalidated += await cache.invalidate_search_results()
    if body.type is ClearCacheType.CONVERSATIONS:
        invalidated += await cache.invalidate_conversations()

    log_stage(
        logger,
        "ADMIN.CLEAR",
        "Cache scope cleared",
        scope=body.type.value,
        invalidated_keys=invalidated,
    )
    return ClearCacheResponse(
        message=f"Cache cleared: {body.type.value}",
        invalidated_keys=invalidated,
    )
