"""
API Models Package

Pydantic request/response models for the cache admin endpoints.
"""

from tagcache.application.api.models.admin import (
    CacheHealthResponse,
    CacheStatsResponse,
    ClearCacheRequest,
    ClearCacheResponse,
    ClearCacheType,
)

__all__ = [
    "CacheHealthResponse",
    "CacheStatsResponse",
    "ClearCacheRequest",
    "ClearCacheResponse",
    "ClearCacheType",
]
