"""
Application Services Package

Business-facing services used by API routes and by the host application.
"""

from tagcache.application.services.cache_service import (
    CacheEntity,
    CacheService,
    close_cache_service,
    get_cache_service,
    init_cache_service,
    reset_cache_service,
)

__all__ = [
    "CacheEntity",
    "CacheService",
    "close_cache_service",
    "get_cache_service",
    "init_cache_service",
    "reset_cache_service",
]
