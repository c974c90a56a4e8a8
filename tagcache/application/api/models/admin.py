"""
Admin API Models

Request and response bodies for the cache admin and health endpoints.
"""

from enum import Enum

from pydantic import BaseModel, Field


class ClearCacheType(str, Enum):
    """
    Scopes the clear-cache endpoint can invalidate.

    ALL covers products and search results only; conversations are cleared
    by their own scope.
    """

    PRODUCTS = "products"
    SEARCH = "search"
    CONVERSATIONS = "conversations"
    ALL = "all"


class ClearCacheRequest(BaseModel):
    type: ClearCacheType = Field(..., description="Which cached scope to invalidate")


class ClearCacheResponse(BaseModel):
    success: bool = Field(default=True)
    message: str = Field(..., description="Human-readable summary")
    invalidated_keys: int = Field(default=0, ge=0, description="Member keys deleted")


class CacheStatsResponse(BaseModel):
    """Hit/miss counters since process start."""

    backend: str = Field(..., description="Active store: redis or memory")
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    hit_rate: float = Field(..., ge=0.0, le=1.0, description="hits / (hits + misses)")
    total_operations: int = Field(..., ge=0)


class CacheHealthResponse(BaseModel):
    status: str = Field(..., description="healthy or unhealthy")
    backend: str
    degraded: bool = Field(..., description="True when serving from the in-process fallback")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    details: dict = Field(default_factory=dict)
