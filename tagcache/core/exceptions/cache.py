"""
Cache-Related Exceptions

Raised inside the cache layer and caught at the store/facade boundary, where
they are downgraded to a miss or a no-op.
"""

from tagcache.core.exceptions.base import TagCacheError


class CacheError(TagCacheError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when the backing store cannot be reached.

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Wrong endpoint URL
    - Rejected access token
    """
    pass


class CacheOperationError(CacheError):
    """
    Raised when a backing-store command fails after retries are exhausted.
    """
    pass


class CacheSerializationError(CacheError):
    """
    Raised when a value cannot be encoded for storage, or a stored value
    cannot be decoded back.
    """
    pass
