from .cache import BatchEntry, CacheStats, CacheStore

__all__ = [
    "BatchEntry",
    "CacheStats",
    "CacheStore",
]
