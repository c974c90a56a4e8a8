"""
Exception Module

Structured exception hierarchy for the cache layer.

Module Structure:
-----------------
- **base.py**: TagCacheError base class + ConfigurationError
- **cache.py**: Backing-store, operation and serialization errors

Usage:
------
```python
from tagcache.core.exceptions import CacheConnectionError, TagCacheError
```
"""

from tagcache.core.exceptions.base import ConfigurationError, TagCacheError
from tagcache.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheOperationError,
    CacheSerializationError,
)

__all__ = [
    # Base
    "TagCacheError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheOperationError",
    "CacheSerializationError",
]
