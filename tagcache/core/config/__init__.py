"""
Configuration Module

Centralized, type-safe configuration for the cache layer.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: TTL tiers, tag taxonomy, key prefixes and retry defaults

Usage:
------
```python
from tagcache.core.config import CacheTag, CacheTTL, get_settings

settings = get_settings()
url = settings.redis.CACHE_REDIS_URL

ttl = CacheTTL.LONG  # 1800
tag = CacheTag.PRODUCTS  # "products"
```

Testing:
-------
```python
import os
from tagcache.core.config import reload_settings

os.environ["CACHE_REDIS_URL"] = "redis://localhost:6379/0"
settings = reload_settings()
```
"""

from tagcache.core.config.constants import (
    DEFAULT_TTL,
    LOCAL_STORE_MAX_ENTRIES,
    MIN_TTL_SECONDS,
    RETRY_ATTEMPTS,
    RETRY_BASE_DELAY,
    RETRY_DELAY_INCREMENT,
    TAG_KEY_PREFIX,
    TAG_SET_TTL,
    CacheTag,
    CacheTTL,
    StoreBackend,
)
from tagcache.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "reload_settings",
    # Enums
    "CacheTTL",
    "CacheTag",
    "StoreBackend",
    # Constants
    "DEFAULT_TTL",
    "LOCAL_STORE_MAX_ENTRIES",
    "MIN_TTL_SECONDS",
    "RETRY_ATTEMPTS",
    "RETRY_BASE_DELAY",
    "RETRY_DELAY_INCREMENT",
    "TAG_KEY_PREFIX",
    "TAG_SET_TTL",
]
