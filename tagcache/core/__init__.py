"""
Core Module

Foundational components: configuration, logging, exceptions, the cache store
contract and retry policy.
"""

from .exceptions import (
    CacheConnectionError,
    CacheError,
    CacheOperationError,
    CacheSerializationError,
    ConfigurationError,
    TagCacheError,
)
from .logging import get_logger, log_stage, setup_logging

__all__ = [
    "CacheConnectionError",
    "CacheError",
    "CacheOperationError",
    "CacheSerializationError",
    "ConfigurationError",
    "TagCacheError",
    "get_logger",
    "log_stage",
    "setup_logging",
]
