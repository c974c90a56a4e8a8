"""
Cache Module

Provides the tagged cache stores (Redis-backed and in-process), store
selection with automatic fallback, and the cache-aside orchestrator.
"""

from .factory import connect_store, create_store
from .local_store import LocalStore
from .orchestrator import CacheAsideOrchestrator
from .remote_store import RemoteStore
from .serializer import CacheCodec, JsonCodec, ModelCodec, ValueSerializer
from .stats import StatsCollector

__all__ = [
    "CacheAsideOrchestrator",
    "CacheCodec",
    "JsonCodec",
    "LocalStore",
    "ModelCodec",
    "RemoteStore",
    "StatsCollector",
    "ValueSerializer",
    "connect_store",
    "create_store",
]
