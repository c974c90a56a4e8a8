"""
In-Process Cache Store

Single-process fallback used when no backing store is configured or it
cannot be reached. State lives in this process only: tag invalidation here
does not reach other workers.

Implementation Details:
- OrderedDict of key -> (serialized text, expires_at) for LRU ordering
- Lazy expiry: an expired entry reads as absent and is removed on access
- Bounded: the least recently used entry is evicted past max_entries
- Values are stored as serialized text, so callers cannot mutate a cached
  copy through a reference they still hold
"""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

from tagcache.core.config.constants import DEFAULT_TTL, LOCAL_STORE_MAX_ENTRIES, StoreBackend
from tagcache.core.exceptions import CacheError
from tagcache.core.interfaces.cache import BatchEntry, CacheStats
from tagcache.core.logging.logger import get_logger, log_stage
from tagcache.infrastructure.cache.serializer import ValueSerializer
from tagcache.infrastructure.cache.stats import StatsCollector
from tagcache.infrastructure.cache.tag_index import MemoryTagIndex, tag_name
from tagcache.infrastructure.cache.ttl_policy import resolve_ttl

logger = get_logger(__name__)


class LocalStore:
    """
    CacheStore over an in-memory LRU map.

    Args:
        max_entries: LRU bound
        default_ttl: TTL used when a caller passes none
        clock: Monotonic seconds source (tests inject a manual clock)
        stats: Shared hit/miss collector
    """

    backend = StoreBackend.MEMORY.value

    def __init__(
        self,
        max_entries: int = LOCAL_STORE_MAX_ENTRIES,
        default_ttl: int = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
        stats: StatsCollector | None = None,
    ):
        self._max_entries = max(1, max_entries)
        self._default_ttl = default_ttl
        self._clock = clock
        self._stats = stats or StatsCollector()
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()
        self._tags = MemoryTagIndex(clock)
        self._lock = asyncio.Lock()

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            value = self._read(key)
        self._stats.record(key, value is not None)
        return value

    async def mget(self, keys: Sequence[str]) -> list[Any | None]:
        async with self._lock:
            values = [self._read(key) for key in keys]
        for key, value in zip(keys, values):
            self._stats.record(key, value is not None)
        return values

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live_text(key) is not None

    # =========================================================================
    # Writes
    # =========================================================================

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Sequence[str | Enum] = (),
    ) -> None:
        await self.mset([BatchEntry(key=key, value=value, ttl=ttl, tags=tuple(tags))])

    async def mset(self, entries: Sequence[BatchEntry]) -> None:
        async with self._lock:
            for entry in entries:
                try:
                    text = ValueSerializer.serialize(entry.value)
                except CacheError as e:
                    log_stage(
                        logger,
                        "CACHE.DEGRADED",
                        "Value not serializable, write dropped",
                        level="warning",
                        cache_key=entry.key,
                        error=str(e),
                    )
                    continue

                ttl = resolve_ttl(entry.ttl, self._default_ttl, entry.key)
                self._write(entry.key, text, ttl)
                if entry.tags:
                    self._tags.add(entry.key, entry.tags, ttl)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def expire(self, key: str, ttl: int) -> bool:
        ttl = resolve_ttl(ttl, self._default_ttl, key)
        async with self._lock:
            text = self._live_text(key)
            if text is None:
                return False
            self._entries[key] = (text, self._clock() + ttl)
            return True

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._tags.clear()

    # =========================================================================
    # Tags
    # =========================================================================

    async def invalidate_by_tag(self, tag: str | Enum) -> int:
        async with self._lock:
            members = self._tags.members(tag)
            for member in members:
                self._entries.pop(member, None)
            self._tags.drop(tag)

        log_stage(
            logger, "CACHE.TAG", "Tag invalidated", tag=tag_name(tag), key_count=len(members)
        )
        return len(members)

    async def prune_tag(self, tag: str | Enum) -> int:
        async with self._lock:
            return self._tags.prune_tag(tag, lambda key: self._live_text(key) is not None)

    # =========================================================================
    # Introspection and lifecycle
    # =========================================================================

    async def get_stats(self) -> CacheStats:
        return self._stats.snapshot()

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "backend": self.backend,
            "entries": len(self._entries),
            "max_entries": self._max_entries,
        }

    async def close(self) -> None:
        return None

    def get_size(self) -> int:
        """Number of stored entries, including expired ones not yet evicted."""
        return len(self._entries)

    # =========================================================================
    # Helpers (caller holds the lock)
    # =========================================================================

    def _live_text(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        text, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return text

    def _read(self, key: str) -> Any | None:
        text = self._live_text(key)
        if text is None:
            return None
        try:
            return ValueSerializer.deserialize(text)
        except CacheError:
            self._entries.pop(key, None)
            return None

    def _write(self, key: str, text: str, ttl: int) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (text, self._clock() + ttl)

        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            log_stage(logger, "CACHE.EVICT", "LRU eviction", level="debug", cache_key=evicted)
