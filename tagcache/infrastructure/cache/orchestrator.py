"""
Cache-Aside Orchestrator

Implements `remember`: read the store, and on a miss run the producer, write
its result with the given TTL and tags, then return it.

Algorithm:
    remember(key, producer, ttl, tags)
        1. store.get(key)            hit -> return (decoded)
        2. in-flight task for key?   yes -> await it
        3. run producer as a task, record it in the in-flight map
        4. store.set(key, result, ttl, tags)
        5. every waiter gets the same result; the map entry is removed

Single-flight is per process. Waiters await the shared task through
asyncio.shield, so a cancelled caller never cancels the computation other
callers are waiting on. A producer error reaches every waiter and nothing is
cached. With single_flight=False each miss runs its own producer.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import Any, TypeVar

from tagcache.core.exceptions import CacheError
from tagcache.core.interfaces.cache import BatchEntry, CacheStats, CacheStore
from tagcache.core.logging.logger import get_logger, log_stage
from tagcache.infrastructure.cache.serializer import CacheCodec

logger = get_logger(__name__)

T = TypeVar("T")

Producer = Callable[[], Awaitable[T] | T]


class CacheAsideOrchestrator:
    """
    Cache-aside reads over any CacheStore.

    Usage:
        orchestrator = CacheAsideOrchestrator(store)
        results = await orchestrator.remember(
            "search:shoes",
            lambda: search_index.query("shoes"),
            ttl=CacheTTL.SHORT,
            tags=[CacheTag.SEARCH],
        )
    """

    def __init__(self, store: CacheStore, single_flight: bool = True):
        self._store = store
        self._single_flight = single_flight
        self._in_flight: dict[str, asyncio.Task] = {}

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def backend(self) -> str:
        return self._store.backend

    @property
    def single_flight(self) -> bool:
        return self._single_flight

    def in_flight_count(self) -> int:
        return len(self._in_flight)

    # =========================================================================
    # Cache-aside
    # =========================================================================

    async def remember(
        self,
        key: str,
        producer: Producer,
        ttl: int | None = None,
        tags: Sequence[str | Enum] = (),
        codec: CacheCodec | None = None,
    ) -> Any:
        """
        Return the cached value for `key`, computing and caching it on a miss.

        Args:
            key: Cache key
            producer: Zero-argument callable, sync or async
            ttl: Seconds to live (None = store default)
            tags: Invalidation scopes for the written entry
            codec: Optional encode/decode pair for the value

        Raises:
            Whatever the producer raises; nothing is cached in that case
        """
        cached = await self.get(key, codec=codec)
        if cached is not None:
            return cached

        if not self._single_flight:
            return await self._produce(key, producer, ttl, tags, codec)

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._produce(key, producer, ttl, tags, codec))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            log_stage(logger, "CACHE.COALESCE", "Joined in-flight computation", level="debug", cache_key=key)

        return await asyncio.shield(task)

    async def _produce(
        self,
        key: str,
        producer: Producer,
        ttl: int | None,
        tags: Sequence[str | Enum],
        codec: CacheCodec | None,
    ) -> Any:
        result = producer()
        if inspect.isawaitable(result):
            result = await result

        if result is None:
            return None

        await self.set(key, result, ttl=ttl, tags=tags, codec=codec)
        return result

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Mark the error retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    # =========================================================================
    # Store passthroughs with optional codecs
    # =========================================================================

    async def get(self, key: str, codec: CacheCodec | None = None) -> Any | None:
        data = await self._store.get(key)
        if data is None or codec is None:
            return data
        return self._decode(key, data, codec)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Sequence[str | Enum] = (),
        codec: CacheCodec | None = None,
    ) -> None:
        data = self._encode(key, value, codec)
        if data is None:
            return
        await self._store.set(key, data, ttl=ttl, tags=tags)

    async def mget(self, keys: Sequence[str], codec: CacheCodec | None = None) -> list[Any | None]:
        values = await self._store.mget(keys)
        if codec is None:
            return values
        return [
            None if data is None else self._decode(key, data, codec)
            for key, data in zip(keys, values)
        ]

    async def mset(self, entries: Sequence[BatchEntry], codec: CacheCodec | None = None) -> None:
        if codec is not None:
            encoded = []
            for entry in entries:
                data = self._encode(entry.key, entry.value, codec)
                if data is not None:
                    encoded.append(BatchEntry(entry.key, data, entry.ttl, entry.tags))
            entries = encoded
        if entries:
            await self._store.mset(entries)

    async def delete(self, key: str) -> None:
        await self._store.delete(key)

    async def exists(self, key: str) -> bool:
        return await self._store.exists(key)

    async def expire(self, key: str, ttl: int) -> bool:
        return await self._store.expire(key, ttl)

    async def invalidate_by_tag(self, tag: str | Enum) -> int:
        return await self._store.invalidate_by_tag(tag)

    async def clear(self) -> None:
        await self._store.clear()

    async def get_stats(self) -> CacheStats:
        return await self._store.get_stats()

    async def health_check(self) -> dict[str, Any]:
        return await self._store.health_check()

    async def close(self) -> None:
        close = getattr(self._store, "close", None)
        if close is not None:
            await close()

    # =========================================================================
    # Codec helpers
    # =========================================================================

    @staticmethod
    def _decode(key: str, data: Any, codec: CacheCodec) -> Any | None:
        try:
            return codec.decode(data)
        except CacheError as e:
            log_stage(
                logger,
                "CACHE.DEGRADED",
                "Cached value failed to decode, treating as miss",
                level="warning",
                cache_key=key,
                error=e.message,
            )
            return None

    @staticmethod
    def _encode(key: str, value: Any, codec: CacheCodec | None) -> Any | None:
        if codec is None:
            return value
        try:
            return codec.encode(value)
        except (CacheError, ValueError, TypeError) as e:
            log_stage(
                logger,
                "CACHE.DEGRADED",
                "Value failed to encode, write dropped",
                level="warning",
                cache_key=key,
                error=str(e),
            )
            return None
