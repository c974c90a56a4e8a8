"""
Redis-backed Cache Store

The canonical store, shared by every application process.

Command mapping:
    get               GET
    set               pipeline: SET key value EX ttl, then SADD + EXPIRE NX/GT per tag
    delete            DEL
    exists / expire   EXISTS / EXPIRE
    mget              MGET
    mset              one pipeline for every entry and its tags
    invalidate_by_tag SMEMBERS tag:{tag}, then DEL members... tag:{tag}
    clear             FLUSHDB

Failure Handling:
    Every command runs under the RetryPolicy. Whatever the client raises once
    the budget is spent (or at once, for a non-transient error) is wrapped in
    CacheOperationError and the operation degrades: reads return a miss,
    writes are dropped, and a warning is logged. Nothing in this class raises
    to its caller.

invalidate_by_tag is not atomic: a `set` racing with it can register a member
after SMEMBERS ran, and that entry survives this pass. Its own TTL still
bounds how stale it can get.
"""

import time
from collections.abc import Sequence
from enum import Enum
from typing import Any

import redis.asyncio as redis
from tagcache.core.config.constants import DEFAULT_TTL, StoreBackend
from tagcache.core.exceptions import CacheError, CacheOperationError
from tagcache.core.interfaces.cache import BatchEntry, CacheStats
from tagcache.core.logging.logger import get_logger, log_stage
from tagcache.core.resilience.retry import RetryPolicy
from tagcache.infrastructure.cache.serializer import ValueSerializer
from tagcache.infrastructure.cache.stats import StatsCollector
from tagcache.infrastructure.cache.tag_index import RedisTagIndex, tag_name
from tagcache.infrastructure.cache.ttl_policy import resolve_ttl

logger = get_logger(__name__)

class RemoteStore:
    """
    CacheStore over an async Redis client.

    Usage:
        client = build_redis_client(settings)
        store = RemoteStore(client, retry_policy=RetryPolicy(attempts=3))
        await store.set("product:42", {"id": "42"}, ttl=1800, tags=["products"])
    """

    backend = StoreBackend.REDIS.value

    def __init__(
        self,
        client: redis.Redis,
        retry_policy: RetryPolicy | None = None,
        stats: StatsCollector | None = None,
        default_ttl: int = DEFAULT_TTL,
    ):
        self._client = client
        self._retry = retry_policy or RetryPolicy()
        self._stats = stats or StatsCollector()
        self._default_ttl = default_ttl
        self._tags = RedisTagIndex(client)

    @property
    def client(self) -> redis.Redis:
        return self._client

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._call("GET", self._client.get, key)
        except CacheError as e:
            self._degraded("GET", e, cache_key=key)
            self._stats.record_miss(key)
            return None

        value = self._decode(key, raw)
        self._stats.record(key, value is not None)
        return value

    async def mget(self, keys: Sequence[str]) -> list[Any | None]:
        keys = list(keys)
        if not keys:
            return []

        try:
            raws = await self._call("MGET", self._client.mget, keys)
        except CacheError as e:
            self._degraded("MGET", e, key_count=len(keys))
            raws = [None] * len(keys)

        values = []
        for key, raw in zip(keys, raws):
            value = self._decode(key, raw)
            self._stats.record(key, value is not None)
            values.append(value)
        return values

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._call("EXISTS", self._client.exists, key))
        except CacheError as e:
            self._degraded("EXISTS", e, cache_key=key)
            return False

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
        """
        Write every entry and its tag memberships in one pipeline.

        Entries whose value cannot be serialized are skipped; the rest of the
        batch is still written.
        """
        writes = []
        for entry in entries:
            try:
                text = ValueSerializer.serialize(entry.value)
            except CacheError as e:
                self._degraded("SET", e, cache_key=entry.key)
                continue
            ttl = resolve_ttl(entry.ttl, self._default_ttl, entry.key)
            writes.append((entry.key, text, ttl, tuple(entry.tags)))

        if not writes:
            return

        async def _execute() -> None:
            pipe = self._client.pipeline(transaction=False)
            for key, text, ttl, tags in writes:
                pipe.set(key, text, ex=ttl)
                self._tags.queue_add(pipe, key, tags, ttl)
            await pipe.execute()

        operation = "SET" if len(writes) == 1 else "MSET"
        try:
            await self._call(operation, _execute)
        except CacheError as e:
            self._degraded(operation, e, key_count=len(writes))
            return

        log_stage(
            logger,
            "CACHE.SET",
            "Cache write",
            level="debug",
            cache_key=writes[0][0],
            key_count=len(writes),
        )

    async def delete(self, key: str) -> None:
        try:
            await self._call("DEL", self._client.delete, key)
        except CacheError as e:
            self._degraded("DEL", e, cache_key=key)

    async def expire(self, key: str, ttl: int) -> bool:
        ttl = resolve_ttl(ttl, self._default_ttl, key)
        try:
            return bool(await self._call("EXPIRE", self._client.expire, key, ttl))
        except CacheError as e:
            self._degraded("EXPIRE", e, cache_key=key)
            return False

    async def clear(self) -> None:
        try:
            await self._call("FLUSHDB", self._client.flushdb)
        except CacheError as e:
            self._degraded("FLUSHDB", e)
            return
        log_stage(logger, "CACHE.CLEAR", "Remote cache cleared", level="warning")

    # =========================================================================
    # Tags
    # =========================================================================

    async def invalidate_by_tag(self, tag: str | Enum) -> int:
        """
        Delete every key registered under `tag`, then the tag set.

        Members that already expired are harmless: DEL ignores missing keys.
        """
        try:
            members = await self._call("SMEMBERS", self._tags.members, tag)
            await self._call("DEL", self._tags.drop, tag, members)
        except CacheError as e:
            self._degraded("INVALIDATE", e, tag=tag_name(tag))
            return 0

        log_stage(
            logger, "CACHE.TAG", "Tag invalidated", tag=tag_name(tag), key_count=len(members)
        )
        return len(members)

    async def prune_tag(self, tag: str | Enum) -> int:
        """Drop members whose keys have expired. Maintenance only."""
        try:
            removed = await self._call("PRUNE", self._tags.prune_tag, tag)
        except CacheError as e:
            self._degraded("PRUNE", e, tag=tag_name(tag))
            return 0

        log_stage(logger, "CACHE.TAG", "Tag pruned", tag=tag_name(tag), removed=removed)
        return removed

    # =========================================================================
    # Introspection and lifecycle
    # =========================================================================

    async def get_stats(self) -> CacheStats:
        return self._stats.snapshot()

    async def health_check(self) -> dict[str, Any]:
        """
        PING the backing store.

        Returns:
            Dict with status, backend and latency (or the error)
        """
        start = time.perf_counter()
        try:
            await self._client.ping()
        except Exception as e:
            return {"status": "unhealthy", "backend": self.backend, "error": str(e)}

        return {
            "status": "healthy",
            "backend": self.backend,
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
        }

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Remote cache connection closed", stage="REDIS.3")

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _call(self, operation: str, func, *args: Any) -> Any:
        """
        Run one client call under the retry budget.

        Raises:
            CacheOperationError: wrapping whatever the client raised last
        """
        try:
            return await self._retry.call(operation, func, *args)
        except CacheError:
            raise
        except Exception as e:
            raise CacheOperationError.from_exception(
                e, f"{operation} failed: {e}", operation=operation, attempts=self._retry.attempts
            ) from e

    def _decode(self, key: str, raw: str | bytes | None) -> Any | None:
        if raw is None:
            return None
        try:
            return ValueSerializer.deserialize(raw)
        except CacheError as e:
            self._degraded("DECODE", e, cache_key=key)
            return None

    @staticmethod
    def _degraded(operation: str, error: BaseException, **context: Any) -> None:
        log_stage(
            logger,
            "CACHE.DEGRADED",
            "Cache operation failed, degrading",
            level="warning",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            **context,
        )
