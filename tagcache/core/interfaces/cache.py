"""
Cache Store Protocol

The contract every cache store implements, plus the value types that cross
it. RemoteStore (Redis) and LocalStore (in-process) both satisfy it, so the
orchestrator and facade never branch on which backend is active.

Guarantees shared by every implementation:
- get/mget never raise; any failure reads as a miss
- set/delete/expire/clear/invalidate_by_tag never raise; failures are no-ops
- an expired entry reads exactly like a missing one
- mset followed by mget is observably equal to the sequential calls
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class CacheStats:
    """
    Process-lifetime hit/miss counters.

    hit_rate is 0.0 when no operation has been recorded.
    """

    hits: int = 0
    misses: int = 0

    @property
    def total_operations(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_operations
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hit_rate, 3),
            "total_operations": self.total_operations,
        }


@dataclass(frozen=True)
class BatchEntry:
    """One write in an mset batch."""

    key: str
    value: Any
    ttl: int | None = None
    tags: Sequence[str] = field(default_factory=tuple)


@runtime_checkable
class CacheStore(Protocol):
    """
    Protocol defining the interface for cache store implementations.

    Implementations:
    - RemoteStore: Redis-backed, shared across processes
    - LocalStore: in-process map, single-process only

    Usage:
        async def cached_lookup(store: CacheStore, key: str) -> Any | None:
            return await store.get(key)
    """

    backend: str

    async def get(self, key: str) -> Any | None:
        """
        Get a live value.

        Returns:
            The decoded value, or None on miss, expiry or any failure
        """
        ...

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Sequence[str] = (),
    ) -> None:
        """
        Store a value with a TTL and register it under each tag.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Seconds to live (None = default TTL, < 1 clamped to 1)
            tags: Invalidation scopes this key belongs to
        """
        ...

    async def delete(self, key: str) -> None:
        """Delete a key. Deleting an absent key is not an error."""
        ...

    async def exists(self, key: str) -> bool:
        """True if the key holds a live value."""
        ...

    async def expire(self, key: str, ttl: int) -> bool:
        """
        Reset a key's TTL without rewriting its value.

        Returns:
            True if the key existed and its TTL was set
        """
        ...

    async def clear(self) -> None:
        """Drop everything. Maintenance and tests only."""
        ...

    async def invalidate_by_tag(self, tag: str) -> int:
        """
        Delete every key registered under the tag, then the tag set itself.

        Returns:
            Number of member keys deletion was attempted for
        """
        ...

    async def mget(self, keys: Sequence[str]) -> list[Any | None]:
        """Batched get; result order matches keys."""
        ...

    async def mset(self, entries: Sequence[BatchEntry]) -> None:
        """Batched set in a single round trip where supported."""
        ...

    async def get_stats(self) -> CacheStats:
        """Snapshot of hit/miss counters."""
        ...

    async def health_check(self) -> dict[str, Any]:
        """Health status; never raises."""
        ...
