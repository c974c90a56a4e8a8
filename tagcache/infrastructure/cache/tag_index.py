"""
Tag Membership Index

A tag is a named set of cache keys. Writing a key with tags adds it to each
tag's set; invalidating a tag deletes every member and then the set itself.

Redis layout:
    tag:{tag}  ->  SET of key names (plain strings)

Tag sets carry their own TTL of at least max(one week, member TTL). An add
only ever extends that TTL, never shortens it, so a set always outlives its
members and never leaks without a TTL.

The `tag:` prefix is reserved. Caller keys must not start with it; CacheKeys
never builds such a key and CacheService rejects one.

Members whose keys already expired stay in the set until the next
invalidation of that tag or until the set's TTL runs out. `prune_tag` removes
them on demand for maintenance jobs.
"""

import time
from collections.abc import Callable, Iterable, Sequence
from enum import Enum

import redis.asyncio as redis

from tagcache.core.config.constants import TAG_KEY_PREFIX, TAG_SET_TTL


def tag_name(tag: str | Enum) -> str:
    """Plain string form of a tag (CacheTag members use their value)."""
    return tag.value if isinstance(tag, Enum) else str(tag)


def tag_key(tag: str | Enum) -> str:
    """
    Redis key of a tag's membership set.

    Example:
        >>> tag_key(CacheTag.PRODUCTS)
        'tag:products'
    """
    return f"{TAG_KEY_PREFIX}:{tag_name(tag)}"


def tag_set_ttl(ttl: int) -> int:
    return max(TAG_SET_TTL, ttl)


# =============================================================================
# REDIS TAG INDEX
# =============================================================================


class RedisTagIndex:
    """
    Tag sets stored in Redis next to the entries they index.

    Responsibility: issue the tag-set commands. Errors propagate; the
    RemoteStore owns retries and degradation.
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    def queue_add(self, pipe, key: str, tags: Iterable[str | Enum], ttl: int) -> None:
        """
        Queue SADD + EXPIRE NX + EXPIRE GT for each tag on an open pipeline.

        EXPIRE NX gives a new set its TTL; EXPIRE GT only ever extends an
        existing one. Both need Redis 7.0 or later. Membership add and TTL
        refresh are separate commands; they are not atomic with each other.
        """
        for tag in tags:
            name = tag_key(tag)
            set_ttl = tag_set_ttl(ttl)
            pipe.sadd(name, key)
            pipe.expire(name, set_ttl, nx=True)
            pipe.expire(name, set_ttl, gt=True)

    async def members(self, tag: str | Enum) -> list[str]:
        return list(await self._client.smembers(tag_key(tag)))

    async def drop(self, tag: str | Enum, members: Sequence[str]) -> None:
        """Delete the member keys and the tag set in one DEL."""
        await self._client.delete(*members, tag_key(tag))

    async def prune_tag(self, tag: str | Enum) -> int:
        """
        Remove members whose keys no longer exist.

        Returns:
            Number of stale members removed
        """
        name = tag_key(tag)
        members = list(await self._client.smembers(name))
        if not members:
            return 0

        pipe = self._client.pipeline(transaction=False)
        for member in members:
            pipe.exists(member)
        live = await pipe.execute()

        stale = [member for member, count in zip(members, live) if not count]
        if stale:
            await self._client.srem(name, *stale)
        return len(stale)


# =============================================================================
# IN-PROCESS TAG INDEX
# =============================================================================


class MemoryTagIndex:
    """
    Tag sets for the LocalStore.

    Same semantics as RedisTagIndex (set TTL, stale members, prune), held in a
    dict. Valid for a single process only.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._sets: dict[str, tuple[set[str], float]] = {}

    def add(self, key: str, tags: Iterable[str | Enum], ttl: int) -> None:
        expires_at = self._clock() + tag_set_ttl(ttl)
        for tag in tags:
            name = tag_key(tag)
            members, current = self._live(name) or (set(), 0.0)
            members.add(key)
            self._sets[name] = (members, max(current, expires_at))

    def members(self, tag: str | Enum) -> list[str]:
        entry = self._live(tag_key(tag))
        return sorted(entry[0]) if entry else []

    def drop(self, tag: str | Enum) -> None:
        self._sets.pop(tag_key(tag), None)

    def prune_tag(self, tag: str | Enum, is_live: Callable[[str], bool]) -> int:
        entry = self._live(tag_key(tag))
        if entry is None:
            return 0

        members = entry[0]
        stale = {member for member in members if not is_live(member)}
        members -= stale
        return len(stale)

    def clear(self) -> None:
        self._sets.clear()

    def _live(self, name: str) -> tuple[set[str], float] | None:
        entry = self._sets.get(name)
        if entry is None:
            return None
        if self._clock() >= entry[1]:
            del self._sets[name]
            return None
        return entry
