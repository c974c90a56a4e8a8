"""
Cache Service
=============

The domain-facing cache API. Knows, per business entity:

1. the canonical key (via CacheKeys)
2. the TTL tier and invalidation tags
3. which codec turns stored JSON back into the caller's type

Compound invalidation:
- invalidate_product clears the product key AND the PRODUCTS tag, since
  listings, search results and homepage aggregates may contain the product
- invalidate_user clears the four per-user keys AND the USERS tag, which
  reaches aggregates tagged USERS but not keyed by this user

Holds no store logic: every call goes through the CacheAsideOrchestrator.

Singleton:
    get_cache_service()      lazy, sync; builds the store once
    init_cache_service()     async; verifies the backing store with PING
    close_cache_service()    closes the connection pool, drops the instance
    reset_cache_service()    drops the instance without I/O (tests)
"""

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from tagcache.application.cache_keys import CacheKeys, check_key
from tagcache.core.config.constants import CacheTag, CacheTTL, StoreBackend
from tagcache.core.config.settings import Settings, get_settings
from tagcache.core.interfaces.cache import BatchEntry, CacheStats, CacheStore
from tagcache.core.logging.logger import get_logger, log_stage
from tagcache.infrastructure.cache.factory import connect_store, create_store
from tagcache.infrastructure.cache.local_store import LocalStore
from tagcache.infrastructure.cache.orchestrator import CacheAsideOrchestrator, Producer
from tagcache.infrastructure.cache.serializer import CacheCodec, JsonCodec

logger = get_logger(__name__)


# ============================================================================
# ENTITY POLICIES
# ============================================================================


class CacheEntity(str, Enum):
    """Cached business entities."""

    PRODUCT = "product"
    CATEGORY_PRODUCTS = "category_products"
    SEARCH_RESULTS = "search_results"
    USER_PROFILE = "user_profile"
    USER_FAVORITES = "user_favorites"
    HOMEPAGE = "homepage"
    TRENDING_PRODUCTS = "trending_products"
    FEATURED_CATEGORIES = "featured_categories"
    NEW_ARRIVALS = "new_arrivals"
    CONVERSATION = "conversation"
    USER_CONVERSATIONS = "user_conversations"
    USER_NOTIFICATIONS = "user_notifications"


@dataclass(frozen=True)
class EntityPolicy:
    ttl: int
    tags: tuple[CacheTag, ...]


ENTITY_POLICIES: dict[CacheEntity, EntityPolicy] = {
    CacheEntity.PRODUCT: EntityPolicy(CacheTTL.LONG, (CacheTag.PRODUCTS,)),
    CacheEntity.CATEGORY_PRODUCTS: EntityPolicy(
        CacheTTL.MEDIUM, (CacheTag.PRODUCTS, CacheTag.CATEGORIES)
    ),
    CacheEntity.SEARCH_RESULTS: EntityPolicy(CacheTTL.SHORT, (CacheTag.SEARCH, CacheTag.PRODUCTS)),
    CacheEntity.USER_PROFILE: EntityPolicy(CacheTTL.LONG, (CacheTag.USERS,)),
    CacheEntity.USER_FAVORITES: EntityPolicy(CacheTTL.MEDIUM, (CacheTag.USERS,)),
    CacheEntity.HOMEPAGE: EntityPolicy(CacheTTL.MEDIUM, (CacheTag.PRODUCTS,)),
    CacheEntity.TRENDING_PRODUCTS: EntityPolicy(CacheTTL.LONG, (CacheTag.PRODUCTS,)),
    CacheEntity.FEATURED_CATEGORIES: EntityPolicy(CacheTTL.VERY_LONG, (CacheTag.CATEGORIES,)),
    CacheEntity.NEW_ARRIVALS: EntityPolicy(CacheTTL.MEDIUM, (CacheTag.PRODUCTS,)),
    CacheEntity.CONVERSATION: EntityPolicy(CacheTTL.SHORT, (CacheTag.CONVERSATIONS,)),
    CacheEntity.USER_CONVERSATIONS: EntityPolicy(CacheTTL.SHORT, (CacheTag.CONVERSATIONS,)),
    CacheEntity.USER_NOTIFICATIONS: EntityPolicy(CacheTTL.SHORT, (CacheTag.NOTIFICATIONS,)),
}


def entity_id(entity: Any) -> str:
    """
    Read the `id` of a mapping or an object.

    Raises:
        ValueError: If the entity has no id
    """
    value = entity.get("id") if isinstance(entity, Mapping) else getattr(entity, "id", None)
    if value is None:
        raise ValueError(f"{type(entity).__name__} has no 'id' to build a cache key from")
    return str(value)


# ============================================================================
# SERVICE
# ============================================================================


class CacheService:
    """
    Entity-level cache operations over a CacheStore.

    Usage:
        cache = get_cache_service()
        await cache.cache_product({"id": "42", "title": "Shirt"})
        product = await cache.get_product("42")

        products = await cache.remember_products_by_category(
            "shoes", lambda: repository.list_by_category("shoes")
        )

    Args:
        store: Active CacheStore
        single_flight: Coalesce concurrent misses in remember
        codecs: Per-entity codecs; entities without one use JsonCodec
    """

    def __init__(
        self,
        store: CacheStore,
        single_flight: bool = True,
        codecs: Mapping[CacheEntity, CacheCodec] | None = None,
    ):
        self._orchestrator = CacheAsideOrchestrator(store, single_flight=single_flight)
        self._codecs: dict[CacheEntity, CacheCodec] = dict(codecs or {})
        self._default_codec: CacheCodec = JsonCodec()

    @property
    def orchestrator(self) -> CacheAsideOrchestrator:
        return self._orchestrator

    @property
    def backend(self) -> str:
        return self._orchestrator.backend

    @property
    def degraded(self) -> bool:
        """True when serving from the in-process fallback."""
        return self.backend == StoreBackend.MEMORY.value

    # ------------------------------------------------------------------------
    # Entity plumbing
    # ------------------------------------------------------------------------

    def _codec(self, entity: CacheEntity) -> CacheCodec:
        return self._codecs.get(entity, self._default_codec)

    async def _put(self, entity: CacheEntity, key: str, value: Any) -> None:
        policy = ENTITY_POLICIES[entity]
        await self._orchestrator.set(
            key, value, ttl=policy.ttl, tags=policy.tags, codec=self._codec(entity)
        )

    async def _fetch(self, entity: CacheEntity, key: str) -> Any | None:
        return await self._orchestrator.get(key, codec=self._codec(entity))

    async def _remember(self, entity: CacheEntity, key: str, producer: Producer) -> Any:
        policy = ENTITY_POLICIES[entity]
        return await self._orchestrator.remember(
            key, producer, ttl=policy.ttl, tags=policy.tags, codec=self._codec(entity)
        )

    # ------------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------------

    async def cache_product(self, product: Any) -> None:
        await self._put(CacheEntity.PRODUCT, CacheKeys.product(entity_id(product)), product)

    async def get_product(self, product_id: str) -> Any | None:
        return await self._fetch(CacheEntity.PRODUCT, CacheKeys.product(product_id))

    async def remember_product(self, product_id: str, producer: Producer) -> Any:
        return await self._remember(CacheEntity.PRODUCT, CacheKeys.product(product_id), producer)

    async def cache_products_by_category(self, category: str, products: Sequence[Any]) -> None:
        await self._put(
            CacheEntity.CATEGORY_PRODUCTS, CacheKeys.category_products(category), list(products)
        )

    async def get_products_by_category(self, category: str) -> list[Any] | None:
        return await self._fetch(CacheEntity.CATEGORY_PRODUCTS, CacheKeys.category_products(category))

    async def remember_products_by_category(self, category: str, producer: Producer) -> list[Any]:
        return await self._remember(
            CacheEntity.CATEGORY_PRODUCTS, CacheKeys.category_products(category), producer
        )

    async def warm_product_cache(self, products: Sequence[Any]) -> None:
        """Write many products in one pipelined batch."""
        policy = ENTITY_POLICIES[CacheEntity.PRODUCT]
        entries = [
            BatchEntry(CacheKeys.product(entity_id(product)), product, policy.ttl, policy.tags)
            for product in products
        ]
        if not entries:
            return

        await self._orchestrator.mset(entries, codec=self._codec(CacheEntity.PRODUCT))
        log_stage(logger, "CACHE.WARM", "Product cache warmed", count=len(entries))

    # ------------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------------

    async def cache_search_results(self, query: str, results: Any) -> None:
        await self._put(CacheEntity.SEARCH_RESULTS, CacheKeys.search(query), results)

    async def get_search_results(self, query: str) -> Any | None:
        return await self._fetch(CacheEntity.SEARCH_RESULTS, CacheKeys.search(query))

    async def remember_search_results(self, query: str, producer: Producer) -> Any:
        return await self._remember(CacheEntity.SEARCH_RESULTS, CacheKeys.search(query), producer)

    # ------------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------------

    async def cache_user_profile(self, user_id: str, profile: Any) -> None:
        await self._put(CacheEntity.USER_PROFILE, CacheKeys.user_profile(user_id), profile)

    async def get_user_profile(self, user_id: str) -> Any | None:
        return await self._fetch(CacheEntity.USER_PROFILE, CacheKeys.user_profile(user_id))

    async def remember_user_profile(self, user_id: str, producer: Producer) -> Any:
        return await self._remember(CacheEntity.USER_PROFILE, CacheKeys.user_profile(user_id), producer)

    async def cache_user_favorites(self, user_id: str, favorites: Sequence[Any]) -> None:
        await self._put(CacheEntity.USER_FAVORITES, CacheKeys.user_favorites(user_id), list(favorites))

    async def get_user_favorites(self, user_id: str) -> list[Any] | None:
        return await self._fetch(CacheEntity.USER_FAVORITES, CacheKeys.user_favorites(user_id))

    async def cache_user_notifications(self, user_id: str, notifications: Sequence[Any]) -> None:
        await self._put(
            CacheEntity.USER_NOTIFICATIONS, CacheKeys.user_notifications(user_id), list(notifications)
        )

    async def get_user_notifications(self, user_id: str) -> list[Any] | None:
        return await self._fetch(CacheEntity.USER_NOTIFICATIONS, CacheKeys.user_notifications(user_id))

    # ------------------------------------------------------------------------
    # Homepage aggregates
    # ------------------------------------------------------------------------

    async def cache_homepage_data(self, data: Any) -> None:
        await self._put(CacheEntity.HOMEPAGE, CacheKeys.homepage(), data)

    async def get_homepage_data(self) -> Any | None:
        return await self._fetch(CacheEntity.HOMEPAGE, CacheKeys.homepage())

    async def remember_homepage_data(self, producer: Producer) -> Any:
        return await self._remember(CacheEntity.HOMEPAGE, CacheKeys.homepage(), producer)

    async def cache_trending_products(self, products: Sequence[Any]) -> None:
        await self._put(CacheEntity.TRENDING_PRODUCTS, CacheKeys.trending_products(), list(products))

    async def get_trending_products(self) -> list[Any] | None:
        return await self._fetch(CacheEntity.TRENDING_PRODUCTS, CacheKeys.trending_products())

    async def cache_featured_categories(self, categories: Sequence[Any]) -> None:
        await self._put(
            CacheEntity.FEATURED_CATEGORIES, CacheKeys.featured_categories(), list(categories)
        )

    async def get_featured_categories(self) -> list[Any] | None:
        return await self._fetch(CacheEntity.FEATURED_CATEGORIES, CacheKeys.featured_categories())

    async def cache_new_arrivals(self, products: Sequence[Any]) -> None:
        await self._put(CacheEntity.NEW_ARRIVALS, CacheKeys.new_arrivals(), list(products))

    async def get_new_arrivals(self) -> list[Any] | None:
        return await self._fetch(CacheEntity.NEW_ARRIVALS, CacheKeys.new_arrivals())

    # ------------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------------

    async def cache_conversation(self, conversation_id: str, conversation: Any) -> None:
        await self._put(CacheEntity.CONVERSATION, CacheKeys.conversation(conversation_id), conversation)

    async def get_conversation(self, conversation_id: str) -> Any | None:
        return await self._fetch(CacheEntity.CONVERSATION, CacheKeys.conversation(conversation_id))

    async def cache_user_conversations(self, user_id: str, conversations: Sequence[Any]) -> None:
        await self._put(
            CacheEntity.USER_CONVERSATIONS, CacheKeys.user_conversations(user_id), list(conversations)
        )

    async def get_user_conversations(self, user_id: str) -> list[Any] | None:
        return await self._fetch(CacheEntity.USER_CONVERSATIONS, CacheKeys.user_conversations(user_id))

    # ------------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------------

    async def invalidate_product(self, product_id: str) -> None:
        await asyncio.gather(
            self._orchestrator.delete(CacheKeys.product(product_id)),
            self._orchestrator.invalidate_by_tag(CacheTag.PRODUCTS),
        )
        log_stage(logger, "CACHE.INVALIDATE", "Product invalidated", product_id=product_id)

    async def invalidate_user(self, user_id: str) -> None:
        await asyncio.gather(
            *(self._orchestrator.delete(key) for key in CacheKeys.user_keys(user_id)),
            self._orchestrator.invalidate_by_tag(CacheTag.USERS),
        )
        log_stage(logger, "CACHE.INVALIDATE", "User invalidated", user_id=user_id)

    async def invalidate_all_products(self) -> int:
        return await self._orchestrator.invalidate_by_tag(CacheTag.PRODUCTS)

    async def invalidate_search_results(self) -> int:
        return await self._orchestrator.invalidate_by_tag(CacheTag.SEARCH)

    async def invalidate_conversations(self) -> int:
        return await self._orchestrator.invalidate_by_tag(CacheTag.CONVERSATIONS)

    # ------------------------------------------------------------------------
    # Generic access
    # ------------------------------------------------------------------------

    async def get(self, key: str, codec: CacheCodec | None = None) -> Any | None:
        return await self._orchestrator.get(key, codec=codec)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Sequence[str | Enum] = (),
        codec: CacheCodec | None = None,
    ) -> None:
        await self._orchestrator.set(check_key(key), value, ttl=ttl, tags=tags, codec=codec)

    async def delete(self, key: str) -> None:
        await self._orchestrator.delete(key)

    async def remember(
        self,
        key: str,
        producer: Producer,
        ttl: int | None = CacheTTL.MEDIUM,
        tags: Sequence[str | Enum] = (),
        codec: CacheCodec | None = None,
    ) -> Any:
        return await self._orchestrator.remember(
            check_key(key), producer, ttl=ttl, tags=tags, codec=codec
        )

    async def get_stats(self) -> CacheStats:
        return await self._orchestrator.get_stats()

    async def health_check(self) -> dict[str, Any]:
        health = await self._orchestrator.health_check()
        return {**health, "degraded": self.degraded}

    async def close(self) -> None:
        await self._orchestrator.close()


# ============================================================================
# SINGLETON
# ============================================================================

_cache_service: CacheService | None = None


def _build_service(store: CacheStore, settings: Settings) -> CacheService:
    return CacheService(store, single_flight=settings.cache.CACHE_SINGLE_FLIGHT)


def _load_settings() -> Settings | None:
    """Settings, or None when the environment does not validate."""
    try:
        return get_settings()
    except ValidationError as e:
        log_stage(
            logger,
            "CACHE.FALLBACK",
            "Invalid cache configuration, using in-process cache with defaults",
            level="warning",
            reason="invalid_configuration",
            error_count=e.error_count(),
            fields=[".".join(str(part) for part in error["loc"]) for error in e.errors()],
        )
        return None


def _fallback_service(store: CacheStore | None) -> CacheService:
    return CacheService(store or LocalStore())


def get_cache_service(store: CacheStore | None = None) -> CacheService:
    """
    Get the process-wide CacheService, building it on first use.

    An injected store is used as-is; otherwise create_store picks Redis or the
    in-process fallback. An environment that fails validation also falls back
    to the in-process store with default settings. Never raises.
    """
    global _cache_service

    if _cache_service is None:
        settings = _load_settings()
        if settings is None:
            _cache_service = _fallback_service(store)
        else:
            _cache_service = _build_service(store or create_store(settings), settings)

    return _cache_service


async def init_cache_service(store: CacheStore | None = None) -> CacheService:
    """
    Initialize the CacheService, verifying the backing store with PING.

    STAGE-CACHE.0: Cache initialization
    """
    global _cache_service

    if _cache_service is None:
        settings = _load_settings()
        if settings is None:
            _cache_service = _fallback_service(store)
        else:
            _cache_service = _build_service(store or await connect_store(settings), settings)
        log_stage(logger, "CACHE.0", "Cache service initialized", backend=_cache_service.backend)

    return _cache_service


async def close_cache_service() -> None:
    """
    Close the CacheService and its connection pool.

    STAGE-CACHE.CLOSE: Cache cleanup
    """
    global _cache_service

    if _cache_service is not None:
        await _cache_service.close()
        _cache_service = None
        logger.info("Cache service closed", stage="CACHE.CLOSE")


def reset_cache_service() -> None:
    """Drop the singleton without closing anything."""
    global _cache_service
    _cache_service = None
