"""
Cache Constants and Enumerations

TTL tiers, the tag taxonomy, Redis key prefixes and retry defaults shared by
every layer of the cache.

Every entity-specific cache call references a CacheTTL tier and one or more
CacheTag scopes instead of inventing ad-hoc numbers or strings.
"""

from enum import Enum, IntEnum

# ============================================================================
# TTL Tiers (seconds)
# ============================================================================


class CacheTTL(IntEnum):
    """
    Canonical time-to-live tiers.

    SHORT: frequently-changing aggregates (search results, conversations)
    MEDIUM: listings and homepage aggregates
    LONG: single entities (products, profiles)
    VERY_LONG: slow-moving reference lists (featured categories)
    WEEK: near-static reference data, and the tag-set ceiling
    """

    SHORT = 60
    MEDIUM = 300
    LONG = 1800
    VERY_LONG = 7200
    WEEK = 604800


# ============================================================================
# Tag Taxonomy
# ============================================================================


class CacheTag(str, Enum):
    """
    Invalidation scopes.

    An entry is tagged with every scope whose mutation must evict it.
    """

    PRODUCTS = "products"
    USERS = "users"
    CATEGORIES = "categories"
    ORDERS = "orders"
    NOTIFICATIONS = "notifications"
    CONVERSATIONS = "conversations"
    SEARCH = "search"


# ============================================================================
# Backends
# ============================================================================


class StoreBackend(str, Enum):
    """Which CacheStore implementation is active."""

    REDIS = "redis"
    MEMORY = "memory"


# ============================================================================
# TTL Bounds
# ============================================================================

DEFAULT_TTL = 3600  # Used when a caller passes no TTL (1 hour)
MIN_TTL_SECONDS = 1  # Zero/negative TTLs are clamped up to this
TAG_SET_TTL = int(CacheTTL.WEEK)  # Tag membership sets outlive any member

# ============================================================================
# Redis Key Prefixes
# ============================================================================

TAG_KEY_PREFIX = "tag"

# ============================================================================
# Retry Settings
# ============================================================================

RETRY_ATTEMPTS = 3  # Total attempts per remote call
RETRY_BASE_DELAY = 0.1  # First backoff step (seconds)
RETRY_DELAY_INCREMENT = 0.1  # Linear backoff increment (seconds)

# ============================================================================
# Local Store
# ============================================================================

LOCAL_STORE_MAX_ENTRIES = 10000  # LRU bound for the in-process fallback

# Length of key prefixes written to logs
LOG_KEY_MAX_LENGTH = 40
