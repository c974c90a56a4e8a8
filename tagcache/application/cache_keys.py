"""
Cache Key Builders

The one place that turns a business entity into its cache key. Writers and
invalidators both go through these builders, so they always agree on the
exact key string.

Keys starting with `tag:` are reserved for tag membership sets.
"""

import re

from tagcache.core.config.constants import TAG_KEY_PREFIX

_WHITESPACE = re.compile(r"\s+")

RESERVED_PREFIX = f"{TAG_KEY_PREFIX}:"


def check_key(key: str) -> str:
    """
    Reject a caller key that would collide with a tag set.

    Raises:
        ValueError: If the key uses the reserved tag prefix
    """
    if key.startswith(RESERVED_PREFIX):
        raise ValueError(f"Cache keys must not start with the reserved prefix {RESERVED_PREFIX!r}: {key}")
    return key


def normalize_query(query: str) -> str:
    """
    Canonical form of a search query.

    Example:
        >>> normalize_query("  Red   SHOES ")
        'red shoes'
    """
    return _WHITESPACE.sub(" ", query.strip()).lower()


class CacheKeys:
    """Static key builders, one per cached entity."""

    @staticmethod
    def product(product_id: str) -> str:
        return f"product:{product_id}"

    @staticmethod
    def category_products(category: str) -> str:
        return f"category:{category}:products"

    @staticmethod
    def search(query: str) -> str:
        return f"search:{normalize_query(query)}"

    @staticmethod
    def user_profile(user_id: str) -> str:
        return f"user:{user_id}:profile"

    @staticmethod
    def user_favorites(user_id: str) -> str:
        return f"user:{user_id}:favorites"

    @staticmethod
    def user_conversations(user_id: str) -> str:
        return f"user:{user_id}:conversations"

    @staticmethod
    def user_notifications(user_id: str) -> str:
        return f"notifications:{user_id}"

    @staticmethod
    def conversation(conversation_id: str) -> str:
        return f"conversation:{conversation_id}"

    @staticmethod
    def homepage() -> str:
        return "homepage:data"

    @staticmethod
    def trending_products() -> str:
        return "products:trending"

    @staticmethod
    def featured_categories() -> str:
        return "categories:featured"

    @staticmethod
    def new_arrivals() -> str:
        return "products:new-arrivals"

    @classmethod
    def user_keys(cls, user_id: str) -> list[str]:
        """Every per-user key cleared when a user is invalidated."""
        return [
            cls.user_profile(user_id),
            cls.user_favorites(user_id),
            cls.user_conversations(user_id),
            cls.user_notifications(user_id),
        ]
