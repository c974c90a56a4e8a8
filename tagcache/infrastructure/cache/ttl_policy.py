"""
TTL resolution shared by both stores.

- None -> the configured default TTL
- < 1 (zero or negative) -> clamped to MIN_TTL_SECONDS, with a warning
"""

from tagcache.core.config.constants import MIN_TTL_SECONDS
from tagcache.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)


def resolve_ttl(ttl: int | None, default_ttl: int, key: str) -> int:
    if ttl is None:
        return max(MIN_TTL_SECONDS, int(default_ttl))

    ttl = int(ttl)
    if ttl < MIN_TTL_SECONDS:
        log_stage(
            logger,
            "CACHE.TTL",
            "Non-positive TTL clamped",
            level="warning",
            cache_key=key,
            requested_ttl=ttl,
            applied_ttl=MIN_TTL_SECONDS,
        )
        return MIN_TTL_SECONDS
    return ttl
