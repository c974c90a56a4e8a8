"""
Cache Statistics

Process-local hit/miss counters. Counters only ever increase and reset when
the process restarts.
"""

from tagcache.core.interfaces.cache import CacheStats
from tagcache.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)


class StatsCollector:
    """
    Tracks cache read outcomes.

    Every get (and every key of an mget) records exactly one hit or one miss.
    Reads that fail inside the store count as misses.
    """

    def __init__(self):
        self._hits = 0
        self._misses = 0

    def record_hit(self, key: str) -> None:
        self._hits += 1
        log_stage(logger, "CACHE.HIT", "Cache hit", level="debug", cache_key=key)

    def record_miss(self, key: str) -> None:
        self._misses += 1
        log_stage(logger, "CACHE.MISS", "Cache miss", level="debug", cache_key=key)

    def record(self, key: str, hit: bool) -> None:
        if hit:
            self.record_hit(key)
        else:
            self.record_miss(key)

    def snapshot(self) -> CacheStats:
        return CacheStats(hits=self._hits, misses=self._misses)
