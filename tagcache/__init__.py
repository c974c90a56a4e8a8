"""
Tagged cache-aside layer.

Redis-backed cache with tag-based group invalidation, bounded retries, and
automatic fallback to an in-process store.
"""

__version__ = "1.0.0"
