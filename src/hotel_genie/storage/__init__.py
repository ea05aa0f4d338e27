"""Cache tiers for ranked search results."""

from .cache import CachedResult, CacheEntry, CacheStore, MemoryCacheStore, ResultCache, cache_key
from .sqlite_store import SqliteCacheStore

__all__ = [
    "CacheEntry",
    "CacheStore",
    "CachedResult",
    "MemoryCacheStore",
    "ResultCache",
    "SqliteCacheStore",
    "cache_key",
]
