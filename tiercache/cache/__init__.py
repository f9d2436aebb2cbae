"""Tiered caching: backend contract, concrete tiers and the aggregator."""

from tiercache.cache.backend import Backend, BaseBackend, CacheEntry
from tiercache.cache.memory import MemoryBackend
from tiercache.cache.redis_backend import RedisBackend
from tiercache.cache.tiered import TieredCache, TieredCacheStats

__all__ = [
    "Backend",
    "BaseBackend",
    "CacheEntry",
    "MemoryBackend",
    "RedisBackend",
    "TieredCache",
    "TieredCacheStats",
]
