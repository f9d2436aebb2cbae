"""Multi-tier cache aggregation over independent backends."""

from tiercache.cache import (
    Backend,
    BaseBackend,
    CacheEntry,
    MemoryBackend,
    RedisBackend,
    TieredCache,
    TieredCacheStats,
)
from tiercache.config import Settings, get_settings, reset_settings
from tiercache.exceptions import (
    BackendError,
    CacheError,
    ConfigurationError,
    InvalidArgumentError,
    TierCacheException,
)
from tiercache.factory import build_tiered_cache

__all__ = [
    "Backend",
    "BackendError",
    "BaseBackend",
    "CacheEntry",
    "CacheError",
    "ConfigurationError",
    "InvalidArgumentError",
    "MemoryBackend",
    "RedisBackend",
    "Settings",
    "TierCacheException",
    "TieredCache",
    "TieredCacheStats",
    "build_tiered_cache",
    "get_settings",
    "reset_settings",
]
