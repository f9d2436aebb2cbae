"""
tiercache exception hierarchy.

All custom exceptions inherit from TierCacheException so callers can
catch a single base type when they want a broad safety net.
"""


class TierCacheException(Exception):
    """Base exception for all tiercache errors."""


class ConfigurationError(TierCacheException, ValueError):
    """Raised when a cache or its settings are configured incorrectly."""


class InvalidArgumentError(TierCacheException, TypeError):
    """Raised when a value passed to the aggregator is not a usable backend."""


class CacheError(TierCacheException):
    """Raised when a backend is used out of order (e.g. save before start)."""


class BackendError(CacheError):
    """Raised when a storage operation fails inside a backend."""
