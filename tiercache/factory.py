"""
Build a :class:`TieredCache` from settings.

``cache.tiers`` lists tier names fastest first; each name maps to a
backend class configured from its own settings section.
"""

import logging
from typing import Any, Optional

from tiercache.cache import MemoryBackend, RedisBackend, TieredCache
from tiercache.cache.backend import BaseBackend
from tiercache.config import Settings, get_settings
from tiercache.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

TIER_NAMES = ("memory", "redis")


def _build_backend(name: str, settings: Settings, redis_client: Optional[Any]) -> BaseBackend:
    try:
        return _construct_backend(name, settings, redis_client)
    except ConfigurationError:
        raise
    except ValueError as e:
        raise ConfigurationError(f"Invalid settings for cache tier {name!r}: {e}") from e


def _construct_backend(name: str, settings: Settings, redis_client: Optional[Any]) -> BaseBackend:
    if name == "memory":
        return MemoryBackend(
            default_lifetime=settings.memory.default_lifetime,
            key_prefix=settings.memory.key_prefix,
            max_entries=settings.memory.max_entries,
        )
    if name == "redis":
        return RedisBackend(
            redis_url=settings.redis.url,
            default_lifetime=settings.redis.default_lifetime,
            key_prefix=settings.redis.key_prefix,
            _redis_client=redis_client,
        )
    raise ConfigurationError(
        f"Unknown cache tier {name!r}; expected one of {', '.join(TIER_NAMES)}"
    )


def build_tiered_cache(
    settings: Optional[Settings] = None,
    *,
    redis_client: Optional[Any] = None,
) -> TieredCache:
    """Construct the tiers named in ``settings.cache.tiers``, fastest first.

    Args:
        settings: Settings to use; defaults to :func:`get_settings`.
        redis_client: Pre-built Redis client for the ``redis`` tier.

    Returns:
        A ready :class:`TieredCache`.

    Raises:
        ConfigurationError: If the tier list is malformed or names an
            unknown tier.
    """
    settings = settings or get_settings()
    logging.getLogger("tiercache").setLevel(settings.logging.level.upper())

    tiers = settings.cache.tiers
    if isinstance(tiers, str) or not isinstance(tiers, (list, tuple)):
        raise ConfigurationError("cache.tiers must be a list of tier names")

    cache = TieredCache(repopulate=settings.cache.repopulate)
    for name in tiers:
        cache.push(_build_backend(str(name).strip().lower(), settings, redis_client))

    logger.info("Tiered cache built", extra={"tiers": list(tiers)})
    return cache
