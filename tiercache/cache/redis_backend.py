"""
Redis-backed cache tier.

Entries are stored as the JSON form of :class:`CacheEntry` under
``{key_prefix}:{key}`` and expire through Redis' own TTL.  Content must
survive that JSON round trip unchanged: ``bytes`` are stored base64-encoded,
other values must be JSON-native (no tuples, sets or non-string dict keys).

``get`` logs connection failures and reports a miss; every other operation
raises them as :class:`BackendError`.
"""

import base64
import logging
import math
from typing import Any, Optional

import redis
from pydantic import ValidationError

from tiercache.cache.backend import BaseBackend, CacheEntry, Key
from tiercache.config import get_settings
from tiercache.exceptions import BackendError

logger = logging.getLogger(__name__)


def _is_json_native(value: Any) -> bool:
    if value is None or isinstance(value, (bool, int, str)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, list):
        return all(_is_json_native(item) for item in value)
    if isinstance(value, dict):
        return all(isinstance(k, str) and _is_json_native(v) for k, v in value.items())
    return False


class RedisBackend(BaseBackend):
    """Redis cache tier.

    Args:
        redis_url: Redis connection URL (e.g. redis://localhost:6379/0).
            Defaults to ``redis.url`` from settings.
        default_lifetime: Seconds an entry lives by default.
        key_prefix: Namespace for all keys (default ``tiercache``).
        _redis_client: Pre-built client, used instead of ``redis_url``.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        default_lifetime: Optional[int] = None,
        key_prefix: Optional[str] = None,
        _redis_client: Optional[Any] = None,
    ) -> None:
        settings = get_settings().redis
        super().__init__(
            default_lifetime=default_lifetime if default_lifetime is not None else settings.default_lifetime,
            key_prefix=(key_prefix if key_prefix is not None else settings.key_prefix).rstrip(":"),
        )
        if _redis_client is not None:
            self._client = _redis_client
        else:
            self._client = redis.from_url(redis_url or settings.url, decode_responses=True)

    def _key(self, key: Key) -> str:
        return f"{self._key_prefix}:{key}"

    def _load(self, full_key: str) -> Optional[CacheEntry]:
        """Fetch and parse an entry; connection errors propagate."""
        data = self._client.get(full_key)
        if data is None:
            return None

        try:
            return CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning(
                "Redis entry deserialize failed",
                extra={"cache_key": full_key, "error": str(e)},
            )
            try:
                self._client.delete(full_key)
            except redis.RedisError as cleanup_error:
                logger.warning(
                    "Redis cleanup of corrupt entry failed",
                    extra={"cache_key": full_key, "error": str(cleanup_error)},
                )
            return None

    def get(self, key: Key, lifetime: Optional[int] = None) -> Optional[Any]:
        full_key = self._key(key)
        try:
            entry = self._load(full_key)
        except redis.RedisError as e:
            logger.warning(
                "Redis get failed",
                extra={"cache_key": full_key, "error": str(e)},
            )
            return None

        if entry is None or not entry.is_alive(lifetime):
            logger.debug("Cache miss", extra={"cache_key": full_key})
            return None
        logger.debug("Cache hit", extra={"cache_key": full_key})
        if entry.encoding == "base64":
            return base64.b64decode(entry.content)
        return entry.content

    def exists(self, key: Optional[Key] = None, lifetime: Optional[int] = None) -> bool:
        key = self._key_or_last(key)
        if key is None:
            return False
        full_key = self._key(key)
        try:
            if lifetime is None:
                return bool(self._client.exists(full_key))
            entry = self._load(full_key)
        except redis.RedisError as e:
            raise BackendError(f"Redis exists failed for key {key!r}: {e}") from e
        return entry is not None and entry.is_alive(lifetime)

    def delete(self, key: Key) -> bool:
        full_key = self._key(key)
        try:
            deleted = self._client.delete(full_key)
        except redis.RedisError as e:
            logger.error(
                "Redis delete failed",
                extra={"cache_key": full_key, "error": str(e)},
            )
            raise BackendError(f"Redis delete failed for key {key!r}: {e}") from e
        if deleted:
            logger.info("Cache entry deleted", extra={"cache_key": full_key})
        return bool(deleted)

    def _write_entry(self, full_key: str, content: Any, lifetime: Optional[int]) -> None:
        if isinstance(content, bytes):
            entry = CacheEntry.create(
                full_key, base64.b64encode(content).decode("ascii"), lifetime, encoding="base64"
            )
        elif _is_json_native(content):
            entry = CacheEntry.create(full_key, content, lifetime)
        else:
            raise BackendError(
                f"Redis tier cannot store {type(content).__name__} content for key "
                f"{full_key!r} unchanged; use bytes or JSON-native values"
            )

        try:
            self._client.set(full_key, entry.model_dump_json(), ex=lifetime)
        except redis.RedisError as e:
            logger.error(
                "Redis set failed",
                extra={"cache_key": full_key, "error": str(e)},
            )
            raise BackendError(f"Redis set failed for key {full_key!r}: {e}") from e
        logger.debug("Cache set", extra={"cache_key": full_key, "lifetime": lifetime})

    def clear(self) -> int:
        """Remove every key under this backend's prefix.

        Returns:
            Number of keys removed.
        """
        try:
            keys = list(self._client.scan_iter(match=f"{self._key_prefix}:*"))
            if keys:
                self._client.delete(*keys)
        except redis.RedisError as e:
            logger.error("Redis clear failed", extra={"error": str(e)})
            raise BackendError(f"Redis clear failed: {e}") from e
        logger.info("Cache cleared", extra={"entries_removed": len(keys)})
        return len(keys)
