"""
In-process cache tier.

Keeps entries in an insertion-ordered dict guarded by a lock.  Expiry is
checked lazily on read; when ``max_entries`` is reached the oldest entry
is evicted to make room.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Optional

from tiercache.cache.backend import BaseBackend, CacheEntry, Key
from tiercache.config import get_settings

logger = logging.getLogger(__name__)


class MemoryBackend(BaseBackend):
    """Process-local cache tier.

    Args:
        default_lifetime: Seconds an entry lives by default.  Defaults to
            ``memory.default_lifetime`` from settings.
        key_prefix: Prefix for every key.  Defaults to ``memory.key_prefix``.
        max_entries: Upper bound on stored entries.  Defaults to
            ``memory.max_entries``.
    """

    def __init__(
        self,
        default_lifetime: Optional[int] = None,
        key_prefix: Optional[str] = None,
        max_entries: Optional[int] = None,
    ) -> None:
        settings = get_settings().memory
        super().__init__(
            default_lifetime=default_lifetime if default_lifetime is not None else settings.default_lifetime,
            key_prefix=key_prefix if key_prefix is not None else settings.key_prefix,
        )
        self._max_entries = max_entries if max_entries is not None else settings.max_entries
        if self._max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._store: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Key, lifetime: Optional[int] = None) -> Optional[Any]:
        full_key = self._key(key)
        with self._lock:
            entry = self._store.get(full_key)
            if entry is None:
                logger.debug("Cache miss", extra={"cache_key": full_key})
                return None
            if entry.is_expired():
                del self._store[full_key]
                logger.debug("Cache entry expired", extra={"cache_key": full_key})
                return None
            if not entry.is_alive(lifetime):
                logger.debug(
                    "Cache entry older than requested lifetime",
                    extra={"cache_key": full_key, "lifetime": lifetime},
                )
                return None
        logger.debug("Cache hit", extra={"cache_key": full_key})
        return entry.content

    def exists(self, key: Optional[Key] = None, lifetime: Optional[int] = None) -> bool:
        key = self._key_or_last(key)
        if key is None:
            return False
        with self._lock:
            entry = self._store.get(self._key(key))
            return entry is not None and entry.is_alive(lifetime)

    def delete(self, key: Key) -> bool:
        full_key = self._key(key)
        with self._lock:
            removed = self._store.pop(full_key, None) is not None
        if removed:
            logger.info("Cache entry deleted", extra={"cache_key": full_key})
        return removed

    def _write_entry(self, full_key: str, content: Any, lifetime: Optional[int]) -> None:
        entry = CacheEntry.create(full_key, content, lifetime)
        with self._lock:
            if full_key in self._store:
                del self._store[full_key]
            elif len(self._store) >= self._max_entries:
                evicted, _ = self._store.popitem(last=False)
                logger.debug("Cache entry evicted", extra={"cache_key": evicted})
            self._store[full_key] = entry
        logger.debug("Cache set", extra={"cache_key": full_key, "lifetime": lifetime})

    def clear(self) -> int:
        """Remove all entries.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            count = len(self._store)
            self._store.clear()
        logger.info("Cache cleared", extra={"entries_removed": count})
        return count

    def cleanup_expired(self) -> int:
        """Remove all expired entries and return how many were dropped."""
        with self._lock:
            expired_keys = [k for k, entry in self._store.items() if entry.is_expired()]
            for k in expired_keys:
                del self._store[k]
        if expired_keys:
            logger.info("Expired entries cleaned up", extra={"count": len(expired_keys)})
        return len(expired_keys)

    @property
    def size(self) -> int:
        """Current number of stored entries (expired ones included)."""
        return len(self._store)
