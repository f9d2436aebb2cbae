"""
Backend capability contract for the tiered cache.

Every tier the aggregator talks to satisfies :class:`Backend`: five
operations over a key/content/lifetime triple.  :class:`BaseBackend` is a
template for concrete tiers that adds the start/write/save staging
convention (``start`` opens a write buffer on a miss, ``save`` without
content stores what was buffered) so subclasses only implement storage.
"""

import io
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel, Field

from tiercache.exceptions import CacheError

logger = logging.getLogger(__name__)

Key = Union[str, int]

REQUIRED_OPERATIONS = ("get", "save", "start", "delete", "exists")


@runtime_checkable
class Backend(Protocol):
    """Capability every cache tier must provide."""

    def get(self, key: Key, lifetime: Optional[int] = None) -> Optional[Any]:
        ...

    def save(
        self,
        key: Optional[Key] = None,
        content: Optional[Any] = None,
        lifetime: Optional[int] = None,
        stop_buffer: bool = True,
    ) -> None:
        ...

    def start(self, key: Key, lifetime: Optional[int] = None) -> Optional[Any]:
        ...

    def delete(self, key: Key) -> Any:
        ...

    def exists(self, key: Optional[Key] = None, lifetime: Optional[int] = None) -> bool:
        ...


class CacheEntry(BaseModel):
    """A single stored value.

    Attributes:
        key: Fully-qualified storage key (prefix included).
        content: Caller-defined payload.
        created_at: UTC timestamp when the entry was stored.
        expires_at: UTC timestamp when the entry becomes stale, or ``None``
            if it never expires.
        encoding: How ``content`` was encoded for storage (``"base64"`` for
            bytes), or ``None`` when it is stored as-is.
    """

    key: str
    content: Any = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: Optional[datetime] = None
    encoding: Optional[str] = None

    @classmethod
    def create(
        cls,
        key: str,
        content: Any,
        lifetime: Optional[int],
        encoding: Optional[str] = None,
    ) -> "CacheEntry":
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=lifetime) if lifetime is not None else None
        return cls(
            key=key,
            content=content,
            created_at=now,
            expires_at=expires_at,
            encoding=encoding,
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def is_alive(self, lifetime: Optional[int] = None) -> bool:
        """Whether the entry may be served.

        ``lifetime`` is a read-time override: an entry older than that many
        seconds is treated as stale even if its own expiry lies ahead.
        """
        now = datetime.now(timezone.utc)
        if self.is_expired(now):
            return False
        if lifetime is None:
            return True
        return (now - self.created_at).total_seconds() <= lifetime


class BaseBackend(ABC):
    """Template for concrete cache tiers.

    Args:
        default_lifetime: Seconds an entry lives when neither ``save`` nor
            the preceding ``start`` names a lifetime.  ``None`` means
            entries never expire.
        key_prefix: Prepended to every key before it reaches storage.
    """

    def __init__(
        self,
        default_lifetime: Optional[int] = None,
        key_prefix: str = "",
    ) -> None:
        if default_lifetime is not None and default_lifetime <= 0:
            raise ValueError("default_lifetime must be positive")
        self._default_lifetime = default_lifetime
        self._key_prefix = key_prefix
        self._last_key: Optional[Key] = None
        self._last_lifetime: Optional[int] = None
        self._buffer: Optional[io.StringIO] = None
        self._fresh = False
        self._started = False

    # -- storage hooks ------------------------------------------------------

    @abstractmethod
    def get(self, key: Key, lifetime: Optional[int] = None) -> Optional[Any]:
        """Return stored content for ``key`` or ``None`` on a miss."""

    @abstractmethod
    def exists(self, key: Optional[Key] = None, lifetime: Optional[int] = None) -> bool:
        """Return whether ``key`` (or the last started key) is stored."""

    @abstractmethod
    def delete(self, key: Key) -> bool:
        """Remove ``key``; return whether anything was removed."""

    @abstractmethod
    def _write_entry(self, full_key: str, content: Any, lifetime: Optional[int]) -> None:
        """Persist ``content`` under the already-prefixed ``full_key``."""

    # -- staging ------------------------------------------------------------

    def _key(self, key: Key) -> str:
        return f"{self._key_prefix}{key}"

    def _key_or_last(self, key: Optional[Key]) -> Optional[Key]:
        return key if key is not None else self._last_key

    def start(self, key: Key, lifetime: Optional[int] = None) -> Optional[Any]:
        """Begin a cached section for ``key``.

        Returns the cached content when there is a fresh hit.  On a miss a
        write buffer is opened, :meth:`is_fresh` becomes ``True`` and
        ``None`` is returned; the caller then writes and calls :meth:`save`.
        """
        existing = self.get(key, lifetime)
        self._last_key = key
        self._last_lifetime = lifetime
        if existing is not None:
            self._fresh = False
            return existing

        self._fresh = True
        self._started = True
        self._buffer = io.StringIO()
        logger.debug("Backend started buffering", extra={"cache_key": self._key(key)})
        return None

    def write(self, text: str) -> None:
        """Append ``text`` to the buffer opened by :meth:`start`."""
        if self._buffer is None:
            raise CacheError("No write buffer is open; call start() first")
        self._buffer.write(text)

    def save(
        self,
        key: Optional[Key] = None,
        content: Optional[Any] = None,
        lifetime: Optional[int] = None,
        stop_buffer: bool = True,
    ) -> None:
        """Store content, defaulting to the last started key and the buffer.

        Raises:
            CacheError: If no key is given and nothing was started, or there
                is neither content nor an open buffer.
            ValueError: If the resolved lifetime is not positive.
        """
        key = self._key_or_last(key)
        if key is None:
            raise CacheError("Cache must be started first")

        if content is None:
            if self._buffer is None:
                raise CacheError(f"No content to save for key {key!r}")
            content = self._buffer.getvalue()

        if lifetime is None:
            lifetime = self._last_lifetime
        if lifetime is None:
            lifetime = self._default_lifetime
        if lifetime is not None and lifetime <= 0:
            raise ValueError("lifetime must be positive")

        self._write_entry(self._key(key), content, lifetime)
        self._last_key = key

        if stop_buffer:
            self.stop()

    def stop(self, stop_buffer: bool = True) -> None:
        """Close the write buffer and leave the started state."""
        if stop_buffer and self._buffer is not None:
            self._buffer.close()
            self._buffer = None
        self._started = False

    def is_started(self) -> bool:
        return self._started

    def is_fresh(self) -> bool:
        return self._fresh

    def get_last_key(self) -> Optional[Key]:
        return self._last_key

    @property
    def default_lifetime(self) -> Optional[int]:
        return self._default_lifetime
