"""
Tiered cache aggregator.

Composes an ordered list of backends into one cache.  Reads and existence
checks walk the tiers from index 0 and stop at the first hit; ``start``,
``save`` and ``delete`` are broadcast to every tier in order.  Backend
errors are not caught here: a failing tier aborts the operation and
earlier tiers keep whatever they already received.
"""

import logging
from collections.abc import Sequence
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field

from tiercache.cache.backend import REQUIRED_OPERATIONS, Backend, Key
from tiercache.exceptions import ConfigurationError, InvalidArgumentError

logger = logging.getLogger(__name__)

_NOT_A_HANDLE = (str, bytes, bytearray, int, float, complex, bool, list, tuple, dict, set, frozenset)


class TieredCacheStats(BaseModel):
    """Lookup statistics for a :class:`TieredCache`.

    Attributes:
        hits: Lookups answered by some tier.
        misses: Lookups no tier could answer.
        hit_rate: Ratio of hits to total lookups (0.0 if no lookups).
        tier_hits: Hits per tier, indexed like the backend sequence.
        tier_count: Number of tiers.
    """

    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    tier_hits: List[int] = Field(default_factory=list)
    tier_count: int = 0


def _check_backend(backend: Any) -> None:
    if backend is None or isinstance(backend, (type,) + _NOT_A_HANDLE):
        raise InvalidArgumentError("The backend is not valid")
    if not isinstance(backend, Backend) or not all(
        callable(getattr(backend, op, None)) for op in REQUIRED_OPERATIONS
    ):
        raise InvalidArgumentError("Backend must be an instance of Backend")


class TieredCache:
    """Ordered set of cache tiers behind a single-cache interface.

    Index 0 is consulted first on read and is by convention the fastest
    tier.  Backends are shared references: the aggregator never closes or
    removes them.

    Args:
        backends: Initial tiers, fastest first.  ``None`` means no tiers.
        repopulate: When ``True``, a hit found at tier ``i > 0`` is saved
            back into tiers ``0..i-1`` with the same lifetime.

    Raises:
        ConfigurationError: If ``backends`` is not a sequence.
    """

    def __init__(
        self,
        backends: Optional[Sequence] = None,
        repopulate: bool = False,
    ) -> None:
        if backends is None:
            backends = []
        elif not isinstance(backends, Sequence) or isinstance(backends, (str, bytes, bytearray)):
            raise ConfigurationError("backends must be a sequence of Backend")

        self._backends: List[Backend] = list(backends)
        self._repopulate = repopulate
        self._hits = 0
        self._misses = 0
        self._tier_hits: List[int] = [0] * len(self._backends)
        logger.info(
            "Tiered cache created",
            extra={"tier_count": len(self._backends), "repopulate": repopulate},
        )

    def push(self, backend: Backend) -> "TieredCache":
        """Append ``backend`` as the slowest tier.

        Returns:
            ``self``, so pushes can be chained.

        Raises:
            InvalidArgumentError: If ``backend`` is not a usable backend.
        """
        _check_backend(backend)
        self._backends.append(backend)
        self._tier_hits.append(0)
        logger.info(
            "Backend pushed",
            extra={"tier": len(self._backends) - 1, "backend": type(backend).__name__},
        )
        return self

    def get(self, key: Key, lifetime: Optional[int] = None) -> Optional[Any]:
        """Return content from the first tier that has ``key``, else ``None``."""
        for tier, backend in enumerate(self._backends):
            content = backend.get(key, lifetime)
            if content is None:
                continue

            self._hits += 1
            self._tier_hits[tier] += 1
            logger.debug("Tiered cache hit", extra={"cache_key": key, "tier": tier})
            if self._repopulate and tier > 0:
                self._fill_faster_tiers(tier, key, content, lifetime)
            return content

        self._misses += 1
        logger.debug("Tiered cache miss", extra={"cache_key": key})
        return None

    def _fill_faster_tiers(self, tier: int, key: Key, content: Any, lifetime: Optional[int]) -> None:
        for backend in self._backends[:tier]:
            backend.save(key, content, lifetime, True)
        logger.info(
            "Faster tiers repopulated",
            extra={"cache_key": key, "source_tier": tier},
        )

    def start(self, key: Key, lifetime: Optional[int] = None) -> None:
        """Call ``start`` on every tier, in order."""
        for backend in self._backends:
            backend.start(key, lifetime)

    def save(
        self,
        key: Optional[Key] = None,
        content: Optional[Any] = None,
        lifetime: Optional[int] = None,
        stop_buffer: bool = True,
    ) -> None:
        """Write the same arguments to every tier, in order."""
        for backend in self._backends:
            backend.save(key, content, lifetime, stop_buffer)
        logger.debug(
            "Tiered cache save broadcast",
            extra={"cache_key": key, "tier_count": len(self._backends)},
        )

    def delete(self, key: Key) -> bool:
        """Delete ``key`` from every tier.

        Always returns ``True``; the outcome of individual tiers is not
        reported.
        """
        for backend in self._backends:
            backend.delete(key)
        return True

    def exists(self, key: Optional[Key] = None, lifetime: Optional[int] = None) -> bool:
        """Return ``True`` as soon as one tier reports ``key`` present."""
        for backend in self._backends:
            if backend.exists(key, lifetime):
                return True
        return False

    def stats(self) -> TieredCacheStats:
        total = self._hits + self._misses
        return TieredCacheStats(
            hits=self._hits,
            misses=self._misses,
            hit_rate=self._hits / total if total > 0 else 0.0,
            tier_hits=list(self._tier_hits),
            tier_count=len(self._backends),
        )

    @property
    def backends(self) -> Tuple[Backend, ...]:
        """The tiers in read order."""
        return tuple(self._backends)

    @property
    def repopulate(self) -> bool:
        return self._repopulate

    def __len__(self) -> int:
        return len(self._backends)
