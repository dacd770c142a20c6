"""In-memory response cache using cachetools.TLRUCache.

Holds short-lived results of read-only upstream calls (observation feed
pages, reverse-geocoding lookups).  Each entry carries its own TTL; the
least recently used entry is evicted once ``max_size`` is reached.
Not shared across processes: a multi-worker deployment should swap in a
Redis adapter implementing ICacheProvider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from cachetools import TLRUCache

from src.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class _Item:
    value: Any
    ttl: float


def _time_to_use(_key: str, item: _Item, now: float) -> float:
    return now + item.ttl


class MemoryCacheProvider(ICacheProvider):
    """In-memory cache with per-entry expiry.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    ttl:
        Default time-to-live in seconds for entries stored without one.
    """

    def __init__(self, max_size: int = 1000, ttl: int = 900) -> None:
        self._default_ttl = ttl
        self._cache: TLRUCache[str, _Item] = TLRUCache(maxsize=max_size, ttu=_time_to_use)

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        item = self._cache.get(key)
        if item is None:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return item.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._cache[key] = _Item(value=value, ttl=ttl if ttl is not None else self._default_ttl)
        logger.debug("cache_set", key=key)

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self._cache

