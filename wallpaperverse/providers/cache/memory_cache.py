"""In-memory cache provider using cachetools.TLRUCache.

Simple, fast cache suitable for development and single-process deployments.
Can be swapped for Redis via the ICacheProvider interface.
"""

from __future__ import annotations

import fnmatch
import time
from typing import NamedTuple

import structlog
from cachetools import TLRUCache

from wallpaperverse.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class _Entry(NamedTuple):
    value: str
    ttl: float


def _time_to_use(_key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class MemoryCacheProvider(ICacheProvider):
    """In-memory cache with per-entry expiry backed by ``cachetools.TLRUCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least-recently-used entry
        is evicted.
    ttl:
        Default time-to-live in seconds for entries stored without one.
    timer:
        Clock used for expiry; injectable so tests can move time forward.
    """

    def __init__(self, max_size: int = 2048, ttl: int = 3600, timer=time.monotonic) -> None:
        self._default_ttl = ttl
        self._cache: TLRUCache[str, _Entry] = TLRUCache(
            maxsize=max_size,
            ttu=_time_to_use,
            timer=timer,
        )

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        """Retrieve the cached text for *key*, or ``None`` if missing/expired."""
        entry = self._cache.get(key)
        if entry is None:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return entry.value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store *value* under *key* for *ttl* seconds (default when ``None``)."""
        effective_ttl = self._default_ttl if ttl is None else ttl
        self._cache[key] = _Entry(value=value, ttl=effective_ttl)
        logger.debug("cache_set", key=key, ttl=effective_ttl)

    async def delete(self, key: str) -> None:
        """Remove *key* from the cache (no-op if absent)."""
        self._cache.pop(key, None)
        logger.debug("cache_delete", key=key)

    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present and not expired."""
        return key in self._cache

    async def clear_pattern(self, pattern: str) -> int:
        """Delete every key matching the glob *pattern*."""
        matched = [key for key in list(self._cache.keys()) if fnmatch.fnmatchcase(key, pattern)]
        for key in matched:
            self._cache.pop(key, None)
        logger.debug("cache_clear_pattern", pattern=pattern, removed=len(matched))
        return len(matched)

    async def cleanup(self) -> int:
        """Drop expired entries eagerly instead of waiting for the next access."""
        removed = len(self._cache.expire())
        logger.info("cache_cleanup", removed=removed, remaining=self._cache.currsize)
        return removed

    async def ping(self) -> bool:
        return True

    def get_provider_name(self) -> str:
        return "memory"
