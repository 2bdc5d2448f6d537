"""Redis cache provider using ``redis.asyncio``.

Shared across worker processes, so pattern invalidation after a sync or a
view reaches every worker.  All keys are namespaced with a prefix so the
cache can share a Redis database with other applications; patterns passed
to :meth:`clear_pattern` are namespaced the same way.

Pattern deletion uses ``SCAN MATCH`` rather than ``KEYS`` so a large key
space never blocks the Redis server.
"""

from __future__ import annotations

import structlog
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from wallpaperverse.interfaces.cache_provider import ICacheProvider
from wallpaperverse.utils.errors import CacheError

logger = structlog.get_logger(logger_name=__name__)

_SCAN_COUNT = 500


class RedisCacheProvider(ICacheProvider):
    """Redis-backed cache.

    Parameters
    ----------
    client:
        A ``redis.asyncio.Redis`` instance created with
        ``decode_responses=True``.  Use :meth:`from_url` to build one.
    key_prefix:
        Namespace prepended to every key.
    ttl:
        Default time-to-live in seconds.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        key_prefix: str = "wallpaperverse:",
        ttl: int = 3600,
    ) -> None:
        self._client = client
        self._prefix = key_prefix
        self._default_ttl = ttl

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "wallpaperverse:", ttl: int = 3600) -> RedisCacheProvider:
        """Build a provider from a ``redis://`` URL."""
        client = aioredis.from_url(url, decode_responses=True)
        return cls(client=client, key_prefix=key_prefix, ttl=ttl)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _wrap(self, operation: str, exc: RedisError) -> CacheError:
        logger.warning("redis_cache_error", operation=operation, error=str(exc))
        return CacheError(
            message=f"Redis {operation} failed: {exc}",
            provider_name=self.get_provider_name(),
        )

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(self._key(key))
        except RedisError as exc:
            raise self._wrap("get", exc) from exc
        logger.debug("cache_hit" if value is not None else "cache_miss", key=key)
        return value

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        effective_ttl = self._default_ttl if ttl is None else ttl
        try:
            await self._client.setex(self._key(key), effective_ttl, value)
        except RedisError as exc:
            raise self._wrap("set", exc) from exc
        logger.debug("cache_set", key=key, ttl=effective_ttl)

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except RedisError as exc:
            raise self._wrap("delete", exc) from exc

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._client.exists(self._key(key)))
        except RedisError as exc:
            raise self._wrap("exists", exc) from exc

    async def clear_pattern(self, pattern: str) -> int:
        removed = 0
        try:
            batch: list[str] = []
            async for key in self._client.scan_iter(match=self._key(pattern), count=_SCAN_COUNT):
                batch.append(key)
                if len(batch) >= _SCAN_COUNT:
                    removed += await self._client.delete(*batch)
                    batch = []
            if batch:
                removed += await self._client.delete(*batch)
        except RedisError as exc:
            raise self._wrap("clear_pattern", exc) from exc
        logger.debug("cache_clear_pattern", pattern=pattern, removed=removed)
        return removed

    async def cleanup(self) -> int:
        """Delete namespaced keys that were stored without an expiry.

        Redis expires TTL'd keys on its own; anything left with no TTL
        (``TTL`` returns ``-1``) can only have been written outside this
        provider and would otherwise live forever.
        """
        removed = 0
        try:
            async for key in self._client.scan_iter(match=self._key("*"), count=_SCAN_COUNT):
                if await self._client.ttl(key) == -1:
                    removed += await self._client.delete(key)
        except RedisError as exc:
            raise self._wrap("cleanup", exc) from exc
        logger.info("cache_cleanup", removed=removed)
        return removed

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as exc:
            logger.warning("redis_ping_failed", error=str(exc))
            return False

    async def close(self) -> None:
        """Release the connection pool."""
        await self._client.aclose()

    def get_provider_name(self) -> str:
        return "redis"
