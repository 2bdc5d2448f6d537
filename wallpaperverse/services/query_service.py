"""Cached read side of the gallery.

Every read goes through the same read-through path: build a
deterministic key from the operation and its arguments, return the cached
payload when there is one, otherwise query the store and cache the JSON
result.  A cache backend error or a payload that no longer validates is
just a miss.

View and download recording lives here too because it is the write that
makes cached reads stale: each recorded event drops the affected
wallpaper's keys and every trending list.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from wallpaperverse.interfaces.cache_provider import ICacheProvider
from wallpaperverse.interfaces.wallpaper_store import IWallpaperStore
from wallpaperverse.models.results import GalleryStats, WallpaperPage
from wallpaperverse.models.wallpaper import Category, DownloadEvent, ViewEvent, Wallpaper
from wallpaperverse.utils.errors import (
    CacheError,
    CategoryNotFoundError,
    PersistenceError,
    WallpaperNotFoundError,
)
from wallpaperverse.utils.text_normalizer import normalize_query

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")

_WALLPAPER_LIST = TypeAdapter(list[Wallpaper])
_CATEGORY_LIST = TypeAdapter(list[Category])
_WALLPAPER = TypeAdapter(Wallpaper)
_PAGE = TypeAdapter(WallpaperPage)
_STATS = TypeAdapter(GalleryStats)


def _offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


class WallpaperQueryService:
    """Read-through cached queries over an :class:`IWallpaperStore`.

    Parameters
    ----------
    store:
        Gallery persistence.
    cache:
        Any :class:`ICacheProvider`; values are stored as JSON text.
    cache_ttl:
        TTL in seconds for listings, single wallpapers and stats.
    search_cache_ttl:
        TTL in seconds for search results.
    """

    def __init__(
        self,
        store: IWallpaperStore,
        cache: ICacheProvider,
        cache_ttl: int = 3600,
        search_cache_ttl: int = 1800,
    ) -> None:
        self._store = store
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._search_cache_ttl = search_cache_ttl

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def get_trending(self, limit: int = 20) -> list[Wallpaper]:
        return await self._cached(
            f"trending_wallpapers_{limit}",
            _WALLPAPER_LIST,
            lambda: self._store.list_trending(limit),
        )

    async def get_latest(self, page: int = 1, limit: int = 20) -> WallpaperPage:
        async def _load() -> WallpaperPage:
            items, total = await self._store.list_latest(limit, offset=_offset(page, limit))
            return WallpaperPage(items=items, total=total, page=page, limit=limit)

        return await self._cached(f"latest_wallpapers_{page}_{limit}", _PAGE, _load)

    async def get_featured(self, limit: int = 10) -> list[Wallpaper]:
        """Curated wallpapers, or the most popular ones when none are curated."""

        async def _load() -> list[Wallpaper]:
            featured = await self._store.list_featured(limit)
            if featured:
                return featured
            logger.debug("featured_fallback_high_quality", limit=limit)
            return await self._store.list_high_quality(limit)

        return await self._cached(f"featured_wallpapers_{limit}", _WALLPAPER_LIST, _load)

    async def get_by_category(self, slug: str, page: int = 1, limit: int = 20) -> WallpaperPage:
        """Paginated wallpapers of one category.

        Raises
        ------
        CategoryNotFoundError
            If *slug* names no active category.
        """

        async def _load() -> WallpaperPage:
            category = await self._store.get_category_by_slug(slug)
            if category is None or not category.is_active:
                raise CategoryNotFoundError(f"Unknown category '{slug}'")
            items, total = await self._store.list_by_category(category.id, limit, offset=_offset(page, limit))
            return WallpaperPage(items=items, total=total, page=page, limit=limit)

        return await self._cached(f"category_wallpapers_{slug}_{page}_{limit}", _PAGE, _load)

    async def search(self, query: str, page: int = 1, limit: int = 20) -> WallpaperPage:
        term = normalize_query(query)
        if not term:
            return WallpaperPage(items=[], total=0, page=page, limit=limit)

        async def _load() -> WallpaperPage:
            items, total = await self._store.search(term, limit, offset=_offset(page, limit))
            return WallpaperPage(items=items, total=total, page=page, limit=limit)

        return await self._cached(
            f"search_wallpapers_{term}_{page}_{limit}",
            _PAGE,
            _load,
            ttl=self._search_cache_ttl,
        )

    async def get_wallpaper(self, wallpaper_id: int) -> Wallpaper | None:
        return await self._cached(
            f"wallpaper_{wallpaper_id}",
            _WALLPAPER,
            lambda: self._store.get_wallpaper(wallpaper_id),
        )

    async def get_categories(self) -> list[Category]:
        return await self._cached(
            "categories_all",
            _CATEGORY_LIST,
            lambda: self._store.list_categories(active_only=True),
        )

    async def get_stats(self) -> GalleryStats:
        return await self._cached("stats_overview", _STATS, self._store.get_stats)

    # ------------------------------------------------------------------
    # Writes that invalidate reads
    # ------------------------------------------------------------------

    async def record_view(self, wallpaper_id: int, event: ViewEvent | None = None) -> bool:
        """Record a view and bump the counter.  Never raises."""
        try:
            recorded = await self._store.record_view(wallpaper_id, event or ViewEvent())
        except PersistenceError as exc:
            logger.error("view_record_failed", wallpaper_id=wallpaper_id, error=str(exc))
            return False
        if not recorded:
            logger.warning("view_unknown_wallpaper", wallpaper_id=wallpaper_id)
            return False
        await self._invalidate_wallpaper(wallpaper_id)
        return True

    async def record_download(self, wallpaper_id: int, event: DownloadEvent | None = None) -> bool:
        """Record a download and bump the counter.  Never raises."""
        try:
            recorded = await self._store.record_download(wallpaper_id, event or DownloadEvent())
        except PersistenceError as exc:
            logger.error("download_record_failed", wallpaper_id=wallpaper_id, error=str(exc))
            return False
        if not recorded:
            logger.warning("download_unknown_wallpaper", wallpaper_id=wallpaper_id)
            return False
        await self._invalidate_wallpaper(wallpaper_id)
        return True

    async def set_featured(self, wallpaper_id: int, featured: bool = True) -> Wallpaper:
        """Flag or unflag a wallpaper as featured.

        Raises
        ------
        WallpaperNotFoundError
            If no wallpaper has that id.
        """
        wallpaper = await self._store.set_featured(wallpaper_id, featured)
        if wallpaper is None:
            raise WallpaperNotFoundError(f"Wallpaper {wallpaper_id} not found")
        await self._delete(f"wallpaper_{wallpaper_id}")
        await self._clear("featured_wallpapers_*")
        logger.info("wallpaper_featured_set", wallpaper_id=wallpaper_id, featured=featured)
        return wallpaper

    # ------------------------------------------------------------------
    # Cache plumbing
    # ------------------------------------------------------------------

    async def _cached(
        self,
        key: str,
        adapter: TypeAdapter[Any],
        loader: Callable[[], Awaitable[_T]],
        ttl: int | None = None,
    ) -> _T:
        try:
            payload = await self._cache.get(key)
        except CacheError as exc:
            logger.warning("cache_read_failed", key=key, error=str(exc))
            payload = None

        if payload is not None:
            try:
                return adapter.validate_json(payload)
            except ValidationError as exc:
                logger.warning("cache_payload_invalid", key=key, error=str(exc))

        value = await loader()
        if value is None:
            return value

        try:
            await self._cache.set(key, adapter.dump_json(value).decode("utf-8"), ttl or self._cache_ttl)
        except CacheError as exc:
            logger.warning("cache_write_failed", key=key, error=str(exc))
        return value

    async def _invalidate_wallpaper(self, wallpaper_id: int) -> None:
        await self._delete(f"wallpaper_{wallpaper_id}")
        await self._clear(f"wallpaper_{wallpaper_id}_*")
        await self._clear("trending_wallpapers_*")

    async def _delete(self, key: str) -> None:
        try:
            await self._cache.delete(key)
        except CacheError as exc:
            logger.warning("cache_delete_failed", key=key, error=str(exc))

    async def _clear(self, pattern: str) -> None:
        try:
            await self._cache.clear_pattern(pattern)
        except CacheError as exc:
            logger.warning("cache_invalidation_failed", pattern=pattern, error=str(exc))
