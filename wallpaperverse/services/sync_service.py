"""Ingestion pipeline: stock-photo sources -> gallery store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services (business logic orchestration).
# Depends on: IImageSourceProvider, IWallpaperStore, ICacheProvider.
#
# A full sync walks every active category one at a time:
#
#   1. SEARCH TERM   the category's mapped query (slug as fallback).
#   2. FAN-OUT       every source is searched concurrently for an equal
#                    share of the per-category budget; a raising source
#                    contributes nothing.
#   3. UPSERT        every item is saved concurrently, bounded by a
#                    semaphore.  Known external ids only refresh their
#                    counters; new ones are inserted together with their
#                    tags and category count in a single transaction.
#   4. INVALIDATE    cached wallpaper and category reads are dropped.
#
# Individual save failures are counted and logged, never retried.  The
# UNIQUE constraint on external_id is the only guard against two
# concurrent writers inserting the same item; the loser gets None.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import functools

import structlog

from wallpaperverse.config.categories import resolve_search_term
from wallpaperverse.config.settings import Settings
from wallpaperverse.interfaces.cache_provider import ICacheProvider
from wallpaperverse.interfaces.image_source_provider import IImageSourceProvider
from wallpaperverse.interfaces.wallpaper_store import IWallpaperStore
from wallpaperverse.models.results import SyncResult, SyncSummary
from wallpaperverse.models.wallpaper import (
    Category,
    ExternalItem,
    ImageSource,
    NewWallpaper,
    Wallpaper,
)
from wallpaperverse.utils.concurrency import gather_sources, throttled_gather
from wallpaperverse.utils.errors import (
    CacheError,
    CategoryNotFoundError,
    DuplicateWallpaperError,
    PersistenceError,
)

logger = structlog.get_logger(logger_name=__name__)

_SYNC_INVALIDATION_PATTERNS = ("*wallpaper*", "*categor*", "stats_*")
_STATISTICS_INVALIDATION_PATTERNS = ("*wallpaper*", "*categor*")


class WallpaperSyncService:
    """Pulls wallpapers from every configured source into the store.

    All collaborators are constructor-injected.  ``category_queries``
    overrides entries of the built-in category -> search term table
    (usually ``config["sync"]["category_queries"]``).
    """

    def __init__(
        self,
        store: IWallpaperStore,
        cache: ICacheProvider,
        sources: list[IImageSourceProvider],
        settings: Settings,
        category_queries: dict[str, str] | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._sources = list(sources)
        self._category_queries = dict(category_queries or {})
        self._items_per_category = settings.sync_items_per_category
        self._category_delay = settings.sync_category_delay
        self._save_concurrency = max(1, settings.sync_save_concurrency)

    # ── Public API ─────────────────────────────────────────────────────

    async def sync_from_all_sources(self) -> SyncSummary:
        """Sync every active category in turn.

        A category that raises is logged and recorded in
        ``failed_categories``; the remaining categories still run.
        """
        categories = await self._store.list_categories(active_only=True)
        logger.info("sync_started", categories=len(categories), sources=len(self._sources))

        results: list[SyncResult] = []
        failed_categories: list[str] = []
        for index, category in enumerate(categories):
            if index and self._category_delay > 0:
                await asyncio.sleep(self._category_delay)
            try:
                results.append(await self.sync_category(category))
            except Exception as exc:
                logger.error(
                    "category_sync_failed",
                    category=category.slug,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                failed_categories.append(category.slug)

        summary = SyncSummary(results=results, failed_categories=failed_categories)
        logger.info(
            "sync_complete",
            saved=summary.saved,
            failed=summary.failed,
            failed_categories=failed_categories,
        )
        return summary

    async def sync_category_by_slug(self, slug: str) -> SyncResult:
        """Look up *slug* and sync it.

        Raises
        ------
        CategoryNotFoundError
            If no category has that slug.
        """
        category = await self._store.get_category_by_slug(slug)
        if category is None:
            raise CategoryNotFoundError(f"Unknown category '{slug}'")
        return await self.sync_category(category)

    async def sync_category(self, category: Category) -> SyncResult:
        """Fetch one category from every source and upsert the results."""
        search_term = resolve_search_term(category.slug, self._category_queries)
        per_source = self._items_per_category // len(self._sources) if self._sources else 0

        if per_source == 0:
            logger.warning(
                "category_sync_skipped",
                category=category.slug,
                sources=len(self._sources),
                budget=self._items_per_category,
            )
            return SyncResult(category_slug=category.slug, search_term=search_term, per_source=0)

        fetched = await gather_sources(
            {
                source.get_provider_name(): functools.partial(source.search_photos, search_term, 1, per_source)
                for source in self._sources
            },
            logger=logger,
        )

        pending: list[tuple[ExternalItem, ImageSource]] = [
            (item, source.source)
            for source in self._sources
            for item in fetched.get(source.get_provider_name(), [])
        ]
        outcomes = await throttled_gather(
            [self.save_wallpaper(item, category.id, image_source) for item, image_source in pending],
            semaphore=asyncio.Semaphore(self._save_concurrency),
        )

        saved = 0
        for (item, _), outcome in zip(pending, outcomes):
            if isinstance(outcome, Wallpaper):
                saved += 1
            elif isinstance(outcome, BaseException):
                logger.error(
                    "wallpaper_save_crashed",
                    external_id=item.id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )

        await self._invalidate(*_SYNC_INVALIDATION_PATTERNS)

        result = SyncResult(
            category_slug=category.slug,
            search_term=search_term,
            per_source=per_source,
            fetched={name: len(items) for name, items in fetched.items()},
            saved=saved,
            failed=len(pending) - saved,
        )
        logger.info(
            "category_synced",
            category=category.slug,
            search_term=search_term,
            fetched=result.fetched,
            saved=result.saved,
            failed=result.failed,
        )
        return result

    async def save_wallpaper(
        self,
        item: ExternalItem,
        category_id: int,
        source: ImageSource,
    ) -> Wallpaper | None:
        """Insert *item* or refresh the counters of its existing row.

        An existing row keeps its own counter wherever the incoming value
        is zero; no content field is ever overwritten.  Returns ``None``
        when the store rejects the write.
        """
        try:
            existing = await self._store.find_by_external_id(item.id)
            if existing is not None:
                refreshed = await self._store.update_counters(
                    existing.id,
                    views=item.views or existing.views,
                    downloads=item.downloads or existing.downloads,
                    likes=item.likes or existing.likes,
                )
                logger.debug("wallpaper_refreshed", external_id=item.id, wallpaper_id=existing.id)
                return refreshed

            tag_names = list(dict.fromkeys(t for t in item.tags if t))
            created = await self._store.create_wallpaper_with_tags(
                NewWallpaper.from_external(item, category_id=category_id, source=source),
                tag_names,
            )
        except DuplicateWallpaperError:
            logger.info("wallpaper_duplicate_skipped", external_id=item.id)
            return None
        except PersistenceError as exc:
            logger.error("wallpaper_save_failed", external_id=item.id, error=str(exc))
            return None

        logger.debug("wallpaper_saved", external_id=item.id, wallpaper_id=created.id, tags=len(tag_names))
        return created

    async def update_statistics(self) -> dict[str, int]:
        """Recompute denormalized category and tag counts from the join tables."""
        categories = await self._store.recompute_category_counts()
        tags = await self._store.recompute_tag_counts()
        await self._invalidate(*_STATISTICS_INVALIDATION_PATTERNS)
        logger.info("statistics_updated", categories=categories, tags=tags)
        return {"categories": categories, "tags": tags}

    # ── Internals ──────────────────────────────────────────────────────

    async def _invalidate(self, *patterns: str) -> None:
        for pattern in patterns:
            try:
                await self._cache.clear_pattern(pattern)
            except CacheError as exc:
                logger.warning("cache_invalidation_failed", pattern=pattern, error=str(exc))
