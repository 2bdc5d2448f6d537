"""Unit tests for WallpaperQueryService (read-through caching & invalidation)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from wallpaperverse.models.results import GalleryStats
from wallpaperverse.models.wallpaper import ViewEvent
from wallpaperverse.services.query_service import WallpaperQueryService
from wallpaperverse.utils.errors import (
    CacheError,
    CategoryNotFoundError,
    PersistenceError,
    WallpaperNotFoundError,
)


@pytest.fixture()
def service(store, memory_cache) -> WallpaperQueryService:
    return WallpaperQueryService(store=store, cache=memory_cache, cache_ttl=3600, search_cache_ttl=1800)


async def _seed(store, make_new_wallpaper, count: int, slug: str = "nature", **fields) -> list[int]:
    category = await store.get_category_by_slug(slug)
    ids = []
    for i in range(count):
        created = await store.create_wallpaper(
            make_new_wallpaper(category.id, native_id=f"{slug}-{i}", views=1000 - i, **fields)
        )
        ids.append(created.id)
    return ids


class TestReadThrough:
    @pytest.mark.asyncio
    async def test_trending_is_cached_under_deterministic_key(self, service, store, memory_cache, make_new_wallpaper):
        await _seed(store, make_new_wallpaper, 3)

        first = await service.get_trending(limit=2)

        assert await memory_cache.exists("trending_wallpapers_2")
        assert [w.views for w in first] == [1000, 999]

    @pytest.mark.asyncio
    async def test_cache_hit_skips_the_store(self, memory_cache):
        store = MagicMock()
        store.get_stats = AsyncMock(return_value=GalleryStats(total_wallpapers=7))
        service = WallpaperQueryService(store=store, cache=memory_cache)

        first = await service.get_stats()
        second = await service.get_stats()

        assert first == second
        assert second.total_wallpapers == 7
        store.get_stats.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_search_pagination_and_cache(self, service, store, memory_cache, make_new_wallpaper):
        ids = await _seed(store, make_new_wallpaper, 45, title="Sunset over the bay")

        page = await service.search("Sunset", page=2, limit=20)

        assert page.total == 45
        assert page.page == 2
        assert page.total_pages == 3
        assert [w.id for w in page.items] == ids[20:40]
        assert await memory_cache.exists("search_wallpapers_sunset_2_20")

        # A new row is invisible until the cached page expires or is invalidated.
        await _seed(store, make_new_wallpaper, 1, slug="city", title="Sunset skyline")
        again = await service.search("Sunset", page=2, limit=20)
        assert again.total == 45
        assert [w.id for w in again.items] == ids[20:40]

    @pytest.mark.asyncio
    async def test_search_uses_search_ttl(self):
        store = MagicMock()
        store.search = AsyncMock(return_value=([], 0))
        cache = MagicMock()
        cache.get = AsyncMock(return_value=None)
        cache.set = AsyncMock()
        service = WallpaperQueryService(store=store, cache=cache, cache_ttl=3600, search_cache_ttl=1800)

        await service.search("  Misty   Forest ", page=1, limit=20)

        key, _payload, ttl = cache.set.await_args.args
        assert key == "search_wallpapers_misty forest_1_20"
        assert ttl == 1800
        store.search.assert_awaited_once_with("misty forest", 20, offset=0)

    @pytest.mark.asyncio
    async def test_underscore_and_space_queries_do_not_share_a_cache_entry(
        self, service, store, memory_cache, make_new_wallpaper
    ):
        nature = await store.get_category_by_slug("nature")
        for native_id, title in (("a", "sun set"), ("b", "sun_set"), ("c", "sun set glow")):
            await store.create_wallpaper(make_new_wallpaper(nature.id, native_id=native_id, title=title))

        spaced = await service.search("sun set")
        underscored = await service.search("sun_set")
        double_spaced = await service.search("Sun  Set")

        assert spaced.total == 2
        assert underscored.total == 1
        assert [w.title for w in underscored.items] == ["sun_set"]
        assert double_spaced.total == 2
        assert await memory_cache.exists("search_wallpapers_sun set_1_20")
        assert await memory_cache.exists("search_wallpapers_sun_set_1_20")

    @pytest.mark.asyncio
    async def test_blank_search_returns_empty_page(self, service):
        page = await service.search("   ")
        assert page.total == 0
        assert page.items == []

    @pytest.mark.asyncio
    async def test_cache_error_falls_through_to_store(self, store, make_new_wallpaper):
        await _seed(store, make_new_wallpaper, 2)
        cache = MagicMock()
        cache.get = AsyncMock(side_effect=CacheError("redis down"))
        cache.set = AsyncMock(side_effect=CacheError("redis down"))
        service = WallpaperQueryService(store=store, cache=cache)

        latest = await service.get_latest(page=1, limit=20)

        assert latest.total == 2

    @pytest.mark.asyncio
    async def test_undecodable_payload_is_a_miss(self, service, store, memory_cache, make_new_wallpaper):
        await _seed(store, make_new_wallpaper, 1)
        await memory_cache.set("trending_wallpapers_20", "{not json")

        trending = await service.get_trending()

        assert len(trending) == 1

    @pytest.mark.asyncio
    async def test_latest_and_category_pages(self, service, store, make_new_wallpaper):
        await _seed(store, make_new_wallpaper, 3, slug="nature")
        city_ids = await _seed(store, make_new_wallpaper, 2, slug="city")

        latest = await service.get_latest(page=1, limit=2)
        city = await service.get_by_category("city", page=1, limit=20)

        assert latest.total == 5
        assert latest.total_pages == 3
        assert [w.id for w in latest.items] == [city_ids[1], city_ids[0]]
        assert city.total == 2

    @pytest.mark.asyncio
    async def test_unknown_category_raises(self, service):
        with pytest.raises(CategoryNotFoundError):
            await service.get_by_category("vaporwave")

    @pytest.mark.asyncio
    async def test_featured_falls_back_to_high_quality(self, service, store, make_new_wallpaper):
        nature = await store.get_category_by_slug("nature")
        popular = await store.create_wallpaper(
            make_new_wallpaper(nature.id, native_id="pop", views=2000, downloads=150)
        )
        await store.create_wallpaper(make_new_wallpaper(nature.id, native_id="quiet", views=3, downloads=0))

        featured = await service.get_featured(limit=10)

        assert [w.id for w in featured] == [popular.id]

    @pytest.mark.asyncio
    async def test_missing_wallpaper_is_not_cached(self, service, memory_cache):
        assert await service.get_wallpaper(404) is None
        assert await memory_cache.exists("wallpaper_404") is False

    @pytest.mark.asyncio
    async def test_categories_are_cached(self, service, memory_cache):
        categories = await service.get_categories()

        assert len(categories) == 10
        assert await memory_cache.exists("categories_all")


class TestInvalidation:
    @pytest.mark.asyncio
    async def test_record_view_invalidates_wallpaper_and_trending(self, service, store, memory_cache, make_new_wallpaper):
        (wallpaper_id,) = await _seed(store, make_new_wallpaper, 1)
        await service.get_wallpaper(wallpaper_id)
        await service.get_trending(limit=20)
        await memory_cache.set(f"wallpaper_{wallpaper_id}_related", "[]")
        await memory_cache.set("latest_wallpapers_1_20", "{}")

        recorded = await service.record_view(wallpaper_id, ViewEvent(user_agent="pytest"))

        assert recorded is True
        assert await memory_cache.exists(f"wallpaper_{wallpaper_id}") is False
        assert await memory_cache.exists(f"wallpaper_{wallpaper_id}_related") is False
        assert await memory_cache.exists("trending_wallpapers_20") is False
        assert await memory_cache.exists("latest_wallpapers_1_20") is True

        fresh = await service.get_wallpaper(wallpaper_id)
        assert fresh.views == 1001

    @pytest.mark.asyncio
    async def test_record_download_unknown_wallpaper(self, service):
        assert await service.record_download(999) is False

    @pytest.mark.asyncio
    async def test_record_view_swallows_store_errors(self, memory_cache):
        store = MagicMock()
        store.record_view = AsyncMock(side_effect=PersistenceError("database is locked"))
        service = WallpaperQueryService(store=store, cache=memory_cache)

        assert await service.record_view(1) is False

    @pytest.mark.asyncio
    async def test_record_view_survives_cache_errors(self, store, make_new_wallpaper):
        (wallpaper_id,) = await _seed(store, make_new_wallpaper, 1)
        cache = MagicMock()
        cache.delete = AsyncMock(side_effect=CacheError("down"))
        cache.clear_pattern = AsyncMock(side_effect=CacheError("down"))
        service = WallpaperQueryService(store=store, cache=cache)

        assert await service.record_view(wallpaper_id) is True

    @pytest.mark.asyncio
    async def test_set_featured_clears_featured_lists(self, service, store, memory_cache, make_new_wallpaper):
        (wallpaper_id,) = await _seed(store, make_new_wallpaper, 1, downloads=0)
        assert await service.get_featured(limit=10) == []

        flagged = await service.set_featured(wallpaper_id, True)

        assert flagged.is_featured is True
        featured = await service.get_featured(limit=10)
        assert [w.id for w in featured] == [wallpaper_id]

    @pytest.mark.asyncio
    async def test_set_featured_unknown(self, service):
        with pytest.raises(WallpaperNotFoundError):
            await service.set_featured(12345, True)
