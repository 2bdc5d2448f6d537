"""Unit tests for SQLiteWallpaperStore.

Runs every query against a temporary database file seeded with the
default categories.
"""

from __future__ import annotations

import pytest

from wallpaperverse.models.wallpaper import DownloadEvent, ImageSource, ViewEvent
from wallpaperverse.providers.store.sqlite_wallpaper_store import SQLiteWallpaperStore
from wallpaperverse.utils.errors import DuplicateWallpaperError, PersistenceError


async def _category_id(store: SQLiteWallpaperStore, slug: str = "nature") -> int:
    category = await store.get_category_by_slug(slug)
    assert category is not None
    return category.id


# ─── Initialization & categories ──────────────────────────────────

@pytest.mark.asyncio
async def test_double_initialize_is_idempotent(store):
    await store.initialize()
    assert await store.ping() is True


@pytest.mark.asyncio
async def test_ensure_categories_skips_existing(store):
    inserted = await store.ensure_categories(
        [
            {"name": "Nature", "slug": "nature"},
            {"name": "Cars", "slug": "cars", "description": "Fast ones"},
        ]
    )
    assert inserted == 1

    categories = await store.list_categories()
    slugs = [c.slug for c in categories]
    assert "cars" in slugs
    assert [c.name for c in categories] == sorted(c.name for c in categories)


@pytest.mark.asyncio
async def test_get_category_by_slug_unknown(store):
    assert await store.get_category_by_slug("nope") is None


@pytest.mark.asyncio
async def test_ping_fails_for_unusable_path(tmp_path):
    bad = SQLiteWallpaperStore(db_path=tmp_path / "missing-dir" / "nested" / "x.db")
    assert await bad.ping() is False


# ─── Wallpaper writes ─────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_and_find_by_external_id(store, make_new_wallpaper):
    category_id = await _category_id(store)
    created = await store.create_wallpaper(make_new_wallpaper(category_id, native_id="x1", width=3000, height=2000))

    assert created.id > 0
    assert created.external_id == "unsplash_x1"
    assert created.source == ImageSource.UNSPLASH
    assert created.aspect_ratio == pytest.approx(1.5)
    assert created.is_active is True
    assert created.is_featured is False

    found = await store.find_by_external_id("unsplash_x1")
    assert found is not None
    assert found.id == created.id


@pytest.mark.asyncio
async def test_duplicate_external_id_raises(store, make_new_wallpaper):
    category_id = await _category_id(store)
    await store.create_wallpaper(make_new_wallpaper(category_id, native_id="dup"))

    with pytest.raises(DuplicateWallpaperError):
        await store.create_wallpaper(make_new_wallpaper(category_id, native_id="dup"))


@pytest.mark.asyncio
async def test_duplicate_is_a_persistence_error(store, make_new_wallpaper):
    category_id = await _category_id(store)
    await store.create_wallpaper(make_new_wallpaper(category_id, native_id="dup"))

    with pytest.raises(PersistenceError):
        await store.create_wallpaper(make_new_wallpaper(category_id, native_id="dup"))


@pytest.mark.asyncio
async def test_create_with_tags_commits_everything(store, make_new_wallpaper):
    category_id = await _category_id(store)

    created = await store.create_wallpaper_with_tags(
        make_new_wallpaper(category_id, native_id="t1"), ["forest", "mist", "forest"]
    )

    assert created.tags == ["forest", "mist"]
    assert (await store.get_wallpaper(created.id)).tags == ["forest", "mist"]
    assert (await store.get_category_by_slug("nature")).wallpaper_count == 1
    assert (await store.get_stats()).total_tags == 2


@pytest.mark.asyncio
async def test_create_with_tags_duplicate_rolls_back_tag_counts(store, make_new_wallpaper):
    category_id = await _category_id(store)
    await store.create_wallpaper_with_tags(make_new_wallpaper(category_id, native_id="d"), ["forest"])

    with pytest.raises(DuplicateWallpaperError):
        await store.create_wallpaper_with_tags(make_new_wallpaper(category_id, native_id="d"), ["forest", "new"])

    assert (await store.get_stats()).total_tags == 1
    assert (await store.get_category_by_slug("nature")).wallpaper_count == 1


@pytest.mark.asyncio
async def test_unknown_category_violates_foreign_key(store, make_new_wallpaper):
    with pytest.raises(PersistenceError):
        await store.create_wallpaper(make_new_wallpaper(9999, native_id="orphan"))


@pytest.mark.asyncio
async def test_update_counters(store, make_new_wallpaper):
    category_id = await _category_id(store)
    created = await store.create_wallpaper(make_new_wallpaper(category_id, views=5))

    updated = await store.update_counters(created.id, views=50, downloads=7, likes=3)

    assert (updated.views, updated.downloads, updated.likes) == (50, 7, 3)
    assert updated.aspect_ratio == created.aspect_ratio
    assert updated.title == created.title


@pytest.mark.asyncio
async def test_upsert_tag_increments_count(store):
    first = await store.upsert_tag("forest")
    second = await store.upsert_tag("forest")

    assert first.id == second.id
    assert first.wallpaper_count == 1
    assert second.wallpaper_count == 2


@pytest.mark.asyncio
async def test_link_tag_is_idempotent(store, make_new_wallpaper):
    category_id = await _category_id(store)
    created = await store.create_wallpaper(make_new_wallpaper(category_id))
    tag = await store.upsert_tag("forest")

    await store.link_tag(created.id, tag.id)
    await store.link_tag(created.id, tag.id)

    wallpaper = await store.get_wallpaper(created.id)
    assert wallpaper.tags == ["forest"]


@pytest.mark.asyncio
async def test_set_featured(store, make_new_wallpaper):
    category_id = await _category_id(store)
    created = await store.create_wallpaper(make_new_wallpaper(category_id))

    flagged = await store.set_featured(created.id, True)
    assert flagged.is_featured is True
    assert await store.set_featured(424242, True) is None


# ─── Wallpaper reads ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_get_wallpaper_includes_category_slug_and_tags(store, make_new_wallpaper):
    category_id = await _category_id(store, "space")
    created = await store.create_wallpaper(make_new_wallpaper(category_id))
    for name in ("nebula", "galaxy"):
        tag = await store.upsert_tag(name)
        await store.link_tag(created.id, tag.id)

    wallpaper = await store.get_wallpaper(created.id)

    assert wallpaper.category_slug == "space"
    assert wallpaper.tags == ["galaxy", "nebula"]
    assert await store.get_wallpaper(987654) is None


@pytest.mark.asyncio
async def test_list_trending_orders_by_popularity(store, make_new_wallpaper):
    category_id = await _category_id(store)
    low = await store.create_wallpaper(make_new_wallpaper(category_id, native_id="low", views=10))
    tie_a = await store.create_wallpaper(make_new_wallpaper(category_id, native_id="a", views=100, downloads=1))
    tie_b = await store.create_wallpaper(make_new_wallpaper(category_id, native_id="b", views=100, downloads=5))

    trending = await store.list_trending(limit=10)

    assert [w.id for w in trending] == [tie_b.id, tie_a.id, low.id]


@pytest.mark.asyncio
async def test_list_latest_paginates_newest_first(store, make_new_wallpaper):
    category_id = await _category_id(store)
    ids = [
        (await store.create_wallpaper(make_new_wallpaper(category_id, native_id=f"n{i}"))).id
        for i in range(5)
    ]

    items, total = await store.list_latest(limit=2, offset=2)

    assert total == 5
    assert [w.id for w in items] == [ids[2], ids[1]]


@pytest.mark.asyncio
async def test_featured_and_high_quality(store, make_new_wallpaper):
    category_id = await _category_id(store)
    popular = await store.create_wallpaper(
        make_new_wallpaper(category_id, native_id="pop", views=5000, downloads=400)
    )
    await store.create_wallpaper(make_new_wallpaper(category_id, native_id="meh", views=5000, downloads=10))

    assert await store.list_featured(limit=10) == []
    assert [w.id for w in await store.list_high_quality(limit=10)] == [popular.id]

    await store.set_featured(popular.id, True)
    assert [w.id for w in await store.list_featured(limit=10)] == [popular.id]


@pytest.mark.asyncio
async def test_list_by_category_filters(store, make_new_wallpaper):
    nature = await _category_id(store, "nature")
    city = await _category_id(store, "city")
    await store.create_wallpaper(make_new_wallpaper(nature, native_id="n1"))
    await store.create_wallpaper(make_new_wallpaper(city, native_id="c1"))
    await store.create_wallpaper(make_new_wallpaper(city, native_id="c2"))

    items, total = await store.list_by_category(city, limit=10)

    assert total == 2
    assert {w.external_id for w in items} == {"unsplash_c1", "unsplash_c2"}


@pytest.mark.asyncio
async def test_search_matches_text_and_tags_case_insensitively(store, make_new_wallpaper):
    category_id = await _category_id(store)
    by_title = await store.create_wallpaper(make_new_wallpaper(category_id, native_id="t", title="Golden SUNSET"))
    by_tag = await store.create_wallpaper(make_new_wallpaper(category_id, native_id="g", title="Beach"))
    await store.create_wallpaper(make_new_wallpaper(category_id, native_id="none", title="Snowy peak"))
    tag = await store.upsert_tag("sunset")
    await store.link_tag(by_tag.id, tag.id)

    items, total = await store.search("sunset", limit=10)

    assert total == 2
    assert {w.id for w in items} == {by_title.id, by_tag.id}


@pytest.mark.asyncio
async def test_search_escapes_like_wildcards(store, make_new_wallpaper):
    category_id = await _category_id(store)
    await store.create_wallpaper(make_new_wallpaper(category_id, native_id="a", title="plain"))
    await store.create_wallpaper(make_new_wallpaper(category_id, native_id="b", title="100% sharp"))

    _, total = await store.search("%", limit=10)

    assert total == 1


@pytest.mark.asyncio
async def test_search_pagination_over_45_rows(store, make_new_wallpaper):
    category_id = await _category_id(store)
    ids = []
    for i in range(45):
        created = await store.create_wallpaper(
            make_new_wallpaper(category_id, native_id=f"s{i}", title=f"Sunset {i}", views=1000 - i)
        )
        ids.append(created.id)

    items, total = await store.search("sunset", limit=20, offset=20)

    assert total == 45
    assert [w.id for w in items] == ids[20:40]


# ─── Events, reconciliation & stats ───────────────────────────────

@pytest.mark.asyncio
async def test_record_view_and_download(store, make_new_wallpaper):
    category_id = await _category_id(store)
    created = await store.create_wallpaper(make_new_wallpaper(category_id, views=3, downloads=1))

    assert await store.record_view(created.id, ViewEvent(user_agent="pytest")) is True
    assert await store.record_download(created.id, DownloadEvent(ip_address="127.0.0.1")) is True

    wallpaper = await store.get_wallpaper(created.id)
    assert wallpaper.views == 4
    assert wallpaper.downloads == 2


@pytest.mark.asyncio
async def test_record_view_unknown_wallpaper(store):
    assert await store.record_view(31337, ViewEvent()) is False
    assert await store.record_download(31337, DownloadEvent()) is False


@pytest.mark.asyncio
async def test_recompute_counts_and_stats(store, make_new_wallpaper):
    nature = await _category_id(store, "nature")
    first = await store.create_wallpaper(make_new_wallpaper(nature, native_id="1", views=10, downloads=2))
    await store.create_wallpaper(make_new_wallpaper(nature, native_id="2", views=5, downloads=1))
    tag = await store.upsert_tag("forest")
    await store.upsert_tag("forest")  # drifted: count 2, one link
    await store.link_tag(first.id, tag.id)
    await store.increment_category_count(nature, amount=7)  # drifted

    await store.recompute_category_counts()
    await store.recompute_tag_counts()

    category = await store.get_category_by_slug("nature")
    assert category.wallpaper_count == 2
    tags = await store.upsert_tag("forest")
    assert tags.wallpaper_count == 2  # 1 after recompute, +1 from this upsert

    stats = await store.get_stats()
    assert stats.total_wallpapers == 2
    assert stats.total_views == 15
    assert stats.total_downloads == 3
    assert stats.total_tags == 1
    assert stats.total_categories == 10


def test_provider_name():
    assert SQLiteWallpaperStore(db_path=":memory:").get_provider_name() == "sqlite"
