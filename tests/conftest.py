"""Shared pytest fixtures for the WallpaperVerse test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest
import pytest_asyncio

from wallpaperverse.config.categories import DEFAULT_CATEGORIES
from wallpaperverse.config.settings import Settings
from wallpaperverse.models.wallpaper import (
    Attribution,
    ExternalItem,
    ImageSource,
    ImageUrls,
    NewWallpaper,
)
from wallpaperverse.providers.cache.memory_cache import MemoryCacheProvider
from wallpaperverse.providers.store.sqlite_wallpaper_store import SQLiteWallpaperStore


# ---------------------------------------------------------------------------
# Settings & domain objects
# ---------------------------------------------------------------------------


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Return a factory for Settings that ignores any local ``.env`` file."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "unsplash_access_key": "unsplash-test-key",
            "pexels_api_key": "pexels-test-key",
            "pixabay_api_key": "pixabay-test-key",
            "database_path": str(tmp_path / "gallery.db"),
            "redis_url": "",
            "sync_category_delay": 0.0,
            "admin_token": "",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def make_item() -> Callable[..., ExternalItem]:
    """Return a factory for provider-normalized items."""

    def _make(
        native_id: str | int = "abc",
        source: ImageSource = ImageSource.UNSPLASH,
        title: str | None = "Misty forest at dawn",
        description: str | None = None,
        width: int = 1920,
        height: int = 1080,
        tags: list[str] | None = None,
        views: int = 0,
        downloads: int = 0,
        likes: int = 0,
    ) -> ExternalItem:
        return ExternalItem(
            id=source.external_id(native_id),
            source=source,
            title=title,
            description=description,
            urls=ImageUrls(
                thumb=f"https://img.test/{native_id}/thumb.jpg",
                small=f"https://img.test/{native_id}/small.jpg",
                regular=f"https://img.test/{native_id}/regular.jpg",
                full=f"https://img.test/{native_id}/full.jpg",
            ),
            width=width,
            height=height,
            attribution=Attribution(name="Ansel", username="ansel"),
            tags=tags or [],
            views=views,
            downloads=downloads,
            likes=likes,
        )

    return _make


@pytest.fixture
def make_new_wallpaper(make_item: Callable[..., ExternalItem]) -> Callable[..., NewWallpaper]:
    def _make(category_id: int, native_id: str | int = "abc", **item_fields: Any) -> NewWallpaper:
        item = make_item(native_id=native_id, **item_fields)
        return NewWallpaper.from_external(item, category_id=category_id, source=item.source)

    return _make


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_cache() -> MemoryCacheProvider:
    return MemoryCacheProvider(max_size=256, ttl=3600)


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> SQLiteWallpaperStore:
    """A freshly initialised SQLite store seeded with the default categories."""
    sqlite_store = SQLiteWallpaperStore(db_path=tmp_path / "gallery.db")
    await sqlite_store.initialize()
    await sqlite_store.ensure_categories(DEFAULT_CATEGORIES)
    return sqlite_store
