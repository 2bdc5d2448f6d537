"""WallpaperVerse domain models; re-exports all public model classes.

The models are organized across two submodules:
    - wallpaper.py: entities (ExternalItem, Wallpaper, Category, Tag, events)
    - results.py: paginated read results, stats and sync reports
"""

from __future__ import annotations

from wallpaperverse.models.results import GalleryStats, SyncResult, SyncSummary, WallpaperPage
from wallpaperverse.models.wallpaper import (
    Attribution,
    Category,
    DownloadEvent,
    ExternalItem,
    ImageSource,
    ImageUrls,
    NewWallpaper,
    Tag,
    ViewEvent,
    Wallpaper,
)

__all__ = [
    "Attribution",
    "Category",
    "DownloadEvent",
    "ExternalItem",
    "GalleryStats",
    "ImageSource",
    "ImageUrls",
    "NewWallpaper",
    "SyncResult",
    "SyncSummary",
    "Tag",
    "ViewEvent",
    "Wallpaper",
    "WallpaperPage",
]
