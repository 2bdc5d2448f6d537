"""Gallery persistence adapters."""

from wallpaperverse.providers.store.sqlite_wallpaper_store import SQLiteWallpaperStore

__all__ = ["SQLiteWallpaperStore"]
