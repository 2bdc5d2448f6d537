"""WallpaperVerse: a wallpaper gallery aggregated from stock-photo APIs."""

__version__ = "1.0.0"
