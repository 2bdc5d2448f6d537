"""Public interface definitions for all external collaborators.

Every external service WallpaperVerse touches (stock-photo APIs, the
database, the cache) is accessed exclusively through the abstract base
classes defined in this package.  Concrete adapters live in
``wallpaperverse/providers/`` and are injected into the services at startup
in ``wallpaperverse/main.py`` (or by the CLI), so unit tests can hand the
services fakes without a live database or cache.

CONCRETE PROVIDER MAP:
    Interface               →  Concrete implementations
    ─────────────────────────────────────────────────────────────────
    IImageSourceProvider    →  UnsplashProvider, PexelsProvider,
                               PixabayProvider
    ICacheProvider          →  MemoryCacheProvider, RedisCacheProvider
    IWallpaperStore         →  SQLiteWallpaperStore
"""

from wallpaperverse.interfaces.cache_provider import ICacheProvider
from wallpaperverse.interfaces.image_source_provider import IImageSourceProvider
from wallpaperverse.interfaces.wallpaper_store import IWallpaperStore

__all__ = [
    "ICacheProvider",
    "IImageSourceProvider",
    "IWallpaperStore",
]
