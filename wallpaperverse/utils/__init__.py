"""Utility modules for WallpaperVerse.

- **errors** -- Domain-specific exception hierarchy rooted at
  WallpaperVerseError; each layer raises its own subclass so callers can
  contain failures at the smallest unit.
- **concurrency** -- asyncio fan-out helpers used by the sync pipeline.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- tag-name and search-query normalization.
"""

from wallpaperverse.utils.concurrency import gather_sources, throttled_gather
from wallpaperverse.utils.errors import (
    CacheError,
    CategoryNotFoundError,
    ConfigurationError,
    DuplicateWallpaperError,
    ImageSourceError,
    PersistenceError,
    WallpaperNotFoundError,
    WallpaperVerseError,
)
from wallpaperverse.utils.logging import configure_logging, get_logger
from wallpaperverse.utils.text_normalizer import (
    normalize_query,
    normalize_tag_name,
    split_tag_string,
)

__all__ = [
    "CacheError",
    "CategoryNotFoundError",
    "ConfigurationError",
    "DuplicateWallpaperError",
    "ImageSourceError",
    "PersistenceError",
    "WallpaperNotFoundError",
    "WallpaperVerseError",
    "configure_logging",
    "gather_sources",
    "get_logger",
    "normalize_query",
    "normalize_tag_name",
    "split_tag_string",
    "throttled_gather",
]
