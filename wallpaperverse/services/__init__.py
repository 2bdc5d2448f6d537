"""Business logic: the ingestion pipeline and the cached read side."""

from wallpaperverse.services.query_service import WallpaperQueryService
from wallpaperverse.services.sync_service import WallpaperSyncService

__all__ = ["WallpaperQueryService", "WallpaperSyncService"]
