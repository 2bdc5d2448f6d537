"""Abstract base class for the gallery persistence layer.

Defines the contract for storing wallpapers, categories, tags and view /
download events.  Implementations must enforce uniqueness on
``wallpapers.external_id``, ``tags.name`` and ``categories.slug``; the
external-id constraint is the last line of defence against two concurrent
syncs inserting the same image.

Every method raises :class:`~wallpaperverse.utils.errors.PersistenceError`
on database failure (``DuplicateWallpaperError`` for an external-id clash).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from wallpaperverse.models.results import GalleryStats
from wallpaperverse.models.wallpaper import (
    Category,
    DownloadEvent,
    NewWallpaper,
    Tag,
    ViewEvent,
    Wallpaper,
)


class IWallpaperStore(ABC):
    """Contract for gallery persistence services.

    All operations are async to support network-backed databases.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    async def ping(self) -> bool:
        """Return ``True`` if the database answers a trivial query."""

    # -- Categories ------------------------------------------------------------

    @abstractmethod
    async def ensure_categories(self, categories: list[dict[str, Any]]) -> int:
        """Insert the given categories if their slug is unknown.

        Existing rows are left untouched.  Returns the number inserted.
        """

    @abstractmethod
    async def list_categories(self, active_only: bool = True) -> list[Category]:
        """Return categories ordered by name."""

    @abstractmethod
    async def get_category_by_slug(self, slug: str) -> Category | None:
        """Return the category with *slug*, or ``None``."""

    @abstractmethod
    async def increment_category_count(self, category_id: int, amount: int = 1) -> None:
        """Bump the denormalized wallpaper count of a category."""

    # -- Wallpapers: write side ----------------------------------------------------

    @abstractmethod
    async def find_by_external_id(self, external_id: str) -> Wallpaper | None:
        """Return the wallpaper with *external_id*, active or not."""

    @abstractmethod
    async def create_wallpaper(self, wallpaper: NewWallpaper) -> Wallpaper:
        """Insert a new wallpaper row and return it.

        Raises
        ------
        DuplicateWallpaperError
            If a row with the same external id already exists.
        """

    @abstractmethod
    async def create_wallpaper_with_tags(self, wallpaper: NewWallpaper, tags: list[str]) -> Wallpaper:
        """Insert a wallpaper, upsert and link its tags, and bump its category count.

        All of it commits together or not at all, so a failure never
        leaves a row behind that later syncs would treat as complete.

        Raises
        ------
        DuplicateWallpaperError
            If a row with the same external id already exists.
        PersistenceError
            On any other database failure (nothing is written).
        """

    @abstractmethod
    async def update_counters(
        self,
        wallpaper_id: int,
        views: int,
        downloads: int,
        likes: int,
    ) -> Wallpaper:
        """Overwrite the counters of a wallpaper and refresh ``updated_at``."""

    @abstractmethod
    async def upsert_tag(self, name: str) -> Tag:
        """Create the tag *name* (already normalized) or increment its count."""

    @abstractmethod
    async def link_tag(self, wallpaper_id: int, tag_id: int) -> None:
        """Associate a tag with a wallpaper.  Re-linking is a no-op."""

    @abstractmethod
    async def set_featured(self, wallpaper_id: int, featured: bool) -> Wallpaper | None:
        """Flag or unflag a wallpaper as featured.  ``None`` if unknown."""

    # -- Wallpapers: read side ---------------------------------------------------

    @abstractmethod
    async def get_wallpaper(self, wallpaper_id: int) -> Wallpaper | None:
        """Return an active wallpaper with its tags and category slug."""

    @abstractmethod
    async def list_trending(self, limit: int) -> list[Wallpaper]:
        """Most viewed, then downloaded, then liked, then newest."""

    @abstractmethod
    async def list_latest(self, limit: int, offset: int = 0) -> tuple[list[Wallpaper], int]:
        """Newest first.  Returns the page and the total active count."""

    @abstractmethod
    async def list_featured(self, limit: int) -> list[Wallpaper]:
        """Wallpapers flagged featured, newest first."""

    @abstractmethod
    async def list_high_quality(
        self,
        limit: int,
        min_views: int = 1000,
        min_downloads: int = 100,
    ) -> list[Wallpaper]:
        """Wallpapers over both thresholds, by views then downloads."""

    @abstractmethod
    async def list_by_category(
        self,
        category_id: int,
        limit: int,
        offset: int = 0,
    ) -> tuple[list[Wallpaper], int]:
        """Newest first within one category, plus the category total."""

    @abstractmethod
    async def search(self, query: str, limit: int, offset: int = 0) -> tuple[list[Wallpaper], int]:
        """Case-insensitive substring match on text fields and tag names."""

    # -- Events ------------------------------------------------------------------

    @abstractmethod
    async def record_view(self, wallpaper_id: int, event: ViewEvent) -> bool:
        """Append a view event and increment the counter.

        Returns ``False`` when the wallpaper does not exist.
        """

    @abstractmethod
    async def record_download(self, wallpaper_id: int, event: DownloadEvent) -> bool:
        """Append a download event and increment the counter.

        Returns ``False`` when the wallpaper does not exist.
        """

    # -- Reconciliation ------------------------------------------------------------

    @abstractmethod
    async def recompute_category_counts(self) -> int:
        """Reset every category count from the wallpapers table.

        Returns the number of categories updated.
        """

    @abstractmethod
    async def recompute_tag_counts(self) -> int:
        """Reset every tag count from the join table.

        Returns the number of tags updated.
        """

    @abstractmethod
    async def get_stats(self) -> GalleryStats:
        """Return gallery-wide totals."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
