"""Read-side and sync-side result containers.

These are the shapes that get serialized into the cache and returned by
the HTTP layer, so they stay plain and JSON-friendly.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, computed_field

from wallpaperverse.models.wallpaper import Wallpaper


class WallpaperPage(BaseModel):
    """One page of a paginated wallpaper query."""

    model_config = ConfigDict(frozen=True)

    items: list[Wallpaper] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


class GalleryStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_wallpapers: int = 0
    total_categories: int = 0
    total_tags: int = 0
    total_views: int = 0
    total_downloads: int = 0


class SyncResult(BaseModel):
    """Outcome of syncing one category.

    ``fetched`` maps each source name to the number of items it returned;
    a source that failed or had no credentials shows up with ``0``.
    """

    category_slug: str
    search_term: str
    per_source: int
    fetched: dict[str, int] = Field(default_factory=dict)
    saved: int = 0
    failed: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_fetched(self) -> int:
        return sum(self.fetched.values())


class SyncSummary(BaseModel):
    """Aggregate of a full multi-category sync run."""

    results: list[SyncResult] = Field(default_factory=list)
    failed_categories: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def saved(self) -> int:
        return sum(r.saved for r in self.results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.results)
