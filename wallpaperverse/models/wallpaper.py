"""Gallery domain entities.

Defines Pydantic v2 models for the records that flow through the sync
pipeline and the read side:

    - ExternalItem: a provider-normalized image, alive only during a fetch
    - Wallpaper:    the persisted entity, keyed by its provider-prefixed id
    - Category:     slugged grouping with a denormalized wallpaper count
    - Tag:          normalized-name label with a denormalized count
    - ViewEvent / DownloadEvent: append-only analytics rows

All models are frozen; updated copies are produced with ``model_copy``.
"""

from __future__ import annotations

import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ImageSource(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """Stock-photo providers the sync pipeline pulls from.

    The value doubles as the prefix of every external id the provider
    produces (``"pexels_12345"``), which is what keeps ids unique across
    providers whose native ids overlap.
    """

    UNSPLASH = "unsplash"
    PEXELS = "pexels"
    PIXABAY = "pixabay"

    def external_id(self, native_id: object) -> str:
        """Return the provider-prefixed external id for *native_id*."""
        return f"{self.value}_{native_id}"


# ---------------------------------------------------------------------------
# Fetch-cycle models
# ---------------------------------------------------------------------------

class ImageUrls(BaseModel):
    """URL variants of one image, smallest to largest."""

    model_config = ConfigDict(frozen=True)

    thumb: str | None = None
    small: str
    regular: str
    full: str
    raw: str | None = None


class Attribution(BaseModel):
    """Photographer credit as reported by the provider."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    username: str | None = None
    profile_image_url: str | None = None


class ExternalItem(BaseModel):
    """An image returned by a provider, mapped into the common shape."""

    model_config = ConfigDict(frozen=True)

    id: str
    source: ImageSource
    title: str | None = None
    description: str | None = None
    urls: ImageUrls
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    color: str | None = None
    blur_hash: str | None = None
    attribution: Attribution = Field(default_factory=Attribution)
    tags: list[str] = Field(default_factory=list)
    views: int = 0
    downloads: int = 0
    likes: int = 0


# ---------------------------------------------------------------------------
# Persisted entities
# ---------------------------------------------------------------------------

class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str
    description: str | None = None
    wallpaper_count: int = 0
    is_active: bool = True
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None


class Tag(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    wallpaper_count: int = 0


class Wallpaper(BaseModel):
    """A stored wallpaper.

    ``aspect_ratio`` is ``width / height`` at creation time and is never
    recomputed; re-syncs only touch the counters and ``updated_at``.
    ``tags`` and ``category_slug`` are only filled by single-wallpaper
    lookups.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    external_id: str
    source: ImageSource
    title: str | None = None
    description: str | None = None
    alt_text: str | None = None
    url_thumb: str | None = None
    url_small: str
    url_regular: str
    url_full: str
    url_raw: str | None = None
    width: int
    height: int
    aspect_ratio: float
    color: str | None = None
    blur_hash: str | None = None
    author_name: str | None = None
    author_username: str | None = None
    views: int = 0
    downloads: int = 0
    likes: int = 0
    is_active: bool = True
    is_featured: bool = False
    category_id: int
    category_slug: str | None = None
    tags: list[str] = Field(default_factory=list)
    published_at: datetime.datetime | None = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class NewWallpaper(BaseModel):
    """Insert payload for a wallpaper seen for the first time."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    source: ImageSource
    title: str | None = None
    description: str | None = None
    alt_text: str | None = None
    url_thumb: str | None = None
    url_small: str
    url_regular: str
    url_full: str
    url_raw: str | None = None
    width: int
    height: int
    aspect_ratio: float
    color: str | None = None
    blur_hash: str | None = None
    author_name: str | None = None
    author_username: str | None = None
    views: int = 0
    downloads: int = 0
    likes: int = 0
    category_id: int

    @classmethod
    def from_external(cls, item: ExternalItem, category_id: int, source: ImageSource) -> NewWallpaper:
        """Build the insert payload for *item*, computing its aspect ratio."""
        return cls(
            external_id=item.id,
            source=source,
            title=item.title,
            description=item.description,
            alt_text=item.title or item.description,
            url_thumb=item.urls.thumb,
            url_small=item.urls.small,
            url_regular=item.urls.regular,
            url_full=item.urls.full,
            url_raw=item.urls.raw,
            width=item.width,
            height=item.height,
            aspect_ratio=item.width / item.height,
            color=item.color,
            blur_hash=item.blur_hash,
            author_name=item.attribution.name or None,
            author_username=item.attribution.username,
            views=item.views or 0,
            downloads=item.downloads or 0,
            likes=item.likes or 0,
            category_id=category_id,
        )


# ---------------------------------------------------------------------------
# Analytics events
# ---------------------------------------------------------------------------

class ViewEvent(BaseModel):
    """Request context captured alongside a wallpaper view."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    referrer: str | None = None


class DownloadEvent(ViewEvent):
    """Request context captured alongside a wallpaper download."""
