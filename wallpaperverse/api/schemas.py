"""Pydantic request/response schemas for the WallpaperVerse API.

Listing endpoints return the domain models directly (``Wallpaper``,
``WallpaperPage``, ``Category``, ``GalleryStats``); the models here only
cover shapes that exist solely at the HTTP boundary.

# ─── CONVENTIONS ──────────────────────────────────────────────────────
#
# Request schemas end with "Request", response schemas end with
# "Response".  Field(...) adds constraints and the descriptions shown in
# the generated OpenAPI docs at /docs.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    database: bool
    cache: dict[str, Any]
    scheduler: dict[str, Any] | None = None


class EventAcceptedResponse(BaseModel):
    """Returned when a view or download has been queued for recording."""

    wallpaper_id: int
    event: str
    accepted: bool = True


class FeaturedRequest(BaseModel):
    """Curation toggle for ``PUT /wallpapers/{id}/featured``."""

    featured: bool = True


class SyncRequest(BaseModel):
    """Body of ``POST /admin/sync``.  Omit ``category`` for a full sync."""

    category: str | None = Field(default=None, min_length=1, max_length=64)


class SyncAcceptedResponse(BaseModel):
    status: str = "accepted"
    category: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
