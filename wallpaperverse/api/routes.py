"""FastAPI routes for the WallpaperVerse gallery.

A thin layer over :class:`WallpaperQueryService` and
:class:`WallpaperSyncService`.  Service dependencies are resolved from
``app.state`` via FastAPI's ``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                              Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/health                           GET     DB + cache ping, scheduler status
# /api/wallpapers/trending              GET     Most viewed/downloaded/liked
# /api/wallpapers/latest                GET     Newest first, paginated
# /api/wallpapers/featured              GET     Curated, or most popular
# /api/wallpapers/{id}                  GET     One wallpaper with tags
# /api/wallpapers/{id}/view             POST    Record a view (background)
# /api/wallpapers/{id}/download         POST    Record a download (background)
# /api/wallpapers/{id}/featured         PUT     Flag/unflag as featured (admin)
# /api/categories                       GET     Active categories
# /api/categories/{slug}/wallpapers     GET     One category, paginated
# /api/search                           GET     Text + tag search, paginated
# /api/stats                            GET     Gallery totals
# /api/admin/sync                       POST    Trigger a sync (admin, background)
#
# Admin routes require an X-Admin-Token header matching ADMIN_TOKEN.
# With no token configured they always answer 403.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import secrets
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Query, Request, Response

from wallpaperverse import __version__
from wallpaperverse.api.schemas import (
    EventAcceptedResponse,
    FeaturedRequest,
    HealthResponse,
    SyncAcceptedResponse,
    SyncRequest,
)
from wallpaperverse.interfaces.cache_provider import ICacheProvider
from wallpaperverse.interfaces.wallpaper_store import IWallpaperStore
from wallpaperverse.models.results import GalleryStats, WallpaperPage
from wallpaperverse.models.wallpaper import Category, DownloadEvent, ViewEvent, Wallpaper
from wallpaperverse.services.query_service import WallpaperQueryService
from wallpaperverse.services.sync_service import WallpaperSyncService
from wallpaperverse.utils.errors import CategoryNotFoundError, WallpaperNotFoundError
from wallpaperverse.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api")

_MAX_LIMIT = 100


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_query_service(request: Request) -> WallpaperQueryService:
    return request.app.state.query_service


def _get_sync_service(request: Request) -> WallpaperSyncService:
    return request.app.state.sync_service


def _get_store(request: Request) -> IWallpaperStore:
    return request.app.state.store


def _get_cache(request: Request) -> ICacheProvider:
    return request.app.state.cache


QueryServiceDep = Annotated[WallpaperQueryService, Depends(_get_query_service)]
SyncServiceDep = Annotated[WallpaperSyncService, Depends(_get_sync_service)]
StoreDep = Annotated[IWallpaperStore, Depends(_get_store)]
CacheDep = Annotated[ICacheProvider, Depends(_get_cache)]

PageParam = Annotated[int, Query(ge=1)]
LimitParam = Annotated[int, Query(ge=1, le=_MAX_LIMIT)]


def _require_admin(
    request: Request,
    x_admin_token: Annotated[str | None, Header()] = None,
) -> None:
    """Reject the request unless ``X-Admin-Token`` matches the configured token."""
    expected = getattr(request.app.state, "admin_token", "") or ""
    if not expected or not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        _logger.warning("admin_auth_rejected", path=str(request.url.path))
        raise HTTPException(status_code=403, detail="Admin token required")


AdminDep = Annotated[None, Depends(_require_admin)]


def _event_context(request: Request) -> dict[str, Any]:
    return {
        "user_agent": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None,
        "referrer": request.headers.get("referer"),
    }


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health_check(
    request: Request,
    response: Response,
    store: StoreDep,
    cache: CacheDep,
) -> HealthResponse:
    """Ping the database and the cache.  503 when the database is down."""
    database_ok = await store.ping()
    cache_ok = await cache.ping()

    scheduler = getattr(request.app.state, "scheduler", None)
    if not database_ok:
        status = "unhealthy"
        response.status_code = 503
    elif not cache_ok:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        version=__version__,
        database=database_ok,
        cache={"provider": cache.get_provider_name(), "ok": cache_ok},
        scheduler=scheduler.get_status() if scheduler is not None else None,
    )


# ---------------------------------------------------------------------------
# Wallpapers
# ---------------------------------------------------------------------------


@router.get("/wallpapers/trending", response_model=list[Wallpaper])
async def trending_wallpapers(query_service: QueryServiceDep, limit: LimitParam = 20) -> list[Wallpaper]:
    return await query_service.get_trending(limit=limit)


@router.get("/wallpapers/latest", response_model=WallpaperPage)
async def latest_wallpapers(
    query_service: QueryServiceDep,
    page: PageParam = 1,
    limit: LimitParam = 20,
) -> WallpaperPage:
    return await query_service.get_latest(page=page, limit=limit)


@router.get("/wallpapers/featured", response_model=list[Wallpaper])
async def featured_wallpapers(query_service: QueryServiceDep, limit: LimitParam = 10) -> list[Wallpaper]:
    return await query_service.get_featured(limit=limit)


@router.get("/wallpapers/{wallpaper_id}", response_model=Wallpaper)
async def get_wallpaper(wallpaper_id: int, query_service: QueryServiceDep) -> Wallpaper:
    wallpaper = await query_service.get_wallpaper(wallpaper_id)
    if wallpaper is None:
        raise HTTPException(status_code=404, detail=f"Wallpaper {wallpaper_id} not found")
    return wallpaper


@router.post("/wallpapers/{wallpaper_id}/view", response_model=EventAcceptedResponse, status_code=202)
async def record_view(
    wallpaper_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    query_service: QueryServiceDep,
) -> EventAcceptedResponse:
    """Queue a view for recording; the response never waits on the write."""
    background_tasks.add_task(query_service.record_view, wallpaper_id, ViewEvent(**_event_context(request)))
    return EventAcceptedResponse(wallpaper_id=wallpaper_id, event="view")


@router.post("/wallpapers/{wallpaper_id}/download", response_model=EventAcceptedResponse, status_code=202)
async def record_download(
    wallpaper_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    query_service: QueryServiceDep,
) -> EventAcceptedResponse:
    background_tasks.add_task(
        query_service.record_download,
        wallpaper_id,
        DownloadEvent(**_event_context(request)),
    )
    return EventAcceptedResponse(wallpaper_id=wallpaper_id, event="download")


@router.put("/wallpapers/{wallpaper_id}/featured", response_model=Wallpaper)
async def set_featured(
    wallpaper_id: int,
    body: FeaturedRequest,
    query_service: QueryServiceDep,
    _admin: AdminDep,
) -> Wallpaper:
    try:
        return await query_service.set_featured(wallpaper_id, body.featured)
    except WallpaperNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc


# ---------------------------------------------------------------------------
# Categories, search, stats
# ---------------------------------------------------------------------------


@router.get("/categories", response_model=list[Category])
async def list_categories(query_service: QueryServiceDep) -> list[Category]:
    return await query_service.get_categories()


@router.get("/categories/{slug}/wallpapers", response_model=WallpaperPage)
async def category_wallpapers(
    slug: str,
    query_service: QueryServiceDep,
    page: PageParam = 1,
    limit: LimitParam = 20,
) -> WallpaperPage:
    try:
        return await query_service.get_by_category(slug, page=page, limit=limit)
    except CategoryNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc


@router.get("/search", response_model=WallpaperPage)
async def search_wallpapers(
    query_service: QueryServiceDep,
    q: Annotated[str, Query(min_length=1, max_length=200)],
    page: PageParam = 1,
    limit: LimitParam = 20,
) -> WallpaperPage:
    return await query_service.search(q, page=page, limit=limit)


@router.get("/stats", response_model=GalleryStats)
async def gallery_stats(query_service: QueryServiceDep) -> GalleryStats:
    return await query_service.get_stats()


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


async def _run_admin_sync(sync_service: WallpaperSyncService, category: str | None) -> None:
    try:
        if category:
            await sync_service.sync_category_by_slug(category)
        else:
            await sync_service.sync_from_all_sources()
    except Exception as exc:
        _logger.error("admin_sync_failed", category=category, error=str(exc), error_type=type(exc).__name__)


@router.post("/admin/sync", response_model=SyncAcceptedResponse, status_code=202)
async def trigger_sync(
    background_tasks: BackgroundTasks,
    sync_service: SyncServiceDep,
    store: StoreDep,
    _admin: AdminDep,
    body: SyncRequest | None = None,
) -> SyncAcceptedResponse:
    """Start a full or single-category sync in the background."""
    category = body.category if body else None
    if category and await store.get_category_by_slug(category) is None:
        raise HTTPException(status_code=404, detail=f"Unknown category '{category}'")

    background_tasks.add_task(_run_admin_sync, sync_service, category)
    _logger.info("admin_sync_queued", category=category)
    return SyncAcceptedResponse(category=category)
