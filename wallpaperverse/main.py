"""WallpaperVerse FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, seeds the category table, and starts the background
scheduler.

Also exposes :func:`build_components` so the CLI can assemble the same
object graph outside the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from wallpaperverse import __version__
from wallpaperverse.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    configure_rate_limiting,
)
from wallpaperverse.api.routes import router as api_router
from wallpaperverse.config.loader import load_config
from wallpaperverse.config.settings import Settings
from wallpaperverse.interfaces.cache_provider import ICacheProvider
from wallpaperverse.interfaces.image_source_provider import IImageSourceProvider
from wallpaperverse.pipeline.scheduler import SyncScheduler
from wallpaperverse.providers.cache.memory_cache import MemoryCacheProvider
from wallpaperverse.providers.cache.redis_cache import RedisCacheProvider
from wallpaperverse.providers.image_source.pexels_provider import PexelsProvider
from wallpaperverse.providers.image_source.pixabay_provider import PixabayProvider
from wallpaperverse.providers.image_source.unsplash_provider import UnsplashProvider
from wallpaperverse.providers.store.sqlite_wallpaper_store import SQLiteWallpaperStore
from wallpaperverse.services.query_service import WallpaperQueryService
from wallpaperverse.services.sync_service import WallpaperSyncService
from wallpaperverse.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(log_level=settings.log_level, app_env=settings.app_env)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def build_cache(app_settings: Settings) -> ICacheProvider:
    """Redis when ``REDIS_URL`` is set, otherwise the in-process cache."""
    if app_settings.redis_url:
        return RedisCacheProvider.from_url(
            app_settings.redis_url,
            key_prefix=app_settings.redis_key_prefix,
            ttl=app_settings.cache_ttl,
        )
    return MemoryCacheProvider(max_size=app_settings.cache_max_size, ttl=app_settings.cache_ttl)


def build_sources(app_settings: Settings, http_client: httpx.AsyncClient) -> list[IImageSourceProvider]:
    """All three sources, configured or not.

    The per-category budget is split across every source in this list, so
    an unconfigured source still claims (and returns nothing for) its share.
    """
    return [
        UnsplashProvider(settings=app_settings, http_client=http_client),
        PexelsProvider(settings=app_settings, http_client=http_client),
        PixabayProvider(settings=app_settings, http_client=http_client),
    ]


def build_components(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(app_settings.http_timeout))

    store = SQLiteWallpaperStore(db_path=app_settings.database_path)
    cache = build_cache(app_settings)
    sources = build_sources(app_settings, http_client)

    sync_service = WallpaperSyncService(
        store=store,
        cache=cache,
        sources=sources,
        settings=app_settings,
        category_queries=app_config.get("sync", {}).get("category_queries"),
    )
    query_service = WallpaperQueryService(
        store=store,
        cache=cache,
        cache_ttl=app_settings.cache_ttl,
        search_cache_ttl=app_settings.search_cache_ttl,
    )
    scheduler = SyncScheduler(
        sync_service=sync_service,
        cache=cache,
        sync_interval=app_settings.sync_interval,
        cache_cleanup_interval=app_settings.cache_cleanup_interval,
        statistics_interval=app_settings.statistics_interval,
    )

    return {
        "http_client": http_client,
        "store": store,
        "cache": cache,
        "sources": sources,
        "sync_service": sync_service,
        "query_service": query_service,
        "scheduler": scheduler,
        "categories": app_config.get("categories", []),
        "admin_token": app_settings.admin_token,
    }


async def close_components(components: dict[str, Any]) -> None:
    """Release the shared HTTP client and, for Redis, the connection pool."""
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    cache = components["cache"]
    if isinstance(cache, RedisCacheProvider):
        await cache.close()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise the store and scheduler on startup, clean up on shutdown.

    A store that cannot be initialised aborts startup.
    """
    components = build_components(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["store"].initialize()
    await components["store"].ensure_categories(components["categories"])

    scheduler: SyncScheduler = components["scheduler"]
    if settings.enable_scheduler:
        await scheduler.start()

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        cache=components["cache"].get_provider_name(),
        sources=settings.get_configured_sources(),
        scheduler=settings.enable_scheduler,
    )

    yield

    await scheduler.stop()
    await close_components(components)
    _logger.info("app_shutdown", message="scheduler stopped, clients closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application.

    *app_settings* defaults to the module-level settings and only shapes
    the middleware stack.  The lifespan always builds from module settings.
    """
    app_settings = app_settings or settings
    application = FastAPI(
        title="WallpaperVerse API",
        version=__version__,
        description=(
            "Wallpaper gallery aggregated from Unsplash, Pexels and Pixabay: "
            "trending, latest, featured and per-category listings, search, "
            "and view/download tracking."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    if app_settings.rate_limit_enabled:
        configure_rate_limiting(
            application,
            requests=app_settings.rate_limit_requests,
            window=app_settings.rate_limit_window,
            search_requests=app_settings.search_rate_limit_requests,
            search_window=app_settings.search_rate_limit_window,
        )
    application.add_middleware(GZipMiddleware, minimum_size=1000)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=app_settings.cors_origins)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "wallpaperverse.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
