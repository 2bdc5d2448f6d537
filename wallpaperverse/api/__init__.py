"""WallpaperVerse API layer: routes, schemas, and middleware."""

from wallpaperverse.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from wallpaperverse.api.routes import router
from wallpaperverse.api.schemas import (
    ErrorResponse,
    EventAcceptedResponse,
    FeaturedRequest,
    HealthResponse,
    SyncAcceptedResponse,
    SyncRequest,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ErrorResponse",
    "EventAcceptedResponse",
    "FeaturedRequest",
    "HealthResponse",
    "SyncAcceptedResponse",
    "SyncRequest",
]
