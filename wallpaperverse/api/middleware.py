"""API middleware: CORS, compression, rate limiting, request logging, errors.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, gzip compression, per-client rate limits (via ``limits``),
structured request logging (via structlog), and automatic conversion of
``WallpaperVerseError`` subclasses into JSON ``ErrorResponse`` bodies.

# ─── MIDDLEWARE EXECUTION ORDER ───────────────────────────────────────
#
# Starlette middleware is a stack (last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)   # added 1st, innermost
#     configure_rate_limiting(app, ...)             # added 2nd
#     app.add_middleware(GZipMiddleware, ...)       # added 3rd
#     app.add_middleware(RequestLoggingMiddleware)  # added 4th
#     configure_cors(app, ...)                      # added 5th, outermost
#
#   Request flow:
#     Client -> CORS -> RequestLogging -> GZip -> RateLimit
#            -> ErrorHandling -> route handler
#
# So RequestLoggingMiddleware sees the *final* status code, including the
# 429s issued by RateLimit and the JSON errors built by ErrorHandling.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import math
import time
from typing import NamedTuple

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter, RateLimiter
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from wallpaperverse.api.schemas import ErrorResponse
from wallpaperverse.utils.errors import (
    CacheError,
    CategoryNotFoundError,
    PersistenceError,
    WallpaperNotFoundError,
    WallpaperVerseError,
)
from wallpaperverse.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[WallpaperVerseError], int], ...] = (
    (CategoryNotFoundError, 404),
    (WallpaperNotFoundError, 404),
    (PersistenceError, 503),
    (CacheError, 503),
)


def status_for(exc: WallpaperVerseError) -> int:
    """Map an application error to its HTTP status (500 when unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]``; the
        gallery frontend's origin is configured through ``CORS_ORIGINS``.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Rate Limiting
# ---------------------------------------------------------------------------


class RateLimitTier(NamedTuple):
    """One limit applied to every request under ``path_prefix``."""

    path_prefix: str
    item: RateLimitItem
    code: str
    message: str


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window request limits keyed by client address.

    Every tier whose prefix matches the path is charged, general tiers
    first.  The first exhausted tier short-circuits with a 429 carrying
    its error code; otherwise the most specific matching tier's budget is
    reported in ``X-RateLimit-*`` headers.
    """

    def __init__(
        self,
        app,  # noqa: ANN001
        limiter: RateLimiter,
        tiers: list[RateLimitTier],
        exempt_paths: tuple[str, ...] = ("/api/health",),
    ) -> None:
        super().__init__(app)
        self._limiter = limiter
        self._tiers = tiers
        self._exempt_paths = exempt_paths

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        path = request.url.path
        if path in self._exempt_paths:
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        headers: dict[str, str] = {}

        for tier in self._tiers:
            if not path.startswith(tier.path_prefix):
                continue
            allowed = self._limiter.hit(tier.item, tier.path_prefix, client_id)
            reset_time, remaining = self._limiter.get_window_stats(tier.item, tier.path_prefix, client_id)
            headers = {
                "X-RateLimit-Limit": str(tier.item.amount),
                "X-RateLimit-Remaining": str(max(remaining, 0)),
                "X-RateLimit-Reset": str(int(reset_time)),
            }
            if not allowed:
                retry_after = max(math.ceil(reset_time - time.time()), 1)
                _logger.warning(
                    "rate_limit_exceeded",
                    client=client_id,
                    path=path,
                    code=tier.code,
                    retry_after=retry_after,
                )
                body = ErrorResponse(error=tier.code, detail=tier.message)
                return JSONResponse(
                    status_code=429,
                    content=body.model_dump(),
                    headers={**headers, "Retry-After": str(retry_after)},
                )

        response = await call_next(request)
        response.headers.update(headers)
        return response


def configure_rate_limiting(
    app: FastAPI,
    *,
    requests: int,
    window: int,
    search_requests: int,
    search_window: int,
) -> None:
    """Add per-client limits for ``/api`` and the stricter ``/api/search``.

    Counters live in process memory, so each worker process enforces its
    own budget.
    """
    limiter = FixedWindowRateLimiter(MemoryStorage())
    tiers = [
        RateLimitTier(
            path_prefix="/api",
            item=RateLimitItemPerSecond(requests, window),
            code="RATE_LIMIT_EXCEEDED",
            message="Too many requests from this IP, please try again later.",
        ),
        RateLimitTier(
            path_prefix="/api/search",
            item=RateLimitItemPerSecond(search_requests, search_window),
            code="API_RATE_LIMIT_EXCEEDED",
            message="Too many API requests, please slow down.",
        ),
    ]
    app.add_middleware(RateLimitMiddleware, limiter=limiter, tiers=tiers)


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``WallpaperVerseError`` subclasses and return structured JSON errors.

    Not-found errors become 404, store and cache outages 503, anything
    else in the hierarchy 500.  Generic Python exceptions are left to
    FastAPI's default 500 handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except WallpaperVerseError as exc:
            status_code = status_for(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
            )
            return JSONResponse(
                status_code=status_code,
                content=body.model_dump(),
            )
