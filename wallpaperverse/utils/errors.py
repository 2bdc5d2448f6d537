"""Custom exception hierarchy for WallpaperVerse.

All application exceptions inherit from :class:`WallpaperVerseError`, which
carries an optional ``provider_name`` so error handlers can identify which
backend (e.g. "unsplash", "sqlite", "redis") caused the failure.

    WallpaperVerseError  (base -- catch-all for any WallpaperVerse error)
    +-- ConfigurationError       (startup / missing config)
    +-- ImageSourceError         (stock-photo API request or payload failure)
    +-- PersistenceError         (database read/write failure)
    |   +-- DuplicateWallpaperError  (UNIQUE violation on external id)
    +-- CacheError               (cache backend unreachable / misbehaving)
    +-- CategoryNotFoundError    (unknown category slug)
    +-- WallpaperNotFoundError   (unknown wallpaper id)

Failures are contained at the smallest unit that can absorb them: adapters
swallow ``ImageSourceError`` and return nothing, the sync pipeline turns a
``PersistenceError`` into a ``None`` save, and the query service treats a
``CacheError`` as a cache miss.
"""


class WallpaperVerseError(Exception):
    """Base exception for all WallpaperVerse errors.

    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[pexels] HTTP 429``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ConfigurationError(WallpaperVerseError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------

class ImageSourceError(WallpaperVerseError):
    """Raised when a stock-photo API request fails or returns a bad payload.

    Adapters raise this internally and catch it at their public boundary,
    so a single provider outage never aborts a sync.
    """

    def __init__(
        self,
        message: str = "Image source request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CacheError(WallpaperVerseError):
    """Raised when the cache backend fails.  Readers treat it as a miss."""

    def __init__(
        self,
        message: str = "Cache operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence errors
# ---------------------------------------------------------------------------

class PersistenceError(WallpaperVerseError):
    """Raised when a database operation fails."""

    def __init__(
        self,
        message: str = "Database operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DuplicateWallpaperError(PersistenceError):
    """Raised when inserting a wallpaper whose external id already exists.

    This is how a lost race between two concurrent syncs surfaces: the
    database's UNIQUE constraint rejects the second insert.
    """

    def __init__(
        self,
        message: str = "Wallpaper already exists",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Lookup errors
# ---------------------------------------------------------------------------

class CategoryNotFoundError(WallpaperVerseError):
    """Raised when a category slug does not resolve to a stored category."""

    def __init__(
        self,
        message: str = "Category not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class WallpaperNotFoundError(WallpaperVerseError):
    """Raised when a wallpaper id does not resolve to an active wallpaper."""

    def __init__(
        self,
        message: str = "Wallpaper not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
