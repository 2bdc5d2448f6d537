"""Pixabay image source provider.

Pixabay authenticates through a ``key`` query parameter and returns tags
as one comma-separated string, which doubles as the title.  Searches are
restricted to safe, wallpaper-sized photos (at least 1920x1080).
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from wallpaperverse.config.settings import Settings
from wallpaperverse.interfaces.image_source_provider import IImageSourceProvider
from wallpaperverse.models.wallpaper import Attribution, ExternalItem, ImageSource, ImageUrls
from wallpaperverse.utils.errors import ImageSourceError
from wallpaperverse.utils.text_normalizer import split_tag_string

logger = structlog.get_logger(logger_name=__name__)

_BASE_URL = "https://pixabay.com/api/"
_SEARCH_DEFAULTS = {
    "image_type": "photo",
    "orientation": "all",
    "min_width": 1920,
    "min_height": 1080,
    "safesearch": "true",
}


class PixabayProvider(IImageSourceProvider):
    """Image source backed by the Pixabay API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._api_key = settings.pixabay_api_key
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout))

    @property
    def source(self) -> ImageSource:
        return ImageSource.PIXABAY

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _fetch(self, query: str, page: int, per_page: int) -> list[dict[str, Any]]:
        try:
            response = await self._client.get(
                _BASE_URL,
                params={
                    **_SEARCH_DEFAULTS,
                    "key": self._api_key,
                    "q": query,
                    "page": page,
                    "per_page": per_page,
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            # The key travels in the query string; never log the URL.
            raise ImageSourceError(
                message=f"HTTP {exc.response.status_code} searching '{query}'",
                provider_name=self.get_provider_name(),
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ImageSourceError(
                message=f"Request failed searching '{query}': {type(exc).__name__}",
                provider_name=self.get_provider_name(),
            ) from exc

        hits = payload.get("hits") if isinstance(payload, dict) else None
        if not isinstance(hits, list):
            raise ImageSourceError(
                message="Response is missing the 'hits' list",
                provider_name=self.get_provider_name(),
            )
        return hits

    def _to_item(self, raw: dict[str, Any]) -> ExternalItem:
        tag_string = raw.get("tags") or ""
        user_id = raw.get("user_id")
        return ExternalItem(
            id=self.source.external_id(raw["id"]),
            source=self.source,
            title=tag_string or None,
            description=tag_string or None,
            urls=ImageUrls(
                full=raw["largeImageURL"],
                regular=raw["webformatURL"],
                small=raw["previewURL"],
                thumb=raw["previewURL"],
            ),
            width=raw["imageWidth"],
            height=raw["imageHeight"],
            attribution=Attribution(
                name=raw.get("user") or "",
                username=str(user_id) if user_id is not None else None,
                profile_image_url=raw.get("userImageURL") or None,
            ),
            tags=split_tag_string(tag_string),
            downloads=raw.get("downloads") or 0,
            views=raw.get("views") or 0,
            likes=raw.get("likes") or 0,
        )

    async def search_photos(self, query: str, page: int = 1, per_page: int = 30) -> list[ExternalItem]:
        if not self.is_available():
            logger.warning("source_not_configured", source=self.get_provider_name())
            return []

        try:
            hits = await self._fetch(query, page, per_page)
        except ImageSourceError as exc:
            logger.error("source_fetch_failed", source=self.get_provider_name(), query=query, error=str(exc))
            return []

        items: list[ExternalItem] = []
        for raw in hits:
            try:
                items.append(self._to_item(raw))
            except (KeyError, TypeError, ValidationError) as exc:
                logger.warning("source_item_skipped", source=self.get_provider_name(), error=str(exc))

        logger.info("source_fetch_complete", source=self.get_provider_name(), query=query, count=len(items))
        return items
