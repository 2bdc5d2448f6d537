"""Pexels image source provider.

Pexels search results carry no tags and no popularity counters, so every
mapped item has an empty tag list and zeroed views/downloads/likes.  The
photo's ``alt`` text serves as both title and description.
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

logger = structlog.get_logger(logger_name=__name__)

_BASE_URL = "https://api.pexels.com/v1"


class PexelsProvider(IImageSourceProvider):
    """Image source backed by the Pexels API (bare API key in ``Authorization``)."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._api_key = settings.pexels_api_key
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout))

    @property
    def source(self) -> ImageSource:
        return ImageSource.PEXELS

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _fetch(self, query: str, page: int, per_page: int) -> list[dict[str, Any]]:
        try:
            response = await self._client.get(
                f"{_BASE_URL}/search",
                headers={"Authorization": self._api_key},
                params={
                    "query": query,
                    "page": page,
                    "per_page": per_page,
                    "orientation": "landscape",
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ImageSourceError(
                message=f"HTTP {exc.response.status_code} searching '{query}'",
                provider_name=self.get_provider_name(),
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ImageSourceError(
                message=f"Request failed searching '{query}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        photos = payload.get("photos") if isinstance(payload, dict) else None
        if not isinstance(photos, list):
            raise ImageSourceError(
                message="Response is missing the 'photos' list",
                provider_name=self.get_provider_name(),
            )
        return photos

    def _to_item(self, raw: dict[str, Any]) -> ExternalItem:
        src = raw.get("src") or {}
        photographer_id = raw.get("photographer_id")
        alt = raw.get("alt") or None
        return ExternalItem(
            id=self.source.external_id(raw["id"]),
            source=self.source,
            title=alt,
            description=alt,
            urls=ImageUrls(
                full=src["original"],
                regular=src["large2x"],
                small=src["medium"],
                thumb=src.get("small"),
            ),
            width=raw["width"],
            height=raw["height"],
            color=raw.get("avg_color"),
            attribution=Attribution(
                name=raw.get("photographer") or "",
                username=str(photographer_id) if photographer_id is not None else None,
            ),
        )

    async def search_photos(self, query: str, page: int = 1, per_page: int = 30) -> list[ExternalItem]:
        if not self.is_available():
            logger.warning("source_not_configured", source=self.get_provider_name())
            return []

        try:
            photos = await self._fetch(query, page, per_page)
        except ImageSourceError as exc:
            logger.error("source_fetch_failed", source=self.get_provider_name(), query=query, error=str(exc))
            return []

        items: list[ExternalItem] = []
        for raw in photos:
            try:
                items.append(self._to_item(raw))
            except (KeyError, TypeError, ValidationError) as exc:
                logger.warning("source_item_skipped", source=self.get_provider_name(), error=str(exc))

        logger.info("source_fetch_complete", source=self.get_provider_name(), query=query, count=len(items))
        return items
