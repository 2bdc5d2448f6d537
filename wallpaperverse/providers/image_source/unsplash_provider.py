"""Unsplash image source provider.

Queries the Unsplash ``/search/photos`` endpoint and maps each result into
an :class:`ExternalItem`.  Unsplash is the only provider that reports
real tags, likes, views and downloads on search results, and the only one
that supplies a raw (uncropped, unprocessed) URL and a blur hash.
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
from wallpaperverse.utils.text_normalizer import normalize_tag_name

logger = structlog.get_logger(logger_name=__name__)

_BASE_URL = "https://api.unsplash.com"


class UnsplashProvider(IImageSourceProvider):
    """Image source backed by the Unsplash REST API.

    Authenticates with a ``Client-ID`` access key.  The shared
    ``httpx.AsyncClient`` is owned by the caller when injected.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._access_key = settings.unsplash_access_key
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout))

    @property
    def source(self) -> ImageSource:
        return ImageSource.UNSPLASH

    def is_available(self) -> bool:
        return bool(self._access_key)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch(self, query: str, page: int, per_page: int) -> list[dict[str, Any]]:
        try:
            response = await self._client.get(
                f"{_BASE_URL}/search/photos",
                headers={
                    "Accept-Version": "v1",
                    "Authorization": f"Client-ID {self._access_key}",
                },
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

        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise ImageSourceError(
                message="Response is missing the 'results' list",
                provider_name=self.get_provider_name(),
            )
        return results

    def _to_item(self, raw: dict[str, Any]) -> ExternalItem:
        urls = raw.get("urls") or {}
        user = raw.get("user") or {}
        profile_image = user.get("profile_image") or {}
        tags = [
            normalize_tag_name(tag["title"])
            for tag in raw.get("tags") or []
            if isinstance(tag, dict) and tag.get("title")
        ]
        return ExternalItem(
            id=self.source.external_id(raw["id"]),
            source=self.source,
            title=raw.get("description") or raw.get("alt_description"),
            description=raw.get("description"),
            urls=ImageUrls(
                raw=urls.get("raw"),
                full=urls["full"],
                regular=urls["regular"],
                small=urls["small"],
                thumb=urls.get("thumb"),
            ),
            width=raw["width"],
            height=raw["height"],
            color=raw.get("color"),
            blur_hash=raw.get("blur_hash"),
            attribution=Attribution(
                name=user.get("name") or "",
                username=user.get("username"),
                profile_image_url=profile_image.get("medium"),
            ),
            tags=tags,
            downloads=raw.get("downloads") or 0,
            views=raw.get("views") or 0,
            likes=raw.get("likes") or 0,
        )

    # ------------------------------------------------------------------
    # IImageSourceProvider implementation
    # ------------------------------------------------------------------

    async def search_photos(self, query: str, page: int = 1, per_page: int = 30) -> list[ExternalItem]:
        if not self.is_available():
            logger.warning("source_not_configured", source=self.get_provider_name())
            return []

        try:
            results = await self._fetch(query, page, per_page)
        except ImageSourceError as exc:
            logger.error("source_fetch_failed", source=self.get_provider_name(), query=query, error=str(exc))
            return []

        items: list[ExternalItem] = []
        for raw in results:
            try:
                items.append(self._to_item(raw))
            except (KeyError, TypeError, ValidationError) as exc:
                logger.warning("source_item_skipped", source=self.get_provider_name(), error=str(exc))

        logger.info("source_fetch_complete", source=self.get_provider_name(), query=query, count=len(items))
        return items
