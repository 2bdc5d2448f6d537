"""Abstract base class for stock-photo source providers.

Defines the contract every image API adapter (Unsplash, Pexels, Pixabay)
must fulfil.  Adapters translate a provider-specific JSON response into
:class:`~wallpaperverse.models.wallpaper.ExternalItem` objects so the sync
pipeline never sees provider field names.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from wallpaperverse.models.wallpaper import ExternalItem, ImageSource


class IImageSourceProvider(ABC):
    """Contract for stock-photo search adapters.

    ``search_photos`` never raises: missing credentials and request
    failures are logged and reported as an empty list, so one provider's
    outage cannot abort a sync.
    """

    @abstractmethod
    async def search_photos(
        self,
        query: str,
        page: int = 1,
        per_page: int = 30,
    ) -> list[ExternalItem]:
        """Search the provider for photos matching *query*.

        Parameters
        ----------
        query:
            Free-text search term.
        page:
            1-based result page.
        per_page:
            Maximum number of items to request.

        Returns
        -------
        list[ExternalItem]
            Mapped items with provider-prefixed ids; empty on any failure.
        """

    @property
    @abstractmethod
    def source(self) -> ImageSource:
        """The provider this adapter talks to."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return self.source.value
