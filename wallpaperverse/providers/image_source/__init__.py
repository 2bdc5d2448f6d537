"""Stock-photo source adapters.

Each adapter maps one provider's search response into ``ExternalItem``
objects with ``"<provider>_<nativeId>"`` ids.
"""

from wallpaperverse.providers.image_source.pexels_provider import PexelsProvider
from wallpaperverse.providers.image_source.pixabay_provider import PixabayProvider
from wallpaperverse.providers.image_source.unsplash_provider import UnsplashProvider

__all__ = ["PexelsProvider", "PixabayProvider", "UnsplashProvider"]
