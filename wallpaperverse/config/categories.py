"""Built-in gallery categories and their stock-photo search terms.

The sync pipeline searches each provider with the term mapped to a
category's slug; a slug without a mapping is searched as-is.  Both tables
can be extended or overridden from ``config/config.yaml`` (see
:func:`wallpaperverse.config.loader.load_config`).
"""

from __future__ import annotations

from typing import Any

CATEGORY_QUERIES: dict[str, str] = {
    "nature": "nature landscape",
    "abstract": "abstract art",
    "city": "city skyline",
    "space": "space galaxy stars",
    "animals": "wildlife animals",
    "minimal": "minimalist",
    "technology": "technology",
    "architecture": "architecture building",
    "ocean": "ocean sea waves",
    "mountains": "mountains peaks",
}

DEFAULT_CATEGORIES: list[dict[str, Any]] = [
    {"name": "Nature", "slug": "nature", "description": "Forests, fields and wild places"},
    {"name": "Abstract", "slug": "abstract", "description": "Shapes, colour and texture"},
    {"name": "City", "slug": "city", "description": "Skylines and street life"},
    {"name": "Space", "slug": "space", "description": "Galaxies, nebulae and planets"},
    {"name": "Animals", "slug": "animals", "description": "Wildlife and pets"},
    {"name": "Minimal", "slug": "minimal", "description": "Clean, quiet compositions"},
    {"name": "Technology", "slug": "technology", "description": "Circuits, screens and machines"},
    {"name": "Architecture", "slug": "architecture", "description": "Buildings and interiors"},
    {"name": "Ocean", "slug": "ocean", "description": "Seas, shores and waves"},
    {"name": "Mountains", "slug": "mountains", "description": "Peaks and ranges"},
]


def resolve_search_term(slug: str, overrides: dict[str, str] | None = None) -> str:
    """Return the search term for *slug*, falling back to the slug itself."""
    if overrides and slug in overrides:
        return overrides[slug]
    return CATEGORY_QUERIES.get(slug, slug)
