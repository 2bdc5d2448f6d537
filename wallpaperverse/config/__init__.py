"""Configuration module: exports Settings, load_config and the category tables."""

from wallpaperverse.config.categories import CATEGORY_QUERIES, DEFAULT_CATEGORIES, resolve_search_term
from wallpaperverse.config.loader import load_config
from wallpaperverse.config.settings import Settings

__all__ = [
    "CATEGORY_QUERIES",
    "DEFAULT_CATEGORIES",
    "Settings",
    "load_config",
    "resolve_search_term",
]
