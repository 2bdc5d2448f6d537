"""Concrete adapters for the interfaces in ``wallpaperverse.interfaces``."""
