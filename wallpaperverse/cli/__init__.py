# =============================================================================
# wallpaperverse/cli/__init__.py
# =============================================================================
#
# Operator commands that run outside the web server, as one-shot scripts:
#
#   sync     Pull every active category (or one, with --category) from the
#            image sources into the gallery store.
#   stats    Reconcile category and tag counts and print gallery totals.
#   seed     Insert the configured categories that are missing.
#   cleanup  Drop expired or orphaned cache entries.
#
# Each command builds the same component graph as the web app through
# wallpaperverse.main.build_components, imported lazily so --help stays
# fast.
# =============================================================================

"""Command-line tools for WallpaperVerse.

- ``python -m wallpaperverse.cli sync [--category SLUG]``
- ``python -m wallpaperverse.cli stats``
- ``python -m wallpaperverse.cli seed``
- ``python -m wallpaperverse.cli cleanup``
"""
