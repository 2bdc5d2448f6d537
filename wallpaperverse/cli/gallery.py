"""Gallery maintenance CLI.

Usage::

    python -m wallpaperverse.cli sync
    python -m wallpaperverse.cli sync --category nature
    python -m wallpaperverse.cli stats
    python -m wallpaperverse.cli seed
    python -m wallpaperverse.cli cleanup
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from wallpaperverse.config.loader import load_config
from wallpaperverse.config.settings import Settings
from wallpaperverse.utils.errors import CategoryNotFoundError, WallpaperVerseError
from wallpaperverse.utils.logging import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m wallpaperverse.cli",
        description="WallpaperVerse gallery maintenance",
    )
    subparsers = parser.add_subparsers(dest="command")

    sync = subparsers.add_parser("sync", help="Sync wallpapers from every image source")
    sync.add_argument("--category", metavar="SLUG", help="Sync only this category")

    subparsers.add_parser("stats", help="Reconcile category/tag counts and print totals")
    subparsers.add_parser("seed", help="Insert configured categories that are missing")
    subparsers.add_parser("cleanup", help="Drop expired cache entries")
    return parser


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_sync(args: argparse.Namespace, components: dict[str, Any]) -> int:
    sync_service = components["sync_service"]

    if args.category:
        try:
            result = await sync_service.sync_category_by_slug(args.category)
        except CategoryNotFoundError as exc:
            print(f"Error: {exc.message}", file=sys.stderr)
            return 1
        results, failed_categories = [result], []
    else:
        summary = await sync_service.sync_from_all_sources()
        results, failed_categories = summary.results, summary.failed_categories

    print("Sync complete:")
    for result in results:
        fetched = ", ".join(f"{name}={count}" for name, count in result.fetched.items())
        print(f"  {result.category_slug:<14} saved {result.saved:>4}  failed {result.failed:>3}  ({fetched})")
    if failed_categories:
        print(f"  Failed categories: {', '.join(failed_categories)}")
        return 1
    return 0


async def _handle_stats(args: argparse.Namespace, components: dict[str, Any]) -> int:
    counts = await components["sync_service"].update_statistics()
    stats = await components["store"].get_stats()

    print("Counts reconciled:")
    print(f"  Categories updated: {counts['categories']}")
    print(f"  Tags updated:       {counts['tags']}")
    print()
    print("Gallery totals:")
    print(f"  Wallpapers: {stats.total_wallpapers}")
    print(f"  Categories: {stats.total_categories}")
    print(f"  Tags:       {stats.total_tags}")
    print(f"  Views:      {stats.total_views}")
    print(f"  Downloads:  {stats.total_downloads}")
    return 0


async def _handle_seed(args: argparse.Namespace, components: dict[str, Any]) -> int:
    inserted = await components["store"].ensure_categories(components["categories"])
    print(f"Categories inserted: {inserted} (of {len(components['categories'])} configured)")
    return 0


async def _handle_cleanup(args: argparse.Namespace, components: dict[str, Any]) -> int:
    removed = await components["cache"].cleanup()
    print(f"Cache entries removed: {removed}")
    return 0


_HANDLERS = {
    "sync": _handle_sync,
    "stats": _handle_stats,
    "seed": _handle_seed,
    "cleanup": _handle_cleanup,
}


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    # Deferred: wallpaperverse.main builds the FastAPI app on import.
    from wallpaperverse.main import build_components, close_components

    components = build_components(app_settings, load_config(settings=app_settings))
    try:
        await components["store"].initialize()
        if args.command != "seed":
            await components["store"].ensure_categories(components["categories"])
        return await _HANDLERS[args.command](args, components)
    except WallpaperVerseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await close_components(components)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse the subcommand and dispatch to its handler."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level, app_env=app_settings.app_env, component="cli")
    sys.exit(asyncio.run(_run(args, app_settings)))


if __name__ == "__main__":
    main()
