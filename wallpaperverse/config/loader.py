"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. built-in defaults   : wallpaperverse/config/categories.py
#   2. config/config.yaml  : static overrides checked into the repo
#   3. .env / environment  : deploy-time values read through Settings
#
# _deep_merge does recursive dict merging:
#   base = {"sync": {"category_queries": {"nature": "forest"}}}
#   overrides = {"sync": {"items_per_category": 60}}
#   result = {"sync": {"category_queries": {...}, "items_per_category": 60}}
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from wallpaperverse.config.categories import CATEGORY_QUERIES, DEFAULT_CATEGORIES
from wallpaperverse.config.settings import Settings
from wallpaperverse.utils.errors import ConfigurationError


def load_config(path: str | None = None, settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge it with defaults and environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  Defaults to
            ``settings.config_path``.  A missing file is not an error.
        settings: Settings instance to read env overrides from.

    Returns:
        Fully resolved configuration dictionary with at least the keys
        ``categories`` (list of dicts) and ``sync.category_queries``.

    Raises:
        ConfigurationError: If the file exists but is not valid YAML or
            declares a category without a slug.
    """
    settings = settings or Settings()
    config_path = Path(path or settings.config_path)

    config: dict[str, Any] = {
        "categories": copy.deepcopy(DEFAULT_CATEGORIES),
        "sync": {"category_queries": dict(CATEGORY_QUERIES)},
    }

    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
        # Lists replace wholesale; dicts merge key by key.
        _deep_merge(config, yaml_config)

    for category in config["categories"]:
        if not category.get("slug"):
            raise ConfigurationError(f"Category without slug in {config_path}: {category!r}")

    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "sources": {
            "configured": settings.get_configured_sources(),
        },
        "sync": {
            "items_per_category": settings.sync_items_per_category,
            "category_delay": settings.sync_category_delay,
        },
        "logging": {
            "level": settings.log_level,
        },
    }
    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
