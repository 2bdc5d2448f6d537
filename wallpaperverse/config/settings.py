"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from TWO sources (in priority order):
#
#   1. **Environment variables**: e.g., PEXELS_API_KEY=abc123
#   2. **.env file**: key=value lines in the project root .env file
#
# Field ``pexels_api_key`` maps to env var ``PEXELS_API_KEY``.  Defaults
# apply when neither an env var nor a .env entry exists.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """WallpaperVerse application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Image sources ===
    # Empty string = "not configured" → the adapter reports itself
    # unavailable and every search returns an empty list.
    unsplash_access_key: str = ""
    pexels_api_key: str = ""
    pixabay_api_key: str = ""
    http_timeout: float = 15.0

    # === Persistence ===
    database_path: str = "data/wallpaperverse.db"

    # === Cache ===
    # Empty REDIS_URL selects the in-process cachetools backend.
    redis_url: str = ""
    redis_key_prefix: str = "wallpaperverse:"
    cache_ttl: int = 3600
    search_cache_ttl: int = 1800
    cache_max_size: int = 2048

    # === Sync pipeline ===
    sync_items_per_category: int = 100
    sync_category_delay: float = 2.0
    sync_save_concurrency: int = 10

    # === Scheduler (seconds) ===
    enable_scheduler: bool = True
    sync_interval: int = 7200
    statistics_interval: int = 3600
    cache_cleanup_interval: int = 86400

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 5000
    app_env: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    admin_token: str = ""
    config_path: str = "config/config.yaml"

    # === Rate limiting (per client address, fixed windows in seconds) ===
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_window: int = 900
    search_rate_limit_requests: int = 20
    search_rate_limit_window: int = 60

    def get_configured_sources(self) -> list[str]:
        """Return the image source names that have non-empty API keys configured."""
        sources: list[str] = []
        if self.unsplash_access_key:
            sources.append("unsplash")
        if self.pexels_api_key:
            sources.append("pexels")
        if self.pixabay_api_key:
            sources.append("pixabay")
        return sources
