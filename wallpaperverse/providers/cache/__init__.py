"""Cache providers.

MemoryCacheProvider is a cachetools-based cache, fast but not shared
across processes.  RedisCacheProvider is selected when ``REDIS_URL`` is
set, so invalidations reach every worker.
"""

from wallpaperverse.providers.cache.memory_cache import MemoryCacheProvider
from wallpaperverse.providers.cache.redis_cache import RedisCacheProvider

__all__ = ["MemoryCacheProvider", "RedisCacheProvider"]
