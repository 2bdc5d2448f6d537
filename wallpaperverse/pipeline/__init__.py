"""Background job scheduling."""

from wallpaperverse.pipeline.scheduler import SyncScheduler

__all__ = ["SyncScheduler"]
