"""Periodic background jobs for the gallery.

Three asyncio tasks, one per job:

- ``sync``           full sync from every source (default every 2 hours)
- ``cache_cleanup``  drop expired or orphaned cache entries (daily)
- ``statistics``     reconcile category and tag counts (hourly)

Each job sleeps for its interval before its first run, so starting the
app never triggers a sync on its own.  A failing run is logged and
recorded in the job's status; the loop keeps going.  Jobs are not
mutually exclusive, and a manual :meth:`SyncScheduler.run_now` can overlap
a scheduled run of the same job.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, NamedTuple

import structlog

from wallpaperverse.interfaces.cache_provider import ICacheProvider
from wallpaperverse.services.sync_service import WallpaperSyncService

logger = structlog.get_logger(logger_name=__name__)


class _Job(NamedTuple):
    name: str
    func: Callable[[], Awaitable[Any]]
    interval: float


class SyncScheduler:
    """Runs the sync, cache-cleanup and statistics jobs on fixed intervals."""

    def __init__(
        self,
        sync_service: WallpaperSyncService,
        cache: ICacheProvider,
        sync_interval: float = 7200,
        cache_cleanup_interval: float = 86400,
        statistics_interval: float = 3600,
    ) -> None:
        self._sync_service = sync_service
        self._cache = cache
        self._jobs: dict[str, _Job] = {
            job.name: job
            for job in (
                _Job("sync", self._sync, sync_interval),
                _Job("cache_cleanup", self._cleanup_cache, cache_cleanup_interval),
                _Job("statistics", self._update_statistics, statistics_interval),
            )
        }
        self._tasks: dict[str, asyncio.Task] = {}
        self._stats: dict[str, dict[str, Any]] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start one background task per job.  Idempotent."""
        if self._running:
            return
        self._running = True
        for job in self._jobs.values():
            self._tasks[job.name] = asyncio.create_task(self._run_periodic(job), name=f"scheduler:{job.name}")
        logger.info(
            "scheduler_started",
            jobs={name: job.interval for name, job in self._jobs.items()},
        )

    async def stop(self) -> None:
        """Cancel every job task and wait for it to finish."""
        self._running = False
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        for task in self._tasks.values():
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        logger.info("scheduler_stopped")

    async def run_now(self, job_name: str) -> bool:
        """Run *job_name* immediately.

        Returns ``False`` for an unknown job or a failed run.
        """
        job = self._jobs.get(job_name)
        if job is None:
            logger.warning("scheduler_unknown_job", job=job_name)
            return False
        return await self._execute(job)

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "jobs": {
                name: {"interval_seconds": job.interval, **self._stats.get(name, {})}
                for name, job in self._jobs.items()
            },
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_periodic(self, job: _Job) -> None:
        while self._running:
            await asyncio.sleep(job.interval)
            if not self._running:
                break
            await self._execute(job)

    async def _execute(self, job: _Job) -> bool:
        started_at = datetime.now(timezone.utc)
        t0 = time.monotonic()
        runs = self._stats.get(job.name, {}).get("runs", 0) + 1
        logger.info("scheduler_job_started", job=job.name)
        try:
            await job.func()
        except Exception as exc:
            logger.error("scheduler_job_failed", job=job.name, error=str(exc), error_type=type(exc).__name__)
            self._stats[job.name] = {
                "last_run": started_at.isoformat(),
                "status": "error",
                "error": str(exc),
                "runs": runs,
            }
            return False

        duration = round(time.monotonic() - t0, 3)
        self._stats[job.name] = {
            "last_run": started_at.isoformat(),
            "status": "success",
            "duration_seconds": duration,
            "runs": runs,
        }
        logger.info("scheduler_job_complete", job=job.name, duration_seconds=duration)
        return True

    async def _sync(self) -> None:
        await self._sync_service.sync_from_all_sources()

    async def _cleanup_cache(self) -> None:
        removed = await self._cache.cleanup()
        logger.info("cache_cleanup_complete", removed=removed)

    async def _update_statistics(self) -> None:
        await self._sync_service.update_statistics()
