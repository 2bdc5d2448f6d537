"""Unit tests for SyncScheduler."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from wallpaperverse.pipeline.scheduler import SyncScheduler


@pytest.fixture()
def sync_service() -> MagicMock:
    service = MagicMock()
    service.sync_from_all_sources = AsyncMock()
    service.update_statistics = AsyncMock(return_value={"categories": 10, "tags": 3})
    return service


@pytest.fixture()
def cache() -> MagicMock:
    cache = MagicMock()
    cache.cleanup = AsyncMock(return_value=4)
    return cache


class TestRunNow:
    @pytest.mark.asyncio
    async def test_runs_each_job(self, sync_service, cache):
        scheduler = SyncScheduler(sync_service, cache)

        assert await scheduler.run_now("sync") is True
        assert await scheduler.run_now("cache_cleanup") is True
        assert await scheduler.run_now("statistics") is True

        sync_service.sync_from_all_sources.assert_awaited_once()
        cache.cleanup.assert_awaited_once()
        sync_service.update_statistics.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_job(self, sync_service, cache):
        scheduler = SyncScheduler(sync_service, cache)
        assert await scheduler.run_now("reindex") is False

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self, sync_service, cache):
        sync_service.sync_from_all_sources.side_effect = RuntimeError("database is locked")
        scheduler = SyncScheduler(sync_service, cache)

        assert await scheduler.run_now("sync") is False

        status = scheduler.get_status()["jobs"]["sync"]
        assert status["status"] == "error"
        assert status["error"] == "database is locked"
        assert status["runs"] == 1

    @pytest.mark.asyncio
    async def test_status_tracks_success(self, sync_service, cache):
        scheduler = SyncScheduler(sync_service, cache, statistics_interval=60)

        await scheduler.run_now("statistics")
        await scheduler.run_now("statistics")

        status = scheduler.get_status()
        assert status["running"] is False
        assert status["jobs"]["statistics"]["status"] == "success"
        assert status["jobs"]["statistics"]["runs"] == 2
        assert status["jobs"]["statistics"]["interval_seconds"] == 60
        assert "last_run" not in status["jobs"]["sync"]


class TestPeriodicLoop:
    @pytest.mark.asyncio
    async def test_jobs_wait_for_their_interval_first(self, sync_service, cache):
        scheduler = SyncScheduler(sync_service, cache)

        await scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        sync_service.sync_from_all_sources.assert_not_awaited()
        cache.cleanup.assert_not_awaited()
        sync_service.update_statistics.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_short_intervals_fire_repeatedly(self, sync_service, cache):
        scheduler = SyncScheduler(
            sync_service,
            cache,
            sync_interval=0.01,
            cache_cleanup_interval=3600,
            statistics_interval=3600,
        )

        await scheduler.start()
        assert scheduler.is_running is True
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert sync_service.sync_from_all_sources.await_count >= 2
        cache.cleanup.assert_not_awaited()
        assert scheduler.is_running is False

    @pytest.mark.asyncio
    async def test_failing_job_keeps_looping(self, sync_service, cache):
        cache.cleanup.side_effect = RuntimeError("redis down")
        scheduler = SyncScheduler(
            sync_service,
            cache,
            sync_interval=3600,
            cache_cleanup_interval=0.01,
            statistics_interval=3600,
        )

        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert cache.cleanup.await_count >= 2
        assert scheduler.get_status()["jobs"]["cache_cleanup"]["status"] == "error"

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, sync_service, cache):
        scheduler = SyncScheduler(sync_service, cache)

        await scheduler.start()
        await scheduler.start()
        assert len(scheduler._tasks) == 3
        await scheduler.stop()
        assert scheduler._tasks == {}
