"""Unit tests for the asyncio fan-out helpers."""

from __future__ import annotations

import asyncio

import pytest

from wallpaperverse.utils.concurrency import gather_sources, throttled_gather


@pytest.mark.asyncio
async def test_throttled_gather_respects_semaphore():
    running = 0
    peak = 0

    async def _work(i: int) -> int:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        return i

    results = await throttled_gather([_work(i) for i in range(8)], semaphore=asyncio.Semaphore(3))

    assert results == list(range(8))
    assert peak <= 3


@pytest.mark.asyncio
async def test_throttled_gather_returns_exceptions():
    async def _boom() -> None:
        raise ValueError("bad item")

    async def _ok() -> str:
        return "ok"

    results = await throttled_gather([_ok(), _boom()])

    assert results[0] == "ok"
    assert isinstance(results[1], ValueError)


@pytest.mark.asyncio
async def test_gather_sources_isolates_failures():
    async def _unsplash() -> list[str]:
        return ["a", "b"]

    async def _pexels() -> list[str]:
        raise RuntimeError("503")

    merged = await gather_sources({"unsplash": _unsplash, "pexels": _pexels})

    assert merged == {"unsplash": ["a", "b"], "pexels": []}
