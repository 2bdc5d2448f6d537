"""Shared concurrency primitives for the sync pipeline.

Two patterns are exposed:

1. **throttled_gather** -- A drop-in replacement for ``asyncio.gather`` that
   wraps each awaitable in a semaphore acquire/release.  The sync pipeline
   uses it to run a category's upserts concurrently without opening more
   database connections than the store can serve.

2. **gather_sources** -- The fan-out-then-merge pattern for the image
   sources: dispatch one fetch per source in parallel, keep each source's
   items apart, and turn a raising source into an empty list so one
   provider's outage never fails the batch.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from wallpaperverse.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with optional semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore for concurrency control.  When ``None`` every
        awaitable runs at once.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        return await asyncio.gather(*coros, return_exceptions=return_exceptions)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def gather_sources(
    fetchers: dict[str, Callable[[], Awaitable[list[Any]]]],
    logger: structlog.BoundLogger | None = None,
) -> dict[str, list[Any]]:
    """Call every fetcher concurrently and return results keyed by name.

    A fetcher that raises is logged and reported as an empty list; there
    is no ordering guarantee between fetchers.
    """
    if logger is None:
        logger = _logger

    names = list(fetchers)
    raw_results = await asyncio.gather(
        *(fetchers[name]() for name in names),
        return_exceptions=True,
    )

    merged: dict[str, list[Any]] = {}
    for name, result in zip(names, raw_results):
        if isinstance(result, BaseException):
            logger.error("source_fetch_failed", source=name, error=str(result))
            merged[name] = []
        else:
            merged[name] = list(result)
    return merged
