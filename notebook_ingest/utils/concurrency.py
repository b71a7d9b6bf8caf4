"""Shared concurrency primitives for batch ingestion.

**throttled_gather** is a drop-in replacement for ``asyncio.gather`` that
wraps each awaitable in a semaphore acquire/release.  The orchestrator uses
it to dispatch the non-first items of a batch concurrently while capping how
many uploads and processing calls are in flight at once.

**settle_after** waits until a wall-clock deadline measured from a
reference timestamp has passed.  ``asyncio.sleep`` runs on the loop's
monotonic clock, so a single sleep can land a hair before the same instant
on the UTC clock used for record timestamps; the loop re-checks until the
deadline is really behind us.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Awaitable, TypeVar

import structlog

from notebook_ingest.utils.logging import get_logger

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


async def settle_after(reference: datetime, delay_seconds: float) -> None:
    """Sleep until at least *delay_seconds* have passed since *reference*.

    Parameters
    ----------
    reference:
        Timezone-aware UTC timestamp the delay is measured from.
    delay_seconds:
        Minimum gap.  Values ``<= 0`` return immediately.
    """
    if delay_seconds <= 0:
        return

    deadline = reference + timedelta(seconds=delay_seconds)
    while True:
        remaining = (deadline - datetime.now(tz=timezone.utc)).total_seconds()  # noqa: UP017
        if remaining <= 0:
            return
        _logger.debug("batch_gate_wait", remaining_ms=round(remaining * 1000, 2))
        await asyncio.sleep(remaining)
