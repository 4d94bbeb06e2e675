"""Bounded-concurrency helpers for embedding and search fan-out.

Embedding providers rate-limit aggressively, so ingestion never fires one
request per paragraph at once.  :func:`throttled_gather` is a drop-in
replacement for ``asyncio.gather`` that makes every awaitable acquire a
shared semaphore first.

:func:`gather_settled` is the fan-out/merge pattern used by retrieval:
run every call, keep the successes, log the failures, and let
cancellation through untouched.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, TypeVar

import structlog

from src.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = False,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with at most ``semaphore`` slots in use.

    Parameters
    ----------
    coros:
        Awaitable objects to execute.
    semaphore:
        Semaphore bounding how many awaitables run at the same moment.
    return_exceptions:
        Mirrors ``asyncio.gather``.  Leave ``False`` when the awaitables
        handle their own per-item errors so cancellation is not turned into
        a result value.

    Returns
    -------
    list
        Results in input order.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    return await asyncio.gather(
        *(_wrapped(c) for c in coros), return_exceptions=return_exceptions
    )


async def gather_settled(
    coros: list[Awaitable[list[Any]]],
    labels: list[str],
    event: str,
    logger: structlog.BoundLogger | None = None,
) -> list[list[Any]]:
    """Run list-returning awaitables concurrently, dropping the failures.

    Each failed awaitable is logged as a warning under *event* with its
    label and contributes an empty list, so the output always lines up
    with the input.  ``asyncio.CancelledError`` propagates.
    """
    if logger is None:
        logger = _logger

    raw = await asyncio.gather(*coros, return_exceptions=True)

    settled: list[list[Any]] = []
    for label, result in zip(labels, raw, strict=True):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.warning(event, target=label, error=str(result))
            settled.append([])
        else:
            settled.append(result)
    return settled
