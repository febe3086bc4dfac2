"""Bounded fan-out for crawl expansion phases.

A phase starts ``min(len(items), max_workers)`` asyncio workers that drain one
shared queue. Each worker buffers its results locally and merges them into the
shared result list under a single lock once the queue is empty, so the lock is
never held across a network call.

Result order is merge order, not submission order.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

MAX_FETCH_WORKERS = 8

T = TypeVar("T")
R = TypeVar("R")


def worker_count(item_count: int, max_workers: int = MAX_FETCH_WORKERS) -> int:
    """Number of workers for a phase with ``item_count`` items."""
    return max(0, min(item_count, max_workers))


async def gather_in_pool(
    items: Sequence[T],
    func: Callable[[T], Awaitable[R]],
    max_workers: int = MAX_FETCH_WORKERS,
) -> list[R]:
    """Apply ``func`` to every item with bounded concurrency.

    Args:
        items: Work items
        func: Coroutine function applied to each item
        max_workers: Concurrency cap

    Returns:
        One result per item that did not raise, in merge order

    Example:
        >>> bodies = await gather_in_pool(urls, fetch_body, max_workers=4)
    """
    if not items:
        return []

    queue: asyncio.Queue[T] = asyncio.Queue()
    for item in items:
        queue.put_nowait(item)

    results: list[R] = []
    merge_lock = asyncio.Lock()

    async def worker() -> None:
        local: list[R] = []
        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            try:
                local.append(await func(item))
            except Exception as e:
                # One failing item must not take the rest of the phase down
                logger.warning(f"Worker failed on {item!r}: {type(e).__name__}: {e}")
            finally:
                queue.task_done()

        async with merge_lock:
            results.extend(local)

    workers = [
        asyncio.create_task(worker()) for _ in range(worker_count(len(items), max_workers))
    ]
    await asyncio.gather(*workers)
    return results
