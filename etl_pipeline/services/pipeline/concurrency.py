"""Fan-out helpers for running step calls concurrently."""

import asyncio
from collections.abc import Awaitable, Iterable
from typing import Any, Optional


async def join_all(awaitables: Iterable[Awaitable[Any]]) -> list[Any]:
    """Run awaitables concurrently and wait for every one of them to settle.

    Unlike ``asyncio.gather`` without ``return_exceptions``, a failure does
    not leave siblings running unobserved: the join only returns once every
    task finished. Nothing is cancelled.

    Args:
        awaitables: Coroutines or futures to launch together

    Returns:
        Results in the order the awaitables were given

    Raises:
        Exception: The first failure in completion order
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        return []

    first_error: Optional[BaseException] = None
    for completed in asyncio.as_completed(tasks):
        try:
            await completed
        except Exception as e:
            if first_error is None:
                first_error = e

    if first_error is not None:
        raise first_error

    return [task.result() for task in tasks]
