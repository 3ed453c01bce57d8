"""
Background task registry.

Toggle flushes run as their own asyncio tasks so a caller that goes away
does not cut a store write in half. They are registered here so shutdown
can cancel whatever is still writing.
"""

import asyncio
import logging
from typing import Coroutine, List, Optional, Set

logger = logging.getLogger(__name__)

_running: Set[asyncio.Task] = set()


def _forget(task: asyncio.Task) -> None:
    _running.discard(task)
    if task.cancelled():
        logger.debug(f"{task.get_name()} cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            f"{task.get_name()} crashed: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )


def create_tracked_task(coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
    """Schedule *coro* on the running loop and remember it until it finishes."""
    task = asyncio.create_task(coro, name=name)
    _running.add(task)
    task.add_done_callback(_forget)
    return task


def get_active_task_count() -> int:
    return len(_running)


def active_task_names() -> List[str]:
    return sorted(t.get_name() for t in _running)


async def cancel_all_tasks(timeout: float = 5.0) -> int:
    """Cancel every tracked task and wait up to *timeout* seconds for them.

    Returns:
        How many tasks ended up cancelled.
    """
    pending = [t for t in _running if not t.done()]
    if not pending:
        return 0

    logger.info(f"Cancelling {len(pending)} background task(s): {active_task_names()}")
    for task in pending:
        task.cancel()

    done, still_running = await asyncio.wait(pending, timeout=timeout)
    if still_running:
        logger.warning(f"{len(still_running)} task(s) ignored cancellation")
    return sum(1 for t in done if t.cancelled())
