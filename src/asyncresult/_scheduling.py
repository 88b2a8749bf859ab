"""Background task bookkeeping for pending results.

The event loop only keeps weak references to tasks, so each result's driver
task is parked in a module-level set until it finishes.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Coroutine
    import contextvars

_background: set[asyncio.Task[Any]] = set()


def running_loop() -> asyncio.AbstractEventLoop | None:
    """Return the running event loop, or None outside of one."""
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def spawn(
    coro: Coroutine[Any, Any, Any], *, context: contextvars.Context | None = None
) -> asyncio.Task[Any]:
    """Schedule *coro* on the running loop and keep it alive until done.

    With *context*, the task runs in that context instead of a copy of the
    caller's, so a scope active when the work was requested still applies.
    """
    task = asyncio.get_running_loop().create_task(coro, context=context)
    _background.add(task)
    task.add_done_callback(_background.discard)
    return task


def consume_future_exception(fut: asyncio.Future[Any]) -> None:
    """Avoid 'Future exception was never retrieved' for mirror futures."""
    if fut.cancelled():
        return
    _ = fut.exception()


def pending_count() -> int:
    """Return how many driver tasks are still in flight."""
    return len(_background)
