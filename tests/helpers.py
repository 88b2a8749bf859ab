"""Test helpers (small, reusable doubles).

Keep this file tiny: awaitable factories and a call recorder cover nearly
every scenario without bespoke fixtures per test module.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


async def later(value: Any, delay: float = 0.0) -> Any:
    """Return *value* after yielding to the loop."""
    await asyncio.sleep(delay)
    return value


async def boom(exc: BaseException, delay: float = 0.0) -> Any:
    """Raise *exc* after yielding to the loop."""
    await asyncio.sleep(delay)
    raise exc


def is_even(value: int) -> bool:
    return value % 2 == 0


@dataclass
class Recorder:
    """Callable double that records each argument and delegates to *fn*."""

    fn: Callable[[Any], Any] = lambda value: value
    calls: list[Any] = field(default_factory=list)

    def __call__(self, value: Any) -> Any:
        self.calls.append(value)
        return self.fn(value)
