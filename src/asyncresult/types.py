"""Public type aliases for annotating code built on AsyncResult.

Example:
    ```python
    from asyncresult import AsyncResult, types

    def load(path: str) -> AsyncResult[bytes, OSError]:
        def executor(ok: types.Setter[bytes], fail: types.Setter[OSError]) -> None:
            ...

        return AsyncResult(executor)
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from asyncresult.outcome import Failure, Outcome, Success

type Setter[T] = Callable[[T], None]
"""Settles a result on one channel; later calls are ignored."""

type Executor[V, E] = Callable[[Setter[V], Setter[E]], Any]
"""Receives the success-setter and the failure-setter. May be ``async def``."""

type Stage = Callable[[Any], Any]
"""One ``pipe`` step: takes the unwrapped value, returns a value or awaitable."""

type Predicate[V] = Callable[[V], bool]

__all__ = [
    "Executor",
    "Failure",
    "Outcome",
    "Predicate",
    "Setter",
    "Stage",
    "Success",
]
