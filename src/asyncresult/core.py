"""AsyncResult: an awaitable that settles on a value or an error channel.

Every combinator returns a new ``AsyncResult`` whose work runs as one
background task. Handler returns are deep-unwrapped: nested results and
awaitables are followed layer by layer until a plain payload or the first
failure surfaces.

Example:
    ```python
    user, err = await (
        AsyncResult.from_(lambda: fetch_user(user_id))
        .guard(lambda res: res.status == 200, lambda res: HttpError(res.status))
        .then(lambda res: res.json())
        .tap(lambda data: log.debug("raw user: %s", data))
        .pair()
    )
    ```
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
import contextvars
from functools import partial
import inspect
import logging
import typing
from typing import TYPE_CHECKING, Any, overload

from asyncresult import _scheduling
from asyncresult.config import current_config
from asyncresult.errors import UnwrapDepthError, as_exception, error_payload
from asyncresult.outcome import Failure, Outcome, Success

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Generator
    from types import TracebackType

    from asyncresult.types import Executor, Predicate, Stage

    # A derived handler maps a settled payload straight to the next outcome.
    _Handler = Callable[[Any], Awaitable[Outcome[Any, Any]]]

log = logging.getLogger(__name__)


def is_chainable(value: object) -> bool:
    """Return True when *value* must be unwrapped before it is a payload."""
    return isinstance(value, AsyncResult) or inspect.isawaitable(value)


def _check_depth(depth: int, value: object) -> Failure[UnwrapDepthError] | None:
    limit = current_config().max_unwrap_depth
    if limit is None or depth <= limit:
        return None
    log.warning("Deep unwrapping stopped after %d nested layers", limit)
    if inspect.iscoroutine(value):
        value.close()
    return Failure(UnwrapDepthError(limit))


def _unwrap_settled(value: Any) -> tuple[Any, int, Outcome[Any, Any] | None]:
    """Follow already-settled results without suspending.

    Returns the remaining value, the layers consumed, and the final outcome
    when it could be decided synchronously.
    """
    depth = 0
    while isinstance(value, AsyncResult) and value._outcome is not None:
        if isinstance(value._outcome, Failure):
            return value, depth, value._outcome
        value = value._outcome.value
        depth += 1
        if (exceeded := _check_depth(depth, value)) is not None:
            return value, depth, exceeded
    if is_chainable(value):
        return value, depth, None
    return value, depth, Success(value)


async def _unwrap(value: Any, depth: int = 0) -> Outcome[Any, Any]:
    """Deep-unwrap *value* into an outcome.

    Iterates instead of recursing. Failures are never unwrapped further.
    """
    while True:
        if isinstance(value, AsyncResult):
            outcome = await value.outcome()
            if isinstance(outcome, Failure):
                return outcome
            value = outcome.value
        elif inspect.isawaitable(value):
            try:
                value = await value
            except Exception as exc:
                return Failure(error_payload(exc))
        else:
            return Success(value)
        depth += 1
        if (exceeded := _check_depth(depth, value)) is not None:
            return exceeded


async def _invoke(fn: Callable[[Any], Any], payload: Any) -> Outcome[Any, Any]:
    """Call a handler and deep-unwrap whatever it returns or raises."""
    try:
        produced = fn(payload)
    except Exception as exc:
        return Failure(error_payload(exc))
    return await _unwrap(produced)


class AsyncResult[V, E]:
    """An awaitable settling into ``Success(value)`` or ``Failure(error)``.

    Construct with an executor receiving a success-setter and a
    failure-setter, or with :meth:`resolve`, :meth:`reject`, :meth:`from_`.
    The first setter call wins. The success-setter deep-unwraps its argument;
    the failure-setter stores its argument verbatim.

    ``await result`` returns the value or raises the error payload
    (non-exception payloads are raised inside ``RejectedError``). Use
    :meth:`outcome` or :meth:`pair` to read either channel without raising.
    """

    __slots__ = (
        "_context",
        "_future",
        "_locked",
        "_outcome",
        "_started",
        "_traceback",
        "_waiters",
        "_work",
    )

    NEVER: typing.ClassVar[AsyncResult[Any, Any]]
    EMPTY: typing.ClassVar[AsyncResult[None, Any]]

    def __init__(self, executor: Executor[V, E]) -> None:
        self._setup()
        try:
            pending = executor(self._resolve_setter, self._reject_setter)
        except Exception as exc:
            self._reject_setter(error_payload(exc))
            return
        if inspect.isawaitable(pending):
            self._defer(partial(self._drive_executor, pending))

    def _setup(self) -> None:
        self._outcome: Outcome[V, E] | None = None
        self._locked = False
        self._started = False
        self._waiters: list[asyncio.Future[None]] = []
        self._work: Callable[[], Awaitable[Outcome[V, E] | None]] | None = None
        self._future: asyncio.Future[V] | None = None
        self._context: contextvars.Context | None = None
        self._traceback: TracebackType | None = None

    # --- Settlement internals ---

    @classmethod
    def _deferred(cls, work: Callable[[], Awaitable[Outcome[Any, Any]]]) -> AsyncResult[Any, Any]:
        result: AsyncResult[Any, Any] = cls.__new__(cls)
        result._setup()
        result._locked = True
        result._defer(work)
        return result

    def _resolve_setter(self, value: Any) -> None:
        if self._locked:
            return
        self._locked = True
        remaining, depth, outcome = _unwrap_settled(value)
        if outcome is not None:
            self._settle(outcome)
        else:
            self._defer(partial(_unwrap, remaining, depth))

    def _reject_setter(self, error: Any) -> None:
        if self._locked:
            return
        self._locked = True
        self._settle(Failure(error))

    def _settle(self, outcome: Outcome[Any, Any]) -> None:
        if self._outcome is not None:
            return
        self._outcome = outcome
        if isinstance(outcome, Failure) and isinstance(outcome.error, BaseException):
            # Reads re-raise from this snapshot so the traceback never accumulates.
            self._traceback = outcome.error.__traceback__
        waiters, self._waiters = self._waiters, []
        for fut in waiters:
            if not fut.done() and not fut.get_loop().is_closed():
                fut.set_result(None)

    def _defer(self, work: Callable[[], Awaitable[Outcome[Any, Any] | None]]) -> None:
        self._work = work
        # Work runs with the configuration active where it was requested.
        self._context = contextvars.copy_context()
        if _scheduling.running_loop() is None:
            log.debug("No running event loop; deferring work until first await")
            return
        # Already observed results keep going even when eager start is off.
        if current_config().eager_start or self._started or self._waiters:
            self._kick()

    def _kick(self) -> None:
        if self._work is None:
            return
        work, self._work = self._work, None
        context, self._context = self._context, None
        self._started = True
        _scheduling.spawn(self._drive(work), context=context)

    async def _drive(self, work: Callable[[], Awaitable[Outcome[Any, Any] | None]]) -> None:
        try:
            outcome = await work()
        except asyncio.CancelledError as exc:
            log.debug("AsyncResult work cancelled; settling as failure")
            self._settle(Failure(exc))
            raise
        except Exception as exc:
            outcome = Failure(error_payload(exc))
        if outcome is not None:
            self._settle(outcome)

    async def _drive_executor(self, pending: Awaitable[Any]) -> None:
        try:
            await pending
        except Exception as exc:
            self._reject_setter(error_payload(exc))

    # --- Construction ---

    @classmethod
    def resolve(cls, value: Any) -> AsyncResult[Any, Any]:
        """Settle on the value channel, deep-unwrapping *value* first.

        A failure met at any layer becomes this result's error payload.
        """
        result: AsyncResult[Any, Any] = cls.__new__(cls)
        result._setup()
        result._resolve_setter(value)
        return result

    @classmethod
    def reject(cls, error: Any) -> AsyncResult[Any, Any]:
        """Settle on the error channel with *error* verbatim, never unwrapped."""
        result: AsyncResult[Any, Any] = cls.__new__(cls)
        result._setup()
        result._reject_setter(error)
        return result

    @classmethod
    def from_(cls, source: Any) -> AsyncResult[Any, Any]:
        """Build a result from a value or a zero-argument callable.

        Callables (including ``async def`` functions) are invoked and a raise
        becomes a failure. The produced payload is deep-unwrapped.
        """
        if callable(source):
            try:
                source = source()
            except Exception as exc:
                return cls.reject(error_payload(exc))
        return cls.resolve(source)

    @classmethod
    def from_outcome(cls, outcome: Outcome[V, E]) -> AsyncResult[V, E]:
        """Build a result already settled with *outcome*."""
        result: AsyncResult[V, E] = cls.__new__(cls)
        result._setup()
        result._locked = True
        result._settle(outcome)
        return result

    @classmethod
    def all(cls, members: Any) -> AsyncResult[Any, Any]:
        """Join a sequence or mapping of members; see ``asyncresult.sequencing``."""
        from asyncresult.sequencing import gather_members

        return gather_members(members)

    # --- Reading ---

    def done(self) -> bool:
        """Return True once the result has settled."""
        return self._outcome is not None

    def peek(self) -> Outcome[V, E] | None:
        """Return the outcome if settled, without waiting."""
        return self._outcome

    async def outcome(self) -> Outcome[V, E]:
        """Wait for settlement and return the outcome record without raising."""
        if self._outcome is None:
            self._kick()
        if self._outcome is None:
            fut = asyncio.get_running_loop().create_future()
            self._waiters.append(fut)
            try:
                await fut
            finally:
                with suppress(ValueError):
                    self._waiters.remove(fut)
        assert self._outcome is not None
        return self._outcome

    async def _value(self) -> V:
        outcome = await self.outcome()
        if isinstance(outcome, Failure):
            exc = as_exception(outcome.error)
            context = exc.__context__
            try:
                raise exc.with_traceback(self._traceback)
            finally:
                exc.__context__ = context
                del exc
        return outcome.value

    def __await__(self) -> Generator[Any, None, V]:
        return self._value().__await__()

    def to_future(self) -> asyncio.Future[V]:
        """Return an ``asyncio.Future`` on the running loop mirroring this result."""
        loop = asyncio.get_running_loop()
        fut = self._future
        if fut is None or fut.get_loop() is not loop:
            fut = loop.create_task(self._value())
            fut.add_done_callback(_scheduling.consume_future_exception)
            # NEVER and EMPTY are shared; they never hold a loop-bound mirror.
            if not self._is_sentinel():
                self._future = fut
        return fut

    def _is_sentinel(self) -> bool:
        return self is getattr(AsyncResult, "NEVER", None) or self is getattr(
            AsyncResult, "EMPTY", None
        )

    def __repr__(self) -> str:
        outcome = self._outcome
        if outcome is None:
            return f"<{type(self).__name__} pending>"
        if isinstance(outcome, Success):
            return f"<{type(self).__name__} ok={outcome.value!r}>"
        return f"<{type(self).__name__} err={outcome.error!r}>"

    # --- Core chaining ---

    def _derive(
        self,
        on_success: _Handler | None = None,
        on_failure: _Handler | None = None,
    ) -> AsyncResult[Any, Any]:
        """Build the next result from this one's outcome; None passes it through."""

        async def work() -> Outcome[Any, Any]:
            outcome = await self.outcome()
            if isinstance(outcome, Success):
                if on_success is None:
                    return outcome
                return await on_success(outcome.value)
            if on_failure is None:
                return outcome
            return await on_failure(outcome.error)

        return self._deferred(work)

    @overload
    def then(self, on_success: Callable[[V], Any]) -> AsyncResult[Any, Any]: ...

    @overload
    def then(
        self,
        on_success: Callable[[V], Any] | None,
        on_failure: Callable[[E], Any],
    ) -> AsyncResult[Any, Any]: ...

    def then(
        self,
        on_success: Callable[[V], Any] | None,
        on_failure: Callable[[E], Any] | None = None,
    ) -> AsyncResult[Any, Any]:
        """Invoke the handler matching the settled channel.

        The handler's return or raise is deep-unwrapped into the new result.
        Without *on_failure* a failure is forwarded unchanged.
        """
        return self._derive(
            partial(_invoke, on_success) if on_success is not None else None,
            partial(_invoke, on_failure) if on_failure is not None else None,
        )

    def catch(self, on_failure: Callable[[E], Any]) -> AsyncResult[Any, Any]:
        """Recover from a failure; a success passes through untouched."""
        return self._derive(on_failure=partial(_invoke, on_failure))

    def map_err(self, fn: Callable[[E], Any]) -> AsyncResult[V, Any]:
        """Transform the error payload; the new payload stays on the error channel."""

        async def remap(error: E) -> Outcome[Any, Any]:
            mapped = await _invoke(fn, error)
            if isinstance(mapped, Success):
                return Failure(mapped.value)
            return mapped

        return self._derive(on_failure=remap)

    # --- Derived combinators ---

    def tap(self, fn: Callable[[V], Any]) -> AsyncResult[V, Any]:
        """Run *fn* on the value for its effect; a failing effect fails the result."""

        async def run_effect(value: V) -> Outcome[Any, Any]:
            effect = await _invoke(fn, value)
            return effect if isinstance(effect, Failure) else Success(value)

        return self._derive(on_success=run_effect)

    def tap_err(self, fn: Callable[[E], Any]) -> AsyncResult[V, Any]:
        """Run *fn* on the error for its effect.

        If the effect fails, its payload replaces the original error.
        """

        async def run_effect(error: E) -> Outcome[Any, Any]:
            effect = await _invoke(fn, error)
            return effect if isinstance(effect, Failure) else Failure(error)

        return self._derive(on_failure=run_effect)

    def fallback(self, value: Any) -> AsyncResult[Any, Any]:
        """Replace any failure with *value* (deep-unwrapped)."""

        async def substitute(_error: E) -> Outcome[Any, Any]:
            return await _unwrap(value)

        return self._derive(on_failure=substitute)

    @overload
    def guard[V2](
        self,
        predicate: Callable[[V], typing.TypeIs[V2]],
        on_false: Any,
    ) -> AsyncResult[V2, Any]: ...

    @overload
    def guard[V2](
        self,
        predicate: Callable[[V], typing.TypeGuard[V2]],
        on_false: Any,
    ) -> AsyncResult[V2, Any]: ...

    @overload
    def guard(self, predicate: Predicate[V], on_false: Any) -> AsyncResult[V, Any]: ...

    def guard(self, predicate: Callable[[V], Any], on_false: Any) -> AsyncResult[Any, Any]:
        """Keep the value only when *predicate* holds.

        Otherwise fail with *on_false*, called with the value when callable.
        Failures pass through without evaluating the predicate.
        """

        async def check(value: V) -> Outcome[Any, Any]:
            if predicate(value):
                return Success(value)
            return Failure(on_false(value) if callable(on_false) else on_false)

        return self._derive(on_success=check)

    def pair(self) -> AsyncResult[tuple[V | None, E | None], Any]:
        """Collapse into a ``(value, None)`` or ``(None, error)`` tuple."""

        async def left(value: V) -> Outcome[Any, Any]:
            return Success((value, None))

        async def right(error: E) -> Outcome[Any, Any]:
            return Success((None, error))

        return self._derive(left, right)

    def flatten(self) -> AsyncResult[V | E, Any]:
        """Settle on the value channel with whichever payload was present."""
        return self._derive(on_failure=_unwrap)

    def swap(self) -> AsyncResult[E, V]:
        """Exchange the channels: values become errors and errors values."""

        async def to_error(value: V) -> Outcome[Any, Any]:
            return Failure(value)

        return self._derive(to_error, _unwrap)

    # --- Pipeline ---

    def pipe(self, *stages: Stage) -> AsyncResult[Any, Any]:
        """Apply *stages* left to right to the value, stopping at the first failure.

        Each stage gets the previous payload fully unwrapped and may return a
        plain value, an awaitable or another result. A failed receiver runs
        no stage at all.
        """

        async def work() -> Outcome[Any, Any]:
            outcome: Outcome[Any, Any] = await self.outcome()
            for stage in stages:
                if isinstance(outcome, Failure):
                    break
                outcome = await _invoke(stage, outcome.value)
            return outcome

        return self._deferred(work)


AsyncResult.NEVER = AsyncResult(lambda _resolve, _reject: None)
AsyncResult.EMPTY = AsyncResult.resolve(None)

NEVER = AsyncResult.NEVER
EMPTY = AsyncResult.EMPTY
