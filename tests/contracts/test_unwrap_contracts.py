"""Behavioral guarantees of deep unwrapping and settlement."""

from __future__ import annotations

import asyncio
from typing import Any

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from asyncresult import AsyncResult, Failure, Success
from tests.helpers import Recorder

pytestmark = pytest.mark.contract

LAYER_KINDS = ("coroutine", "result", "future", "executor")

payloads = st.one_of(st.integers(), st.text(max_size=8), st.none(), st.booleans())
layers = st.lists(st.sampled_from(LAYER_KINDS), max_size=12)


async def _return(value: Any) -> Any:
    await asyncio.sleep(0)
    return value


def _wrap(kind: str, value: Any) -> Any:
    if kind == "coroutine":
        return _return(value)
    if kind == "result":
        return AsyncResult.resolve(value)
    if kind == "future":
        fut = asyncio.get_running_loop().create_future()
        fut.set_result(value)
        return fut
    return AsyncResult(lambda ok, _fail: ok(value))


async def _nest(innermost: Any, kinds: list[str]) -> Any:
    value = innermost
    for kind in kinds:
        value = _wrap(kind, value)
    return value


@given(payload=payloads, kinds=layers)
@settings(max_examples=40, deadline=None, derandomize=True)
def test_resolve_reaches_innermost_value_at_any_depth(payload: Any, kinds: list[str]) -> None:
    """Property: nesting depth and layer mix never change the settled value."""

    async def scenario() -> Any:
        nested = await _nest(payload, kinds)
        return await AsyncResult.resolve(nested).outcome()

    assert asyncio.run(scenario()) == Success(payload)


@given(payload=payloads, kinds=layers)
@settings(max_examples=40, deadline=None, derandomize=True)
def test_resolve_surfaces_innermost_failure_verbatim(payload: Any, kinds: list[str]) -> None:
    """Property: a failure under any nesting arrives as the raw payload."""

    async def scenario() -> Any:
        nested = await _nest(AsyncResult.reject(payload), kinds)
        return await AsyncResult.resolve(nested).outcome()

    assert asyncio.run(scenario()) == Failure(payload)


@pytest.mark.asyncio
async def test_reject_opacity_for_pending_result() -> None:
    pending = AsyncResult(lambda _ok, _fail: None)

    outcome = await AsyncResult.reject(pending).outcome()

    assert isinstance(outcome, Failure)
    assert outcome.error is pending


@pytest.mark.asyncio
async def test_settlement_is_idempotent_and_never_reruns_work() -> None:
    source = Recorder(lambda _x: object())
    result = AsyncResult.from_(lambda: source("run"))

    first = await result
    second = await result
    third = (await result.outcome()).value

    assert first is second is third
    assert source.calls == ["run"]


@pytest.mark.asyncio
async def test_combinators_never_mutate_receiver() -> None:
    source = AsyncResult.reject("e")

    derived = [
        source.then(lambda v: v),
        source.catch(lambda e: e),
        source.map_err(str.upper),
        source.tap(lambda v: v),
        source.tap_err(lambda e: e),
        source.fallback(0),
        source.guard(bool, "x"),
        source.pair(),
        source.flatten(),
        source.swap(),
        source.pipe(lambda v: v),
    ]
    await asyncio.gather(*(result.outcome() for result in derived))

    assert source.peek() == Failure("e")
    assert all(result is not source for result in derived)


@pytest.mark.asyncio
async def test_handlers_may_return_any_awaitable_layer() -> None:
    outcome = await (
        AsyncResult.resolve(1)
        .then(lambda v: _return(AsyncResult.resolve(_return(v + 1))))
        .outcome()
    )

    assert outcome == Success(2)
