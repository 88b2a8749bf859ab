"""Sequencing: join a collection of members into one AsyncResult.

Members can be plain values, awaitables or results. Callables are plain
values here and are never invoked, unlike ``AsyncResult.from_``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
import logging
from typing import TYPE_CHECKING, Any

from asyncresult.core import AsyncResult, _unwrap, is_chainable
from asyncresult.errors import SequenceTypeError
from asyncresult.outcome import Failure, Outcome, Success

if TYPE_CHECKING:
    from collections.abc import Callable

log = logging.getLogger(__name__)

_TEXT_TYPES = (str, bytes, bytearray)


class _MemberFailed(Exception):
    """Internal signal carrying the first member failure out of gather()."""

    def __init__(self, outcome: Failure[Any]) -> None:
        super().__init__("member failed")
        self.outcome = outcome


async def _settle_member(member: Any) -> Any:
    outcome = await _unwrap(member)
    if isinstance(outcome, Failure):
        raise _MemberFailed(outcome)
    return outcome.value


def _split(members: Any) -> tuple[list[Any], Callable[[list[Any]], Any]] | None:
    """Return the member values and a rebuild function, or None for bad shapes."""
    if isinstance(members, Mapping):
        keys = list(members.keys())
        return list(members.values()), lambda values: dict(zip(keys, values, strict=True))
    if isinstance(members, tuple):
        return list(members), tuple
    if isinstance(members, Sequence) and not isinstance(members, _TEXT_TYPES):
        return list(members), list
    return None


def gather_members(members: Any) -> AsyncResult[Any, Any]:
    """Await every member concurrently and collect the payloads.

    Returns a result holding a collection shaped like *members* (dict for
    mappings, tuple for tuples, list for other sequences), or the payload of
    the first failure the concurrent join reports. Other members keep
    running; nothing is cancelled.

    Anything that is not a sequence or mapping fails with
    ``SequenceTypeError``.
    """
    split = _split(members)
    if split is None:
        log.debug("AsyncResult.all rejected a %s", type(members).__name__)
        return AsyncResult.reject(SequenceTypeError(members))
    values, rebuild = split

    async def work() -> Outcome[Any, Any]:
        pending = {
            idx: _settle_member(member)
            for idx, member in enumerate(values)
            if is_chainable(member)
        }
        resolved = list(values)
        if pending:
            try:
                settled = await asyncio.gather(*pending.values())
            except _MemberFailed as failed:
                return failed.outcome
            for idx, value in zip(pending, settled, strict=True):
                resolved[idx] = value
        return Success(rebuild(resolved))

    return AsyncResult._deferred(work)
