"""Settled outcome records.

An ``AsyncResult`` settles into exactly one of these. They are the
synchronous read model: ``await result.outcome()`` returns one without
raising, whatever channel the result landed on.
"""

from __future__ import annotations

import dataclasses
import typing

TValue = typing.TypeVar("TValue")
TError = typing.TypeVar("TError")


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TValue]:
    """A settlement on the value channel."""

    value: TValue


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TError]:
    """A settlement on the error channel, holding the raw error payload."""

    error: TError


Outcome = Success[TValue] | Failure[TError]
