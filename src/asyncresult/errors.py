"""Exception hierarchy for asyncresult."""

from __future__ import annotations

from typing import Any


class AsyncResultError(Exception):
    """Base exception for all asyncresult errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(AsyncResultError):
    """Configuration validation or resolution failed."""


class RejectedError(AsyncResultError):
    """A result failed with a payload that is not an exception.

    ``await`` can only surface failures by raising, so non-exception error
    payloads travel inside this wrapper. Deep unwrapping recognizes it and
    restores the raw payload, which keeps ``reject("x")`` round-tripping as
    ``"x"`` through ``async def`` handlers.
    """

    def __init__(self, error: Any) -> None:
        super().__init__(
            f"AsyncResult rejected with {type(error).__name__}: {error!r}",
            hint="Use `await result.outcome()` or `.pair()` to read the raw payload.",
        )
        self.error = error


class SequenceTypeError(AsyncResultError, TypeError):
    """``AsyncResult.all`` received something that is not a sequence or mapping."""

    def __init__(self, received: object) -> None:
        self.received_type = type(received).__name__
        super().__init__(
            "AsyncResult.all expects a sequence or mapping, "
            f"got {self.received_type}",
            hint="Pass a list, tuple or dict of members.",
        )


class UnwrapDepthError(AsyncResultError):
    """Deep unwrapping followed more nested layers than allowed."""

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"Deep unwrapping exceeded {limit} nested layers",
            hint=(
                "A result may resolve to itself. Raise max_unwrap_depth "
                "(ASYNCRESULT_MAX_UNWRAP_DEPTH) if the nesting is intended."
            ),
        )
        self.limit = limit


def error_payload(exc: BaseException) -> Any:
    """Return the failure payload carried by a raised exception."""
    if isinstance(exc, RejectedError):
        return exc.error
    return exc


def as_exception(payload: Any) -> BaseException:
    """Return an exception suitable for raising a failure payload."""
    if isinstance(payload, BaseException):
        return payload
    return RejectedError(payload)
