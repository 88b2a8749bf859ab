"""asyncresult: awaitables with a typed error channel.

Public API:
    - AsyncResult: the dual-channel awaitable and its combinators
    - Success / Failure / Outcome: settled outcome records
    - NEVER / EMPTY: shared pending and empty-success results
    - config_scope / resolve_config: runtime configuration
"""

from __future__ import annotations

import logging

from asyncresult.config import FrozenConfig, config_scope, current_config, resolve_config
from asyncresult.core import EMPTY, NEVER, AsyncResult, is_chainable
from asyncresult.errors import (
    AsyncResultError,
    ConfigurationError,
    RejectedError,
    SequenceTypeError,
    UnwrapDepthError,
)
from asyncresult.outcome import Failure, Outcome, Success

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("asyncresult")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("asyncresult").addHandler(logging.NullHandler())

__all__ = [
    "EMPTY",
    "NEVER",
    "AsyncResult",
    "AsyncResultError",
    "ConfigurationError",
    "Failure",
    "FrozenConfig",
    "Outcome",
    "RejectedError",
    "SequenceTypeError",
    "Success",
    "UnwrapDepthError",
    "config_scope",
    "current_config",
    "is_chainable",
    "resolve_config",
]
