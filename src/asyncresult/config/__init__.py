"""Configuration for asyncresult.

Resolve once, freeze, then flow: settings are validated into an immutable
``FrozenConfig`` that results consult at run time. ``config_scope`` swaps
the active configuration for a block of code.
"""

from .core import (
    FieldOrigin,
    FrozenConfig,
    Origin,
    Settings,
    SourceMap,
    audit_lines,
    config_scope,
    current_config,
    default_config,
    resolve_config,
)

__all__ = [
    "FieldOrigin",
    "FrozenConfig",
    "Origin",
    "Settings",
    "SourceMap",
    "audit_lines",
    "config_scope",
    "current_config",
    "default_config",
    "resolve_config",
]
