# src/asyncresult/config/core.py

"""Core configuration schema and resolution.

- Single source of truth for configuration fields (Settings)
- Immutable runtime payload (FrozenConfig)
- Per-field provenance for audits (SourceMap)
- Scoped overrides through a ContextVar (config_scope)
"""

from __future__ import annotations

from contextlib import contextmanager
import contextvars
from dataclasses import dataclass
from enum import Enum
from functools import cache
from typing import TYPE_CHECKING, Any, Literal, overload

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from asyncresult.errors import ConfigurationError

from .loaders import ENV_PREFIX, get_pyproject_path, load_env, load_pyproject

if TYPE_CHECKING:
    from collections.abc import Generator, Mapping

# --- Schema (Pydantic wall) ---


class Settings(BaseModel):
    """Pydantic schema for configuration validation and defaults."""

    model_config = ConfigDict(extra="forbid")

    # None keeps deep unwrapping unbounded
    max_unwrap_depth: int | None = Field(default=None, ge=1)
    eager_start: bool = Field(default=True)


# --- Immutable runtime payload ---


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration consulted by every result at run time."""

    max_unwrap_depth: int | None
    eager_start: bool


class Origin(str, Enum):
    """Source origin for configuration field values."""

    DEFAULT = "default"
    PROJECT = "project"
    ENV = "env"
    OVERRIDES = "overrides"


@dataclass(frozen=True)
class FieldOrigin:
    """Tracks the origin and context of a configuration field value."""

    origin: Origin
    env_key: str | None = None  # e.g., "ASYNCRESULT_EAGER_START"
    file: str | None = None  # e.g., "./pyproject.toml"


SourceMap = dict[str, FieldOrigin]

# --- Ambient scope ---

_AMBIENT: contextvars.ContextVar[FrozenConfig | None] = contextvars.ContextVar(
    "asyncresult_config", default=None
)

@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[True],
) -> tuple[FrozenConfig, SourceMap]: ...


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[False] = ...,
) -> FrozenConfig: ...


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    explain: bool = False,
) -> FrozenConfig | tuple[FrozenConfig, SourceMap]:
    """Resolve configuration from all sources into a FrozenConfig.

    Precedence: defaults < pyproject ``[tool.asyncresult]`` < ``.env`` < env <
    overrides.

    Args:
        overrides: Programmatic configuration overrides.
        explain: If True, return tuple of (config, source_map) for audit.

    Raises:
        ConfigurationError: If configuration validation fails.
    """
    merged, sources = _resolve_layers(
        overrides=overrides or {},
        env=load_env(),
        project=load_pyproject(),
    )

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        err = e.errors()[0]
        loc = ".".join(str(part) for part in err.get("loc", ()))
        msg = err.get("msg")
        raise ConfigurationError(
            f"Configuration validation failed for {loc or 'settings'}: {msg}",
            hint=_hint_for(loc, sources),
        ) from e

    frozen = FrozenConfig(**settings.model_dump())
    return (frozen, sources) if explain else frozen


@cache
def default_config() -> FrozenConfig:
    """Return the process-wide configuration, resolved on first use."""
    return resolve_config()


def current_config() -> FrozenConfig:
    """Return the scoped configuration if one is active, else the default."""
    scoped = _AMBIENT.get()
    return scoped if scoped is not None else default_config()


@contextmanager
def config_scope(
    cfg_or_overrides: Mapping[str, Any] | FrozenConfig | None = None,
    **overrides: object,
) -> Generator[FrozenConfig]:
    """Run a block with a specific configuration without touching global state.

    Results created inside the block, and tasks started from it, see the
    scoped configuration.

    Example:
        with config_scope(max_unwrap_depth=32):
            value = await AsyncResult.resolve(nested)
    """
    if isinstance(cfg_or_overrides, FrozenConfig):
        cfg = cfg_or_overrides
    else:
        cfg = resolve_config(overrides={**(cfg_or_overrides or {}), **overrides})

    token = _AMBIENT.set(cfg)
    try:
        yield cfg
    finally:
        _AMBIENT.reset(token)


def audit_lines(cfg: FrozenConfig, sources: SourceMap) -> list[str]:
    """Return one ``field = value (origin)`` line per configuration field."""
    lines = []
    for name in cfg.__dataclass_fields__:
        where = sources.get(name, FieldOrigin(Origin.DEFAULT))
        label = where.origin.value
        if where.env_key:
            label = f"{label}:{where.env_key}"
        elif where.file:
            label = f"{label}:{where.file}"
        lines.append(f"{name} = {getattr(cfg, name)!r} ({label})")
    return lines


# --- Internal helpers ---


def _resolve_layers(
    *,
    overrides: Mapping[str, Any],
    env: Mapping[str, Any],
    project: Mapping[str, Any],
) -> tuple[dict[str, Any], SourceMap]:
    merged: dict[str, Any] = {}
    sources: SourceMap = {}

    for name, info in Settings.model_fields.items():
        merged[name] = info.default
        sources[name] = FieldOrigin(Origin.DEFAULT)

    project_file = str(get_pyproject_path())
    for k, v in project.items():
        merged[k] = v
        sources[k] = FieldOrigin(Origin.PROJECT, file=project_file)
    for k, v in env.items():
        merged[k] = v
        sources[k] = FieldOrigin(Origin.ENV, env_key=f"{ENV_PREFIX}{k.upper()}")
    for k, v in overrides.items():
        merged[k] = v
        sources[k] = FieldOrigin(Origin.OVERRIDES)

    return merged, sources


def _hint_for(loc: str, sources: SourceMap) -> str:
    if loc not in Settings.model_fields:
        known = ", ".join(sorted(Settings.model_fields))
        return f"Unknown setting. Known settings: {known}"
    where = sources.get(loc)
    if where is not None and where.env_key:
        return f"Check the {where.env_key} environment variable."
    if where is not None and where.file:
        return f"Check [tool.asyncresult] in {where.file}."
    return f"Check the value passed for {loc!r}."
