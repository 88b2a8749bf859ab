# src/asyncresult/config/loaders.py

"""Configuration loaders for environment and project files.

Each loader returns a plain dictionary of raw values; validation happens in
``core`` behind the ``Settings`` schema.
"""

from __future__ import annotations

import os
from pathlib import Path
import tomllib
from typing import TYPE_CHECKING, Any

import dotenv

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_PREFIX = "ASYNCRESULT_"
CONFIG_TOOL_NAME = "asyncresult"

# Meta/control variables that steer resolution but aren't config fields
META_ENV_FIELDS = {"pyproject_path"}

_NONE_STRINGS = {"", "none", "null"}


def _coerce_bool(v: str) -> bool:
    """Convert string to boolean using common conventions."""
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _coerce_env_value(value: str, field_name: str) -> Any:
    """Coerce an env string using the schema type of *field_name*.

    Falls back to the original string so Pydantic reports a precise error.
    """
    from .core import Settings  # local import to keep loaders import-light

    info = Settings.model_fields.get(field_name)
    if info is None:
        return value
    annotation = info.annotation
    if annotation is bool:
        return _coerce_bool(value)
    if value.strip().lower() in _NONE_STRINGS and not info.is_required():
        return info.default
    try:
        return int(value)
    except ValueError:
        return value


def load_dotenv_file() -> dict[str, str]:
    """Read ``.env`` from the working directory or its parents.

    Values are returned, never exported: ``os.environ`` is left untouched.
    """
    path = dotenv.find_dotenv(usecwd=True)
    if not path:
        return {}
    return {k: v for k, v in dotenv.dotenv_values(path).items() if v is not None}


def load_env() -> Mapping[str, Any]:
    """Load configuration from ``ASYNCRESULT_*`` environment variables.

    A ``.env`` file supplies defaults; the real environment wins. Meta
    variables (such as ``ASYNCRESULT_PYPROJECT_PATH``) are skipped.
    """
    config: dict[str, Any] = {}
    for key, value in {**load_dotenv_file(), **os.environ}.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in META_ENV_FIELDS:
            continue
        config[field_name] = _coerce_env_value(value, field_name)
    return config


def get_pyproject_path() -> Path:
    """Return the project file to read, honoring ``ASYNCRESULT_PYPROJECT_PATH``."""
    override = os.environ.get(f"{ENV_PREFIX}PYPROJECT_PATH")
    if override:
        return Path(override).expanduser()
    return Path.cwd() / "pyproject.toml"


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def load_pyproject(path: Path | None = None) -> Mapping[str, Any]:
    """Load the ``[tool.asyncresult]`` table from the project file."""
    data = _read_toml(path or get_pyproject_path())
    section = data.get("tool", {}).get(CONFIG_TOOL_NAME, {})
    return dict(section) if isinstance(section, dict) else {}
