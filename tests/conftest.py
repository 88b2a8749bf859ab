"""Pytest configuration and fixtures.

Provides environment isolation for configuration resolution and quiet
logging defaults. All fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from asyncresult.config import default_config

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from reading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.dotenv_values", lambda *_args, **_kwargs: {}, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_config_env(monkeypatch, tmp_path):
    """Ensure a clean configuration environment for each test.

    Clears ASYNCRESULT_* env vars and points the project file lookup at an
    empty temp directory so the repository's own pyproject is never read.
    """
    for key in list(os.environ.keys()):
        if key.startswith("ASYNCRESULT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ASYNCRESULT_PYPROJECT_PATH", str(tmp_path / "pyproject.toml"))


@pytest.fixture(autouse=True)
def fresh_default_config():
    """Drop the cached process configuration around each test."""
    default_config.cache_clear()
    yield
    default_config.cache_clear()


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_asyncio_debug():
    """Keep asyncio's own debug chatter out of captured logs."""
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "allow_dotenv: let python-dotenv read .env files in this test"
    )
