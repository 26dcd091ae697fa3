"""Pytest configuration and fixtures.

Provides environment isolation, config cache resets and logging setup.
All fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from aiocombine.config import reset_config_cache

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_aiocombine_env(request, monkeypatch):
    """Clear AIOCOMBINE_* variables and the cached default config.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if not request.node.get_closest_marker("allow_env_pollution"):
        for key in list(os.environ.keys()):
            if key.startswith("AIOCOMBINE_"):
                monkeypatch.delenv(key, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def debug_library_logging():
    """Let caplog see DEBUG records from the library."""
    logging.getLogger("aiocombine").setLevel(logging.DEBUG)
