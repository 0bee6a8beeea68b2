"""
Repository-level pytest configuration.

Keeps local runs predictable: configuration is read fresh for every test.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import pytest

from amongst_tools.common import reset_config


pytest_plugins = ["pytester"]


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(scope="session", autouse=True)
def _safe_env_defaults() -> Generator[None, None, None]:
    """
    Set environment defaults if not already provided by the user/CI.
    """
    defaults = {
        "MONGODB_BIND_IP": "127.0.0.1",
    }

    for k, v in defaults.items():
        os.environ.setdefault(k, v)

    yield


@pytest.fixture(autouse=True)
def _fresh_config() -> Generator[None, None, None]:
    """Drop cached configuration around every test."""
    reset_config()
    yield
    reset_config()
