"""Pytest configuration and shared fixtures."""

import logging
import shutil
import tempfile
from pathlib import Path

import pytest

from ctxlocal.config import HarnessConfig, reset_config
from ctxlocal.store import ContextStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    dir_path = tempfile.mkdtemp()
    yield dir_path
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Strip CTXLOCAL_* overrides and restore the package logger after each test."""
    for name in (
        "CTXLOCAL_CONCURRENCY",
        "CTXLOCAL_CHECKPOINTS",
        "CTXLOCAL_NO_COLOR",
        "CTXLOCAL_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)

    logger = logging.getLogger("ctxlocal")
    level, handlers = logger.level, list(logger.handlers)
    reset_config()
    yield
    logger.setLevel(level)
    logger.handlers[:] = handlers
    reset_config()


@pytest.fixture
def isolated_config(temp_dir, monkeypatch):
    """Point HOME at a temp dir so no real user config is picked up."""
    config_dir = Path(temp_dir) / ".config" / "ctxlocal"
    config_dir.mkdir(parents=True)
    monkeypatch.setenv("HOME", temp_dir)
    return config_dir


@pytest.fixture
def store():
    """A fresh context store."""
    return ContextStore("test")


@pytest.fixture
def small_harness():
    """Harness settings small enough for fast unit tests."""
    return HarnessConfig(concurrency=40, checkpoints=4, chain_delay=0.001)


# Markers for slow tests
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
