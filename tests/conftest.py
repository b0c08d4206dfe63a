import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from kvcache.infrastructure.cache.file_cache import FileCache
from kvcache.infrastructure.config import settings


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Directory used as the cache root (not created up front)."""
    return tmp_path / "cache"


@pytest.fixture
def file_cache(cache_dir: Path) -> FileCache:
    """A FileCache with default pickle serializer."""
    return FileCache(cache_dir)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keeps the user's config file, .env and KVCACHE_* variables out of tests.

    Marks configuration as already loaded with an empty store so nothing
    is read from disk unless a test resets it explicitly.
    """
    for name in list(os.environ):
        if name.startswith(settings.ENV_PREFIX):
            monkeypatch.delenv(name)
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", True)
    yield
    settings.clear_test_config()


@pytest.fixture
def no_logging_setup(mocker):
    """Stops the CLI from replacing the root logger handlers during a test."""
    return mocker.patch("kvcache.main.setup_logging")
