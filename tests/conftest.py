"""Shared fixtures for tiercache tests."""

import os

import pytest

from tiercache.config import reset_settings


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Reset the settings singleton and drop TIERCACHE_* overrides."""
    for key in list(os.environ):
        if key.startswith("TIERCACHE_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()
