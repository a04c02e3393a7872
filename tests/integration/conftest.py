"""Pytest configuration for integration tests."""

import pytest

from typeb.core.config import settings
from typeb.core.redis_client import redis_client


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Run against SQLite only, with default flags."""
    monkeypatch.setattr(settings, "feature_flags", {})
    monkeypatch.setattr(settings, "quiet_hours_start", None)
    monkeypatch.setattr(settings, "quiet_hours_end", None)
    monkeypatch.setattr(redis_client, "_enabled", False)
