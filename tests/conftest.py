"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import AsyncIterator

import pytest
from fastapi.testclient import TestClient

from typeb.core import db_client
from typeb.core.config import settings
from typeb.main import app


logger = logging.getLogger(__name__)


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch) -> AsyncIterator[str]:
    """Initialize a throwaway SQLite database and point db_client at it."""
    db_path = str(tmp_path / "typeb-test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    logger.info("Test database initialized at %s", db_path)

    yield db_path

    await db_client.close_connection()


@pytest.fixture
def test_client() -> TestClient:
    """Provide FastAPI test client (the lifespan is not run)."""
    return TestClient(app)
