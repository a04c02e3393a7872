"""Pytest configuration and fixtures for unit tests."""

import uuid

import pytest

from typeb.core.config import settings
from typeb.core.redis_client import redis_client
from typeb.domain.user import UserRole
from typeb.services import family_service
from tests.unit.mocks import InMemoryDBClient


STRONG_PASSWORD = "Sunny-Day42!"


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Reset settings that tests commonly toggle and run without Redis."""
    monkeypatch.setattr(settings, "feature_flags", {})
    monkeypatch.setattr(settings, "quiet_hours_start", None)
    monkeypatch.setattr(settings, "quiet_hours_end", None)
    monkeypatch.setattr(redis_client, "_enabled", False)


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches typeb.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("typeb.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("typeb.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("typeb.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("typeb.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("typeb.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("typeb.core.db_client.get_first_record", in_memory_db.get_first_record)
    monkeypatch.setattr("typeb.core.db_client.transaction", in_memory_db.transaction)

    return in_memory_db


@pytest.fixture
def user_factory(patched_db):
    """Factory for creating users with custom data.

    Usage:
        user = await user_factory(display_name="Sam", is_premium=True)
    """

    async def _create_user(**kwargs):
        suffix = uuid.uuid4().hex[:8]
        data = {
            "email": f"user_{suffix}@example.com",
            "display_name": f"User {suffix}",
            "password_hash": "not-a-bcrypt-hash",
            "session_version": 0,
            "role": None,
            "family_id": None,
            "is_premium": False,
            "notifications_enabled": True,
            "timezone": "UTC",
            "points": 0,
            "total_points_earned": 0,
            "tasks_completed": 0,
        }
        data.update(kwargs)
        return await patched_db.create_record(collection="users", data=data)

    return _create_user


@pytest.fixture
async def family_setup(user_factory):
    """A free family with one parent and one child.

    Returns a dict with ``family``, ``parent`` and ``child`` records.
    """
    parent = await user_factory(display_name="Pat Parent")
    child = await user_factory(display_name="Casey Child")

    family = await family_service.create_family(user_id=parent["id"], name="The Testers")
    family = await family_service.join_family(
        user_id=child["id"],
        invite_code=family["invite_code"],
        role=UserRole.CHILD,
    )
    return {"family": family, "parent": parent, "child": child}


@pytest.fixture
def sample_task_input(family_setup):
    """Returns a valid task creation payload assigned to the child."""
    return {
        "title": "Empty the dishwasher",
        "description": "Put the clean dishes away",
        "category_id": "1",
        "assigned_to": family_setup["child"]["id"],
        "priority": "high",
        "points": 15,
    }
