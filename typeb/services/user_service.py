"""User profile lookups and settings."""

import logging
from typing import Any

from typeb.core import db_client
from typeb.core.date_utils import parse_time_string
from typeb.core.logging import span
from typeb.domain.user import User
from typeb.validators import sanitize_email, validate_display_name


logger = logging.getLogger(__name__)

_SETTINGS_FIELDS = {"display_name", "notifications_enabled", "reminder_time", "timezone", "phone_number", "avatar_url"}


async def get_user(*, user_id: str) -> dict[str, Any]:
    """Fetch a raw user record.

    Raises:
        KeyError: If the user does not exist
    """
    return await db_client.get_record(collection="users", record_id=user_id)


async def get_user_by_email(*, email: str) -> dict[str, Any] | None:
    """Look up a user by normalized email."""
    normalized = sanitize_email(email)
    if not normalized:
        return None
    return await db_client.get_first_record(
        collection="users",
        filter_query=f'email = "{db_client.sanitize_param(normalized)}"',
    )


def to_public(record: dict[str, Any]) -> dict[str, Any]:
    """Strip credentials from a user record."""
    return User.from_record(record).model_dump()


async def get_public_user(*, user_id: str) -> dict[str, Any]:
    """Fetch a user without password hash or session data."""
    return to_public(await get_user(user_id=user_id))


async def update_settings(*, user_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    """Update a user's own profile settings.

    Args:
        user_id: User being updated
        updates: Fields to change; unknown fields are ignored

    Returns:
        Updated public user record

    Raises:
        ValueError: If a field fails validation
    """
    with span("user_service.update_settings"):
        data = {key: value for key, value in updates.items() if key in _SETTINGS_FIELDS and value is not None}
        if not data:
            return await get_public_user(user_id=user_id)

        # Guard: Validate display name
        if "display_name" in data:
            validate_display_name(data["display_name"]).raise_for_errors()
            data["display_name"] = data["display_name"].strip()

        # Guard: Validate reminder time
        if "reminder_time" in data:
            parse_time_string(data["reminder_time"])

        record = await db_client.update_record(collection="users", record_id=user_id, data=data)
        logger.info("user_settings_updated", extra={"user_id": user_id, "fields": sorted(data)})
        return to_public(record)
