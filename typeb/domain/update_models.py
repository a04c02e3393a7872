"""Update payloads. Services apply only the fields a client actually sent."""

from typing import Any

from pydantic import BaseModel

from typeb.domain.family import RoleConfig
from typeb.domain.user import UserRole


class FamilyUpdate(BaseModel):
    """Update payload for family settings."""

    name: str | None = None
    max_members: int | None = None
    task_categories: list[dict[str, Any]] | None = None
    role_config: RoleConfig | None = None


class TaskUpdate(BaseModel):
    """Update payload for a task."""

    title: str | None = None
    description: str | None = None
    category_id: str | None = None
    assigned_to: str | None = None
    due_date: str | None = None
    priority: str | None = None
    status: str | None = None
    points: float | None = None
    requires_photo: bool | None = None
    is_recurring: bool | None = None
    recurrence_pattern: dict[str, Any] | None = None
    reminder_enabled: bool | None = None
    reminder_time: str | None = None


class RoleChange(BaseModel):
    """Update payload for a member's role."""

    role: UserRole


class UserSettingsUpdate(BaseModel):
    """Update payload for a user's own profile settings."""

    display_name: str | None = None
    notifications_enabled: bool | None = None
    reminder_time: str | None = None
    timezone: str | None = None
    phone_number: str | None = None
    avatar_url: str | None = None


class MarkReadRequest(BaseModel):
    """Notifications to mark as read; empty means all."""

    notification_ids: list[str] = []
