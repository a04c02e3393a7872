"""Activity log and notification domain models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ActivityAction(StrEnum):
    """What happened to an entity."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    COMPLETED = "completed"
    ASSIGNED = "assigned"
    VALIDATED = "validated"
    JOINED = "joined"
    LEFT = "left"
    REDEEMED = "redeemed"


class EntityType(StrEnum):
    """Kind of entity an activity refers to."""

    TASK = "task"
    FAMILY = "family"
    USER = "user"
    REWARD = "reward"


class NotificationType(StrEnum):
    """In-app notification kinds."""

    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    TASK_REMINDER = "task_reminder"
    TASK_ESCALATION = "task_escalation"
    FAMILY_MEMBER_JOINED = "family_member_joined"
    VALIDATION_REQUIRED = "validation_required"
    VALIDATION_RESULT = "validation_result"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"


class ActivityLog(BaseModel):
    """Activity feed entry."""

    id: str
    family_id: str
    user_id: str
    action: ActivityAction
    entity_type: EntityType
    entity_id: str
    metadata: dict[str, Any] | None = None
    timestamp: str


class Notification(BaseModel):
    """In-app notification."""

    id: str
    user_id: str
    family_id: str | None = None
    type: NotificationType
    title: str
    body: str
    data: dict[str, Any] | None = None
    read: bool = False
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
