"""Domain models and DTOs."""

from typeb.domain.activity import ActivityAction, ActivityLog, EntityType, Notification, NotificationType
from typeb.domain.family import DEFAULT_TASK_CATEGORIES, Family, FamilyAction, RoleConfig, TaskCategory
from typeb.domain.reward import Redemption, RedemptionStatus, Reward
from typeb.domain.submission import Submission, SubmissionStatus
from typeb.domain.task import (
    EscalationLevel,
    RecurrenceFrequency,
    RecurrencePattern,
    Task,
    TaskPriority,
    TaskStatus,
    ValidationStatus,
)
from typeb.domain.user import User, UserRole


__all__ = [
    "DEFAULT_TASK_CATEGORIES",
    "ActivityAction",
    "ActivityLog",
    "EntityType",
    "EscalationLevel",
    "Family",
    "FamilyAction",
    "Notification",
    "NotificationType",
    "RecurrenceFrequency",
    "RecurrencePattern",
    "Redemption",
    "RedemptionStatus",
    "Reward",
    "RoleConfig",
    "Submission",
    "SubmissionStatus",
    "Task",
    "TaskCategory",
    "TaskPriority",
    "TaskStatus",
    "User",
    "UserRole",
    "ValidationStatus",
]
