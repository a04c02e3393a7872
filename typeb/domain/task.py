"""Task domain models and enums."""

from enum import IntEnum, StrEnum

from pydantic import BaseModel, Field

from typeb.domain.family import TaskCategory


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(StrEnum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ValidationStatus(StrEnum):
    """Photo validation outcome for a completed task."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RecurrenceFrequency(StrEnum):
    """How often a recurring task repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EscalationLevel(IntEnum):
    """How far an overdue task has been escalated."""

    NONE = 0
    REMINDED = 1  # Assignee has been reminded
    MANAGER_NOTIFIED = 2  # Parents have been notified


class RecurrencePattern(BaseModel):
    """Recurrence settings for a repeating task."""

    frequency: RecurrenceFrequency
    interval: int = Field(default=1, description="Repeat every N periods (1-30)")
    days_of_week: list[int] | None = Field(default=None, description="Weekdays for weekly tasks (0=Sunday)")
    day_of_month: int | None = Field(default=None, description="Day of month for monthly tasks")
    end_date: str | None = Field(default=None, description="Stop generating occurrences after this date")


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID")
    family_id: str = Field(..., description="Owning family")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed description")
    category: TaskCategory = Field(..., description="Embedded copy of the family category")
    assigned_to: str = Field(..., description="Assignee user ID")
    assigned_by: str | None = Field(default=None, description="User who assigned the task")
    created_by: str = Field(..., description="Creator user ID")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Lifecycle status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority")
    due_date: str | None = Field(default=None, description="Due date (ISO format)")
    points: int | None = Field(default=None, description="Points offered for completion")
    points_awarded: int | None = Field(default=None, description="Points actually awarded")
    requires_photo: bool = Field(default=False, description="Whether completion needs photo proof")
    photo_url: str | None = Field(default=None, description="Proof photo URL")
    validation_status: ValidationStatus | None = Field(default=None, description="Photo validation outcome")
    validation_notes: str | None = Field(default=None, description="Reviewer notes")
    photo_validated_by: str | None = Field(default=None, description="Reviewer user ID")
    completed_at: str | None = Field(default=None, description="Completion timestamp")
    completed_by: str | None = Field(default=None, description="User who completed the task")
    is_recurring: bool = Field(default=False, description="Whether the task repeats")
    recurrence_pattern: RecurrencePattern | None = Field(default=None, description="Recurrence settings")
    reminder_enabled: bool = Field(default=False, description="Whether reminders are enabled")
    reminder_time: str | None = Field(default=None, description="Reminder time (HH:MM)")
    escalation_level: EscalationLevel = Field(default=EscalationLevel.NONE, description="Overdue escalation")
    last_reminder_sent: str | None = Field(default=None, description="When the last reminder went out")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")
