"""Pydantic models for service layer return types.

These models give the API typed responses for computed results that do not
map one-to-one onto a stored record.
"""

from typing import Literal

from pydantic import BaseModel


class NotificationResult(BaseModel):
    """Result of storing a notification."""

    user_id: str
    success: bool
    notification_id: str | None = None
    error: str | None = None


class LeaderboardEntry(BaseModel):
    """Member entry in the points leaderboard."""

    user_id: str
    display_name: str
    points: int
    tasks_completed: int
    rank: int


class TaskStats(BaseModel):
    """Task counts for a family or a single member."""

    total: int
    pending: int
    completed: int
    overdue: int
    completion_rate: int


class StreakInfo(BaseModel):
    """Consecutive-day completion streak for a member."""

    user_id: str
    current_streak: int
    longest_streak: int
    last_activity_date: str | None = None
    status: Literal["active", "at_risk", "broken"]
    days_until_break: int


class FamilySummary(BaseModel):
    """Overall family statistics."""

    family_id: str
    member_count: int
    parent_count: int
    child_count: int
    task_stats: TaskStats
    pending_validations: int


class ValidationQueueItem(BaseModel):
    """Pending photo submission awaiting parent review."""

    submission_id: str
    task_id: str
    task_title: str
    submitted_by: str
    submitted_by_name: str | None = None
    photo_url: str
    submitted_at: str
    points: int


class AuthResult(BaseModel):
    """Authenticated user and a fresh session token."""

    user: dict
    token: str


class EscalationReport(BaseModel):
    """Outcome of one escalation sweep."""

    reminders_sent: int = 0
    managers_notified: int = 0
    skipped_quiet_hours: bool = False
