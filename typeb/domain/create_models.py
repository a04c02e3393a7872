"""Request payloads for creating records.

Field rules live in typeb.validators so every client gets the same
messages; these models only fix the shape of the payload.
"""

from typing import Any

from pydantic import BaseModel, Field

from typeb.domain.family import RoleConfig
from typeb.domain.user import UserRole


class SignUpRequest(BaseModel):
    """Payload for creating an account."""

    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")
    display_name: str = Field(..., description="Display name")
    password_confirmation: str | None = Field(default=None, description="Repeat of the password")


class SignInRequest(BaseModel):
    """Payload for signing in."""

    email: str
    password: str


class PasswordResetRequest(BaseModel):
    """Payload for requesting a password reset."""

    email: str


class PasswordResetConfirm(BaseModel):
    """Payload for completing a password reset."""

    token: str
    new_password: str


class FamilyCreate(BaseModel):
    """Payload for creating a family."""

    name: str = Field(..., description="Family name")
    role_config: RoleConfig | None = Field(default=None, description="Optional role labels")


class JoinFamilyRequest(BaseModel):
    """Payload for joining a family by invite code."""

    invite_code: str
    role: UserRole = UserRole.CHILD


class TaskCreate(BaseModel):
    """Payload for creating a task."""

    title: str | None = None
    description: str | None = None
    category_id: str | None = None
    assigned_to: str | None = None
    due_date: str | None = None
    priority: str | None = None
    points: float | None = None
    requires_photo: bool = False
    is_recurring: bool = False
    recurrence_pattern: dict[str, Any] | None = None
    reminder_enabled: bool = False
    reminder_time: str | None = None


class CompleteTaskRequest(BaseModel):
    """Payload for marking a task complete."""

    photo_url: str | None = None


class ReviewRequest(BaseModel):
    """Payload for approving or rejecting a submission or task."""

    approved: bool
    notes: str | None = None


class RewardCreate(BaseModel):
    """Payload for adding a reward to the family catalog."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    point_cost: int = Field(..., gt=0, le=100000)


class RedeemRequest(BaseModel):
    """Payload for redeeming a reward."""

    member_id: str
    reward_id: str
