"""User domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field


class UserRole(StrEnum):
    """Role of a user inside their family."""

    PARENT = "parent"
    CHILD = "child"


class User(BaseModel):
    """Public view of a user record (never carries credentials)."""

    id: str = Field(..., description="Unique user ID")
    email: str = Field(..., description="Normalized (lower-case) email address")
    display_name: str = Field(..., description="Display name shown to the family")
    role: UserRole | None = Field(default=None, description="Role in the family, None when not in a family")
    family_id: str | None = Field(default=None, description="Family the user belongs to")
    is_premium: bool = Field(default=False, description="Whether the user holds a premium subscription")
    notifications_enabled: bool = Field(default=True, description="Whether in-app notifications are delivered")
    reminder_time: str | None = Field(default=None, description="Preferred daily reminder time (HH:MM)")
    timezone: str = Field(default="UTC", description="IANA timezone name")
    phone_number: str | None = Field(default=None, description="Optional phone number")
    avatar_url: str | None = Field(default=None, description="Optional avatar image URL")
    points: int = Field(default=0, description="Spendable points balance")
    total_points_earned: int = Field(default=0, description="Lifetime points earned")
    tasks_completed: int = Field(default=0, description="Number of approved task completions")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")

    @classmethod
    def from_record(cls, record: dict) -> "User":
        """Build the public view from a raw users record."""
        return cls.model_validate({k: v for k, v in record.items() if k in cls.model_fields})
