"""Family domain models, task categories and role labels."""

import re
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


MAX_CATEGORY_NAME_LENGTH = 30
_HEX_COLOR = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)


class RolePreset(StrEnum):
    """Label presets for the manager/member roles."""

    FAMILY = "family"
    ROOMMATES = "roommates"
    TEAM = "team"
    CUSTOM = "custom"


class FamilyAction(StrEnum):
    """Actions checked by the family permission guard."""

    VIEW = "view"
    UPDATE = "update"
    ADMIN = "admin"
    LEAVE = "leave"


class TaskCategory(BaseModel):
    """A task category configured for a family."""

    id: str = Field(..., description="Category ID, unique within the family")
    name: str = Field(..., description="Category name")
    color: str = Field(..., description="Hex color (#RRGGBB)")
    icon: str | None = Field(default=None, description="Icon identifier")
    order: int = Field(..., description="Display order")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the category name length."""
        v = v.strip()
        if not v:
            raise ValueError("Category name is required")
        if len(v) > MAX_CATEGORY_NAME_LENGTH:
            raise ValueError(f"Category name must not exceed {MAX_CATEGORY_NAME_LENGTH} characters")
        return v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Validate the color is a #RRGGBB hex string."""
        if not _HEX_COLOR.match(v):
            raise ValueError("Category color must be a valid hex color")
        return v


class RoleConfig(BaseModel):
    """Display labels for the parent/child roles."""

    preset: RolePreset = Field(default=RolePreset.FAMILY, description="Label preset")
    admin_label: str = Field(default="Parent", description="Label for the manager role")
    member_label: str = Field(default="Child", description="Label for the member role")
    admin_label_plural: str | None = Field(default=None, description="Plural manager label")
    member_label_plural: str | None = Field(default=None, description="Plural member label")


ROLE_PRESETS: dict[RolePreset, RoleConfig] = {
    RolePreset.FAMILY: RoleConfig(
        preset=RolePreset.FAMILY,
        admin_label="Parent",
        member_label="Child",
        admin_label_plural="Parents",
        member_label_plural="Children",
    ),
    RolePreset.ROOMMATES: RoleConfig(
        preset=RolePreset.ROOMMATES,
        admin_label="Organizer",
        member_label="Roommate",
        admin_label_plural="Organizers",
        member_label_plural="Roommates",
    ),
    RolePreset.TEAM: RoleConfig(
        preset=RolePreset.TEAM,
        admin_label="Manager",
        member_label="Member",
        admin_label_plural="Managers",
        member_label_plural="Members",
    ),
}


DEFAULT_TASK_CATEGORIES: list[TaskCategory] = [
    TaskCategory(id="1", name="Chores", color="#10B981", icon="home", order=1),
    TaskCategory(id="2", name="Homework", color="#3B82F6", icon="book-open", order=2),
    TaskCategory(id="3", name="Exercise", color="#F59E0B", icon="heart", order=3),
    TaskCategory(id="4", name="Personal", color="#8B5CF6", icon="user", order=4),
    TaskCategory(id="5", name="Other", color="#6B7280", icon="grid", order=5),
]


class Family(BaseModel):
    """Family data transfer object with derived membership lists."""

    id: str = Field(..., description="Unique family ID")
    name: str = Field(..., description="Family name")
    invite_code: str = Field(..., description="6-character join code")
    created_by: str = Field(..., description="User who created the family")
    member_ids: list[str] = Field(default_factory=list, description="All member user IDs")
    parent_ids: list[str] = Field(default_factory=list, description="Member IDs with the parent role")
    child_ids: list[str] = Field(default_factory=list, description="Member IDs with the child role")
    max_members: int = Field(..., description="Member capacity")
    is_premium: bool = Field(default=False, description="Whether the family holds premium")
    task_categories: list[TaskCategory] = Field(default_factory=list, description="Configured categories")
    role_config: RoleConfig | None = Field(default=None, description="Optional role labels")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")
