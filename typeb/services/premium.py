"""Premium feature gates and member limits.

Gates operate on plain user/family records. A family record's
``max_members`` is the authoritative capacity; ``member_ids`` is the
derived membership list attached by family_service.
"""

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel

from typeb.core.config import settings


class PremiumFeature(StrEnum):
    """Features reserved for premium users or families."""

    MULTIPLE_MEMBERS = "multiple_members"
    PHOTO_VALIDATION = "photo_validation"
    SMART_NOTIFICATIONS = "smart_notifications"
    ADVANCED_ANALYTICS = "advanced_analytics"
    CUSTOM_CATEGORIES = "custom_categories"
    CUSTOM_ROLES = "custom_roles"
    PRIORITY_SUPPORT = "priority_support"


PremiumAction = Literal["invite_member", "photo_validation", "custom_category", "custom_role"]
UpgradeContext = Literal["member_limit", "photo_required", "custom_category", "analytics"]


class UpgradePrompt(BaseModel):
    """Copy for an upgrade call-to-action."""

    title: str
    message: str
    cta: str
    url: str


FEATURE_DESCRIPTIONS: dict[PremiumFeature, str] = {
    PremiumFeature.MULTIPLE_MEMBERS: "Add up to 10 family members",
    PremiumFeature.PHOTO_VALIDATION: "Require photo proof for task completion",
    PremiumFeature.SMART_NOTIFICATIONS: "Advanced reminder and escalation options",
    PremiumFeature.ADVANCED_ANALYTICS: "Detailed insights and progress tracking",
    PremiumFeature.CUSTOM_CATEGORIES: "Create your own task categories",
    PremiumFeature.CUSTOM_ROLES: "Customize role names for your family",
    PremiumFeature.PRIORITY_SUPPORT: "24/7 customer support via email",
}

_UPGRADE_PROMPTS: dict[str, tuple[str, str, str]] = {
    "member_limit": (
        "Add Family Members",
        "Upgrade to Premium to add more family members and unlock advanced features.",
        "Upgrade to Premium",
    ),
    "photo_required": (
        "Photo Validation",
        "Require photo proof for task completion with TypeB Premium.",
        "Unlock Photo Validation",
    ),
    "custom_category": (
        "Custom Categories",
        "Create your own task categories with TypeB Premium.",
        "Get Premium",
    ),
    "analytics": (
        "Advanced Analytics",
        "Get detailed insights and progress tracking with TypeB Premium.",
        "View Analytics",
    ),
}


def has_premium_feature(
    feature: PremiumFeature,
    user: dict[str, Any] | None,
    family: dict[str, Any] | None = None,
) -> bool:
    """Return True if the user or their family holds premium."""
    if user and user.get("is_premium"):
        return True
    return bool(family and family.get("is_premium"))


def default_max_members(*, is_premium: bool) -> int:
    """Member capacity for a new family on the given tier."""
    return settings.premium_max_members if is_premium else settings.free_max_members


def can_add_family_member(family: dict[str, Any] | None) -> bool:
    """Return True if the family has room for another member."""
    if not family:
        return False
    return len(family.get("member_ids", [])) < family["max_members"]


def get_remaining_member_slots(family: dict[str, Any] | None) -> int:
    """Return how many more members the family can take."""
    if not family:
        return 0
    return max(0, family["max_members"] - len(family.get("member_ids", [])))


def needs_premium_for(
    action: PremiumAction,
    family: dict[str, Any] | None,
    user: dict[str, Any] | None,
) -> bool:
    """Return True if the action is blocked until the user upgrades."""
    if has_premium_feature(PremiumFeature.MULTIPLE_MEMBERS, user, family):
        return False

    if action == "invite_member":
        return family is not None and not can_add_family_member(family)
    return action in ("photo_validation", "custom_category", "custom_role")


def require_premium(
    feature: PremiumFeature,
    user: dict[str, Any] | None,
    family: dict[str, Any] | None,
) -> None:
    """Raise when a premium feature is used without premium.

    Raises:
        PermissionError: If neither the user nor the family is premium
    """
    if not has_premium_feature(feature, user, family):
        raise PermissionError(f"Premium subscription required: {FEATURE_DESCRIPTIONS[feature]}")


def get_premium_feature_description(feature: PremiumFeature | str) -> str:
    """Human description of a premium feature."""
    try:
        return FEATURE_DESCRIPTIONS[PremiumFeature(feature)]
    except ValueError:
        return "Premium feature"


def get_upgrade_prompt(context: UpgradeContext) -> UpgradePrompt:
    """Return upgrade copy for a UI context, pointing at the billing portal."""
    title, message, cta = _UPGRADE_PROMPTS[context]
    return UpgradePrompt(title=title, message=message, cta=cta, url=settings.upgrade_url)


def should_show_premium_badge(
    feature: PremiumFeature,
    user: dict[str, Any] | None,
    family: dict[str, Any] | None,
) -> bool:
    """Show a premium badge only to users who lack the feature."""
    return not has_premium_feature(feature, user, family)


def get_member_limit_text(family: dict[str, Any] | None) -> str:
    """Short description of the family's member usage."""
    if not family:
        return f"{settings.free_max_members} members (free plan)"

    current = len(family.get("member_ids", []))
    maximum = family["max_members"]

    if family.get("is_premium"):
        return f"{current} of {maximum} members"

    if current >= maximum:
        return "Member limit reached (upgrade for more)"
    return f"{current} of {maximum} members (free plan)"
