"""Family input validators."""

import re
from typing import Any

from pydantic import ValidationError

from typeb.core.config import Constants
from typeb.domain.family import TaskCategory
from typeb.domain.user import UserRole
from typeb.validators.result import ValidationResult


FAMILY_NAME_MIN_LENGTH = 2
FAMILY_NAME_MAX_LENGTH = 50
INVITE_CODE_PATTERN = re.compile(r"^[A-Z0-9]{6}$")
_FORBIDDEN_NAME_CHARACTERS = re.compile(r"[<>\"'&]")


def validate_family_name(name: str | None) -> ValidationResult:
    """Validate a family name: 2-50 characters, no markup characters."""
    if not name or not isinstance(name, str) or not name.strip():
        return ValidationResult.fail("Family name is required")

    if len(name.strip()) < FAMILY_NAME_MIN_LENGTH:
        return ValidationResult.fail(f"Family name must be at least {FAMILY_NAME_MIN_LENGTH} characters")

    if len(name) > FAMILY_NAME_MAX_LENGTH:
        return ValidationResult.fail(f"Family name must not exceed {FAMILY_NAME_MAX_LENGTH} characters")

    if _FORBIDDEN_NAME_CHARACTERS.search(name):
        return ValidationResult.fail("Family name contains invalid characters")

    return ValidationResult.ok()


def validate_invite_code(code: str | None) -> ValidationResult:
    """Validate the shape of an invite code (case-insensitive)."""
    if not code or not isinstance(code, str) or not code.strip():
        return ValidationResult.fail("Invite code is required")

    if not INVITE_CODE_PATTERN.match(code.strip().upper()):
        return ValidationResult.fail("Invalid invite code format")

    return ValidationResult.ok()


def validate_role(role: str | None) -> ValidationResult:
    """Validate a family role."""
    if role not in (UserRole.PARENT, UserRole.CHILD):
        return ValidationResult.fail('Invalid role. Must be "parent" or "child"')
    return ValidationResult.ok()


def validate_max_members(max_members: int | None) -> ValidationResult:
    """Validate a member capacity."""
    if (
        not isinstance(max_members, int)
        or not Constants.MIN_FAMILY_MEMBERS <= max_members <= Constants.MAX_FAMILY_MEMBERS
    ):
        return ValidationResult.fail(
            f"Maximum members must be between {Constants.MIN_FAMILY_MEMBERS} and {Constants.MAX_FAMILY_MEMBERS}"
        )
    return ValidationResult.ok()


def validate_task_categories(categories: Any) -> ValidationResult:  # noqa: ANN401, PLR0911
    """Validate a family's task category list."""
    if not isinstance(categories, list):
        return ValidationResult.fail("Task categories must be an array")

    if len(categories) > Constants.MAX_TASK_CATEGORIES:
        return ValidationResult.fail(f"Cannot have more than {Constants.MAX_TASK_CATEGORIES} task categories")

    seen_ids: set[str] = set()
    for category in categories:
        if not isinstance(category, dict):
            return ValidationResult.fail("Invalid task category format")

        if not category.get("id") or not category.get("name") or not category.get("color"):
            return ValidationResult.fail("Task category must have id, name, color, and order")
        if not isinstance(category.get("order"), int) or isinstance(category.get("order"), bool):
            return ValidationResult.fail("Task category must have id, name, color, and order")

        try:
            TaskCategory.model_validate(category)
        except ValidationError as e:
            return ValidationResult.fail(e.errors()[0]["msg"].removeprefix("Value error, "))

        if str(category["id"]) in seen_ids:
            return ValidationResult.fail("Task category ids must be unique")
        seen_ids.add(str(category["id"]))

    return ValidationResult.ok()


def validate_family_input(data: dict[str, Any]) -> ValidationResult:
    """Validate the family fields present in ``data``, stopping at the first failure."""
    checks = [
        ("name", validate_family_name),
        ("invite_code", validate_invite_code),
        ("role", validate_role),
        ("max_members", validate_max_members),
        ("task_categories", validate_task_categories),
    ]
    for field, check in checks:
        if field in data:
            result = check(data[field])
            if not result.is_valid:
                return result
    return ValidationResult.ok()
