"""Input validators returning ValidationResult objects."""

from typeb.validators.auth import (
    is_email_likely_valid,
    sanitize_email,
    validate_display_name,
    validate_email,
    validate_password,
    validate_password_confirmation,
)
from typeb.validators.family import (
    validate_family_input,
    validate_family_name,
    validate_invite_code,
    validate_max_members,
    validate_role,
    validate_task_categories,
)
from typeb.validators.result import ValidationResult
from typeb.validators.task import (
    validate_create_task_input,
    validate_due_date,
    validate_points,
    validate_recurrence_pattern,
    validate_task_description,
    validate_task_priority,
    validate_task_status,
    validate_task_title,
    validate_update_task_input,
)


__all__ = [
    "ValidationResult",
    "is_email_likely_valid",
    "sanitize_email",
    "validate_create_task_input",
    "validate_display_name",
    "validate_due_date",
    "validate_email",
    "validate_family_input",
    "validate_family_name",
    "validate_invite_code",
    "validate_max_members",
    "validate_password",
    "validate_password_confirmation",
    "validate_points",
    "validate_recurrence_pattern",
    "validate_role",
    "validate_task_categories",
    "validate_task_description",
    "validate_task_priority",
    "validate_task_status",
    "validate_task_title",
    "validate_update_task_input",
]
