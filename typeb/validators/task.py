"""Task input validators."""

from datetime import datetime
from typing import Any

from typeb.core.date_utils import now_utc, to_datetime
from typeb.domain.task import RecurrenceFrequency, TaskPriority, TaskStatus
from typeb.validators.result import ValidationResult


MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MIN_RECURRENCE_INTERVAL = 1
MAX_RECURRENCE_INTERVAL = 30
MAX_POINTS = 1000

VALID_PRIORITIES = [p.value for p in TaskPriority]
VALID_STATUSES = [s.value for s in TaskStatus]
VALID_FREQUENCIES = [f.value for f in RecurrenceFrequency]


def validate_task_title(title: str | None) -> ValidationResult:
    """Validate a task title (3-100 characters after trimming)."""
    if not title or not isinstance(title, str):
        return ValidationResult.fail("Title is required")

    trimmed = title.strip()

    if len(trimmed) < MIN_TITLE_LENGTH:
        return ValidationResult.fail(f"Title must be at least {MIN_TITLE_LENGTH} characters")

    if len(trimmed) > MAX_TITLE_LENGTH:
        return ValidationResult.fail(f"Title must be less than {MAX_TITLE_LENGTH} characters")

    return ValidationResult.ok()


def validate_task_description(description: Any) -> ValidationResult:  # noqa: ANN401
    """Validate an optional task description."""
    if not description:
        return ValidationResult.ok()

    if not isinstance(description, str):
        return ValidationResult.fail("Description must be a string")

    if len(description) > MAX_DESCRIPTION_LENGTH:
        return ValidationResult.fail(f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters")

    return ValidationResult.ok()


def validate_task_priority(priority: str | None) -> ValidationResult:
    """Validate a priority value."""
    if priority not in VALID_PRIORITIES:
        return ValidationResult.fail(f"Invalid priority. Must be one of: {', '.join(VALID_PRIORITIES)}")
    return ValidationResult.ok()


def validate_task_status(status: str | None) -> ValidationResult:
    """Validate a status value."""
    if status not in VALID_STATUSES:
        return ValidationResult.fail(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")
    return ValidationResult.ok()


def validate_due_date(due_date: datetime | str | None, now: datetime | None = None) -> ValidationResult:
    """Validate an optional due date; any time today is still allowed."""
    if not due_date:
        return ValidationResult.ok()

    try:
        parsed = to_datetime(due_date)
    except ValueError:
        return ValidationResult.fail("Invalid date format")

    today = (now or now_utc()).date()
    if parsed.date() < today:
        return ValidationResult.fail("Due date cannot be in the past")

    return ValidationResult.ok()


def validate_recurrence_pattern(  # noqa: C901, PLR0911
    is_recurring: bool, pattern: dict[str, Any] | None, now: datetime | None = None
) -> ValidationResult:
    """Validate the recurrence settings of a recurring task."""
    if not is_recurring:
        return ValidationResult.ok()

    if not pattern:
        return ValidationResult.fail("Recurrence pattern is required for recurring tasks")

    frequency = pattern.get("frequency")
    if frequency not in VALID_FREQUENCIES:
        return ValidationResult.fail("Invalid recurrence frequency")

    interval = pattern.get("interval")
    if interval is not None and (
        not isinstance(interval, int) or not MIN_RECURRENCE_INTERVAL <= interval <= MAX_RECURRENCE_INTERVAL
    ):
        return ValidationResult.fail(
            f"Recurrence interval must be between {MIN_RECURRENCE_INTERVAL} and {MAX_RECURRENCE_INTERVAL}"
        )

    end_date = pattern.get("end_date")
    if end_date:
        try:
            end = to_datetime(end_date)
        except ValueError:
            return ValidationResult.fail("Invalid date format")
        if end <= (now or now_utc()):
            return ValidationResult.fail("Recurrence end date must be in the future")

    days_of_week = pattern.get("days_of_week")
    if frequency == RecurrenceFrequency.WEEKLY and days_of_week:
        if not isinstance(days_of_week, list):
            return ValidationResult.fail("Days of week must be an array")
        if not all(isinstance(day, int) and 0 <= day <= 6 for day in days_of_week):  # noqa: PLR2004
            return ValidationResult.fail("Invalid day of week value")

    day_of_month = pattern.get("day_of_month")
    if frequency == RecurrenceFrequency.MONTHLY and day_of_month is not None:
        if not isinstance(day_of_month, int) or not 1 <= day_of_month <= 31:  # noqa: PLR2004
            return ValidationResult.fail("Day of month must be between 1 and 31")

    return ValidationResult.ok()


def validate_points(points: Any) -> ValidationResult:  # noqa: ANN401
    """Validate an optional point value (whole number, 0-1000)."""
    if points is None:
        return ValidationResult.ok()

    if isinstance(points, bool) or not isinstance(points, int | float):
        return ValidationResult.fail("Points must be a number")

    if points < 0 or points > MAX_POINTS:
        return ValidationResult.fail(f"Points must be between 0 and {MAX_POINTS}")

    if points != int(points):
        return ValidationResult.fail("Points must be a whole number")

    return ValidationResult.ok()


def _collect(errors: list[str], result: ValidationResult) -> None:
    errors.extend(result.messages)


def validate_create_task_input(data: dict[str, Any], now: datetime | None = None) -> ValidationResult:
    """Validate a full task creation payload, collecting every failure."""
    errors: list[str] = []

    _collect(errors, validate_task_title(data.get("title")))
    _collect(errors, validate_task_description(data.get("description")))
    _collect(errors, validate_task_priority(data.get("priority")))
    _collect(errors, validate_due_date(data.get("due_date"), now=now))
    _collect(errors, validate_recurrence_pattern(bool(data.get("is_recurring")), data.get("recurrence_pattern"), now))
    _collect(errors, validate_points(data.get("points")))

    if not data.get("category_id"):
        errors.append("Category is required")

    if not data.get("assigned_to"):
        errors.append("Task must be assigned to someone")

    return ValidationResult.from_errors(errors)


def validate_update_task_input(data: dict[str, Any], now: datetime | None = None) -> ValidationResult:
    """Validate only the fields present in an update payload."""
    errors: list[str] = []

    if "title" in data:
        _collect(errors, validate_task_title(data["title"]))
    if "description" in data:
        _collect(errors, validate_task_description(data["description"]))
    if "priority" in data:
        _collect(errors, validate_task_priority(data["priority"]))
    if "status" in data:
        _collect(errors, validate_task_status(data["status"]))
    if "due_date" in data:
        _collect(errors, validate_due_date(data["due_date"], now=now))
    if "points" in data:
        _collect(errors, validate_points(data["points"]))
    if "recurrence_pattern" in data:
        _collect(
            errors,
            validate_recurrence_pattern(bool(data.get("is_recurring", True)), data.get("recurrence_pattern"), now),
        )

    return ValidationResult.from_errors(errors)
