"""Task creation, updates, completion and queries."""

import logging
from datetime import datetime
from typing import Any

from typeb.core import db_client
from typeb.core.config import Constants
from typeb.core.date_utils import get_next_occurrence, now_iso, now_utc, to_datetime, to_iso
from typeb.core.logging import span
from typeb.domain.activity import ActivityAction, EntityType, NotificationType
from typeb.domain.family import FamilyAction
from typeb.domain.submission import SubmissionStatus
from typeb.domain.task import EscalationLevel, TaskPriority, TaskStatus, ValidationStatus
from typeb.models.service_models import TaskStats
from typeb.services import (
    activity_service,
    analytics_service,
    family_service,
    feature_flags,
    notification_service,
    premium,
    user_service,
    validation_service,
)
from typeb.services.feature_flags import FeatureFlag
from typeb.services.premium import PremiumFeature
from typeb.validators import validate_create_task_input, validate_update_task_input


logger = logging.getLogger(__name__)

# Fields a client may set directly on update
_UPDATABLE_FIELDS = {
    "title",
    "description",
    "assigned_to",
    "due_date",
    "priority",
    "status",
    "points",
    "requires_photo",
    "is_recurring",
    "recurrence_pattern",
    "reminder_enabled",
    "reminder_time",
}

# Fields that change what a completion is worth or who earns it
_PARENT_ONLY_FIELDS = {"assigned_to", "points", "requires_photo"}


def _resolve_category(family: dict[str, Any], category_id: str) -> dict[str, Any]:
    """Return the family category to embed in a task.

    Raises:
        ValueError: If the family has no such category
    """
    for category in family.get("task_categories") or []:
        if str(category["id"]) == str(category_id):
            return category
    raise ValueError("Invalid task category")


def _require_member(family: dict[str, Any], user_id: str) -> None:
    if user_id not in family["member_ids"]:
        raise ValueError("Cannot assign task to non-family member")


async def create_task(*, family_id: str, user_id: str, task_input: dict[str, Any]) -> dict[str, Any]:
    """Create a task in a family.

    Args:
        family_id: Family owning the task
        user_id: Member creating the task
        task_input: Fields from TaskCreate

    Returns:
        The created task record

    Raises:
        ValueError: If input fails validation, the assignee is not a member,
            the category is unknown or task creation is switched off
        PermissionError: If the user is not a member or photo proof needs premium
    """
    with span("task_service.create_task"):
        feature_flags.ensure_not_killed(FeatureFlag.KILL_SWITCH_TASK_CREATION, "Task creation")

        data = {**task_input, "priority": task_input.get("priority") or TaskPriority.MEDIUM}
        validate_create_task_input(data).raise_for_errors()

        family = await family_service.validate_family_permission(
            user_id=user_id, family_id=family_id, action=FamilyAction.VIEW
        )
        _require_member(family, data["assigned_to"])
        category = _resolve_category(family, data["category_id"])

        # Guard: Photo proof is a premium feature
        if data.get("requires_photo"):
            user = await user_service.get_user(user_id=user_id)
            premium.require_premium(PremiumFeature.PHOTO_VALIDATION, user, family)

        points = data.get("points")
        record = await db_client.create_record(
            collection="tasks",
            data={
                "family_id": family_id,
                "title": data["title"].strip(),
                "description": (data.get("description") or "").strip() or None,
                "category": category,
                "assigned_to": data["assigned_to"],
                "assigned_by": user_id,
                "created_by": user_id,
                "status": TaskStatus.PENDING,
                "priority": data["priority"],
                "due_date": to_iso(data["due_date"]) if data.get("due_date") else None,
                "points": int(points) if points is not None else None,
                "requires_photo": bool(data.get("requires_photo")),
                "is_recurring": bool(data.get("is_recurring")),
                "recurrence_pattern": data.get("recurrence_pattern") if data.get("is_recurring") else None,
                "reminder_enabled": bool(data.get("reminder_enabled")),
                "reminder_time": data.get("reminder_time"),
                "escalation_level": EscalationLevel.NONE,
            },
        )

        await activity_service.log_activity(
            family_id=family_id,
            user_id=user_id,
            action=ActivityAction.CREATED,
            entity_type=EntityType.TASK,
            entity_id=record["id"],
            metadata={"task_title": record["title"], "assigned_to": record["assigned_to"]},
        )
        if record["assigned_to"] != user_id:
            await notification_service.notify_user(
                user_id=record["assigned_to"],
                notification_type=NotificationType.TASK_ASSIGNED,
                title="New task assigned",
                body=f'You have a new task: "{record["title"]}"',
                family_id=family_id,
                data={"task_id": record["id"]},
            )

        logger.info("task_created", extra={"task_id": record["id"], "family_id": family_id, "user_id": user_id})
        return record


async def _get_task_for(
    *, task_id: str, user_id: str, action: FamilyAction = FamilyAction.VIEW
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Load a task and check the user's access to its family."""
    task = await db_client.get_record(collection="tasks", record_id=task_id)
    family = await family_service.validate_family_permission(
        user_id=user_id, family_id=task["family_id"], action=action
    )
    return task, family


async def get_task(*, task_id: str, user_id: str) -> dict[str, Any]:
    """Return a task the user can see."""
    task, _ = await _get_task_for(task_id=task_id, user_id=user_id)
    return task


async def update_task(*, task_id: str, user_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    """Update a task (parents, or the assignee for their own task).

    Assignees may edit details and move the task between pending, in progress
    and cancelled. Reassigning, changing points or the photo requirement is
    left to parents. Completion goes through ``complete_task`` only.

    Returns:
        The updated task

    Raises:
        ValueError: If a field fails validation, the new assignee is not a
            member, or the update would complete or reopen the task
        PermissionError: If the user may not edit the task or a field on it
    """
    with span("task_service.update_task"):
        task, family = await _get_task_for(task_id=task_id, user_id=user_id)
        is_parent = user_id in family["parent_ids"]

        if not is_parent and task["assigned_to"] != user_id:
            raise PermissionError("Only parents or the assignee can edit this task")

        data = {key: value for key, value in updates.items() if key in _UPDATABLE_FIELDS and value is not None}
        category_id = updates.get("category_id")
        validate_update_task_input(data).raise_for_errors()
        if "points" in data:
            data["points"] = int(data["points"])

        if not is_parent:
            for field in sorted(_PARENT_ONLY_FIELDS & data.keys()):
                if data[field] != task.get(field):
                    raise PermissionError(f"Only parents can change {field.replace('_', ' ')}")

        if "status" in data and data["status"] != task["status"]:
            if data["status"] == TaskStatus.COMPLETED:
                raise ValueError("Use the complete action to finish a task")
            if task["status"] == TaskStatus.COMPLETED:
                raise ValueError("Completed tasks cannot be reopened")

        if "assigned_to" in data:
            _require_member(family, data["assigned_to"])
        if category_id:
            data["category"] = _resolve_category(family, category_id)
        if data.get("requires_photo") and not task["requires_photo"]:
            user = await user_service.get_user(user_id=user_id)
            premium.require_premium(PremiumFeature.PHOTO_VALIDATION, user, family)
        if "due_date" in data:
            data["due_date"] = to_iso(data["due_date"])
            data["escalation_level"] = EscalationLevel.NONE
        if "title" in data:
            data["title"] = data["title"].strip()

        if not data:
            return task

        record = await db_client.update_record(collection="tasks", record_id=task_id, data=data)

        metadata: dict[str, Any]
        if "assigned_to" in data and data["assigned_to"] != task["assigned_to"]:
            action = ActivityAction.ASSIGNED
            metadata = {
                "task_title": task["title"],
                "assigned_to": data["assigned_to"],
                "previous_assignee": task["assigned_to"],
            }
        else:
            action = ActivityAction.UPDATED
            metadata = {"task_title": task["title"], "updates": sorted(data)}

        await activity_service.log_activity(
            family_id=task["family_id"],
            user_id=user_id,
            action=action,
            entity_type=EntityType.TASK,
            entity_id=task_id,
            metadata=metadata,
        )
        if action == ActivityAction.ASSIGNED and data["assigned_to"] != user_id:
            await notification_service.notify_user(
                user_id=data["assigned_to"],
                notification_type=NotificationType.TASK_ASSIGNED,
                title="Task assigned to you",
                body=f'You have a new task: "{record["title"]}"',
                family_id=task["family_id"],
                data={"task_id": task_id},
            )

        logger.info("task_updated", extra={"task_id": task_id, "action": str(action)})
        return record


async def create_next_occurrence(task: dict[str, Any]) -> dict[str, Any] | None:
    """Spawn the next instance of a recurring task, unless past its end date."""
    pattern = task.get("recurrence_pattern")
    if not pattern or not task.get("due_date"):
        return None

    next_due = get_next_occurrence(task["due_date"], pattern)
    if pattern.get("end_date") and next_due > to_datetime(pattern["end_date"]):
        logger.info("recurrence_ended", extra={"task_id": task["id"]})
        return None

    record = await db_client.create_record(
        collection="tasks",
        data={
            "family_id": task["family_id"],
            "title": task["title"],
            "description": task.get("description"),
            "category": task["category"],
            "assigned_to": task["assigned_to"],
            "assigned_by": task.get("assigned_by"),
            "created_by": task["created_by"],
            "status": TaskStatus.PENDING,
            "priority": task["priority"],
            "due_date": to_iso(next_due),
            "points": task.get("points"),
            "requires_photo": task.get("requires_photo", False),
            "is_recurring": True,
            "recurrence_pattern": pattern,
            "reminder_enabled": task.get("reminder_enabled", False),
            "reminder_time": task.get("reminder_time"),
            "escalation_level": EscalationLevel.NONE,
        },
    )
    logger.info("recurring_task_spawned", extra={"task_id": task["id"], "next_task_id": record["id"]})
    return record


def _ensure_open(task: dict[str, Any]) -> None:
    if task["status"] == TaskStatus.COMPLETED:
        raise ValueError("Task is already completed")
    if task["status"] == TaskStatus.CANCELLED:
        raise ValueError("Cannot complete a cancelled task")


async def complete_task(*, task_id: str, user_id: str, photo_url: str | None = None) -> dict[str, Any]:
    """Mark a task complete.

    With a photo the task waits for parent review; otherwise points are
    awarded immediately in the same transaction as the status change. The
    next occurrence of a recurring task is created when points are awarded.

    Returns:
        The updated task

    Raises:
        PermissionError: If the user is neither the assignee nor a parent
        ValueError: If the task is already completed, cancelled, or needs a photo
    """
    with span("task_service.complete_task"):
        task, family = await _get_task_for(task_id=task_id, user_id=user_id)

        # Guard: Assignee or parent
        if task["assigned_to"] != user_id and user_id not in family["parent_ids"]:
            raise PermissionError("Only the assignee or a parent can complete this task")

        _ensure_open(task)
        if task["requires_photo"] and not photo_url:
            raise ValueError("This task requires a photo")
        if photo_url:
            feature_flags.ensure_not_killed(FeatureFlag.KILL_SWITCH_PHOTO_UPLOAD, "Photo upload")

        completed_at = now_iso()
        update: dict[str, Any] = {
            "status": TaskStatus.COMPLETED,
            "completed_at": completed_at,
            "completed_by": user_id,
        }
        if photo_url:
            update["photo_url"] = photo_url
            update["validation_status"] = ValidationStatus.PENDING

        points = 0
        async with db_client.transaction():
            # Guard: Re-check under the write lock so concurrent completions award once
            task = await db_client.get_record(collection="tasks", record_id=task_id)
            _ensure_open(task)
            record = await db_client.update_record(collection="tasks", record_id=task_id, data=update)

            if photo_url:
                await db_client.create_record(
                    collection="task_submissions",
                    data={
                        "task_id": task_id,
                        "family_id": task["family_id"],
                        "submitted_by": user_id,
                        "photo_url": photo_url,
                        "submitted_at": completed_at,
                        "status": SubmissionStatus.PENDING,
                    },
                )
                await activity_service.log_activity(
                    family_id=task["family_id"],
                    user_id=user_id,
                    action=ActivityAction.COMPLETED,
                    entity_type=EntityType.TASK,
                    entity_id=task_id,
                    metadata={"task_title": task["title"], "with_photo": True},
                )
            else:
                points = await validation_service.award_task_points(
                    task=record,
                    member_id=task["assigned_to"],
                    actor_id=user_id,
                    action=ActivityAction.COMPLETED,
                )
                if task.get("is_recurring"):
                    await create_next_occurrence(task)

        if photo_url:
            await notification_service.notify_parents(
                family_id=task["family_id"],
                notification_type=NotificationType.VALIDATION_REQUIRED,
                title="Photo needs review",
                body=f'"{task["title"]}" was completed with a photo and is waiting for your review',
                data={"task_id": task_id},
                exclude_user_id=user_id,
            )
        else:
            await analytics_service.invalidate_leaderboard_cache(family_id=task["family_id"])
            await notification_service.notify_parents(
                family_id=task["family_id"],
                notification_type=NotificationType.TASK_COMPLETED,
                title="Task completed",
                body=f'"{task["title"]}" was completed (+{points} points)',
                data={"task_id": task_id},
                exclude_user_id=user_id,
            )

        logger.info(
            "task_completed",
            extra={"task_id": task_id, "user_id": user_id, "with_photo": bool(photo_url), "points": points},
        )
        return await db_client.get_record(collection="tasks", record_id=record["id"])


async def delete_task(*, task_id: str, user_id: str) -> None:
    """Delete a task (parents or the task's creator).

    Raises:
        PermissionError: If the user may not delete the task
    """
    with span("task_service.delete_task"):
        task, family = await _get_task_for(task_id=task_id, user_id=user_id)

        if user_id not in family["parent_ids"] and task["created_by"] != user_id:
            raise PermissionError("Only parents or the task creator can delete this task")

        await db_client.delete_record(collection="tasks", record_id=task_id)
        await activity_service.log_activity(
            family_id=task["family_id"],
            user_id=user_id,
            action=ActivityAction.DELETED,
            entity_type=EntityType.TASK,
            entity_id=task_id,
            metadata={"task_title": task["title"]},
        )
        logger.info("task_deleted", extra={"task_id": task_id, "user_id": user_id})


async def get_family_tasks(
    *,
    family_id: str,
    status: TaskStatus | str | None = None,
    assigned_to: str | None = None,
    priority: TaskPriority | str | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """List a family's tasks, newest first, with optional filters."""
    filter_query = f'family_id = "{db_client.sanitize_param(family_id)}"'
    if status:
        filter_query += f' && status = "{db_client.sanitize_param(status)}"'
    if assigned_to:
        filter_query += f' && assigned_to = "{db_client.sanitize_param(assigned_to)}"'
    if priority:
        filter_query += f' && priority = "{db_client.sanitize_param(priority)}"'

    return await db_client.list_records(
        collection="tasks",
        filter_query=filter_query,
        sort="-created,-id",
        per_page=min(limit or Constants.MAX_PER_PAGE_LIMIT, Constants.MAX_PER_PAGE_LIMIT),
    )


async def get_user_tasks(
    *,
    user_id: str,
    family_id: str,
    status: TaskStatus | str | None = None,
) -> list[dict[str, Any]]:
    """List the tasks assigned to a user, newest first."""
    return await get_family_tasks(family_id=family_id, status=status, assigned_to=user_id)


async def get_overdue_tasks(*, family_id: str | None = None, now: datetime | None = None) -> list[dict[str, Any]]:
    """Pending tasks whose due date has passed, oldest due date first.

    Args:
        family_id: Restrict to one family; None searches every family
        now: Reference time, defaults to the current time
    """
    cutoff = to_iso(now) if now else now_iso()
    filter_query = f'status = "{TaskStatus.PENDING}" && due_date < "{cutoff}"'
    if family_id:
        filter_query = f'family_id = "{db_client.sanitize_param(family_id)}" && {filter_query}'

    return await db_client.list_all_records(collection="tasks", filter_query=filter_query, sort="due_date,id")


async def get_task_stats(*, family_id: str, user_id: str | None = None) -> TaskStats:
    """Summarize task counts for a family, or for one member of it."""
    with span("task_service.get_task_stats"):
        filter_query = f'family_id = "{db_client.sanitize_param(family_id)}"'
        if user_id:
            filter_query += f' && assigned_to = "{db_client.sanitize_param(user_id)}"'
        tasks = await db_client.list_all_records(collection="tasks", filter_query=filter_query, sort="id")
        now = now_utc()

        pending = [t for t in tasks if t["status"] == TaskStatus.PENDING]
        completed = sum(1 for t in tasks if t["status"] == TaskStatus.COMPLETED)
        overdue = sum(1 for t in pending if t.get("due_date") and to_datetime(t["due_date"]) < now)
        total = len(tasks)

        return TaskStats(
            total=total,
            pending=len(pending),
            completed=completed,
            overdue=overdue,
            completion_rate=round(completed / total * 100) if total else 0,
        )
