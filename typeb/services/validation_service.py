"""Photo submission review and point awards."""

import logging
from typing import Any

from typeb.core import db_client
from typeb.core.config import settings
from typeb.core.date_utils import now_iso
from typeb.core.logging import span
from typeb.domain.activity import ActivityAction, EntityType, NotificationType
from typeb.domain.family import FamilyAction
from typeb.domain.submission import SubmissionStatus
from typeb.domain.task import TaskStatus, ValidationStatus
from typeb.models.service_models import ValidationQueueItem
from typeb.services import (
    achievement_service,
    activity_service,
    analytics_service,
    family_service,
    notification_service,
)


logger = logging.getLogger(__name__)


def points_for(task: dict[str, Any]) -> int:
    """Points a task is worth, falling back to the default award."""
    return int(task.get("points") or settings.default_task_points)


async def award_task_points(
    *,
    task: dict[str, Any],
    member_id: str,
    actor_id: str,
    action: ActivityAction,
) -> int:
    """Credit a member for a completed task.

    Must run inside ``db_client.transaction()`` together with the status
    change that earned the points. Achievement progress is updated in the
    same transaction.

    Returns:
        Points awarded
    """
    points = points_for(task)
    member = await db_client.get_record(collection="users", record_id=member_id)

    member = await db_client.update_record(
        collection="users",
        record_id=member_id,
        data={
            "points": member.get("points", 0) + points,
            "total_points_earned": member.get("total_points_earned", 0) + points,
            "tasks_completed": member.get("tasks_completed", 0) + 1,
        },
    )
    await db_client.update_record(collection="tasks", record_id=task["id"], data={"points_awarded": points})
    await activity_service.log_activity(
        family_id=task["family_id"],
        user_id=member_id,
        action=action,
        entity_type=EntityType.TASK,
        entity_id=task["id"],
        metadata={"points": points, "actor_id": actor_id},
    )
    await achievement_service.check_achievements_after_task(member=member, task=task)

    logger.info("points_awarded", extra={"task_id": task["id"], "member_id": member_id, "points": points})
    return points


async def get_validation_queue(*, family_id: str, user_id: str) -> list[ValidationQueueItem]:
    """Return pending photo submissions, oldest first (parents only)."""
    with span("validation_service.get_validation_queue"):
        await family_service.validate_family_permission(
            user_id=user_id, family_id=family_id, action=FamilyAction.ADMIN
        )

        submissions = await db_client.list_all_records(
            collection="task_submissions",
            filter_query=(
                f'family_id = "{db_client.sanitize_param(family_id)}" && status = "{SubmissionStatus.PENDING}"'
            ),
            sort="submitted_at,id",
        )

        queue = []
        for submission in submissions:
            try:
                task = await db_client.get_record(collection="tasks", record_id=submission["task_id"])
            except KeyError:
                logger.warning("submission_task_missing", extra={"submission_id": submission["id"]})
                continue

            try:
                submitter = await db_client.get_record(collection="users", record_id=submission["submitted_by"])
                submitter_name = submitter.get("display_name")
            except KeyError:
                submitter_name = None

            queue.append(
                ValidationQueueItem(
                    submission_id=submission["id"],
                    task_id=task["id"],
                    task_title=task["title"],
                    submitted_by=submission["submitted_by"],
                    submitted_by_name=submitter_name,
                    photo_url=submission["photo_url"],
                    submitted_at=submission["submitted_at"],
                    points=points_for(task),
                )
            )
        return queue


def _ensure_pending(submission: dict[str, Any]) -> None:
    if submission["status"] != SubmissionStatus.PENDING:
        raise ValueError(f"Submission is not pending (status: {submission['status']})")


async def review_submission(
    *,
    submission_id: str,
    reviewer_id: str,
    approved: bool,
    notes: str | None = None,
) -> dict[str, Any]:
    """Approve or reject a photo submission (parents only).

    Approval marks the submission and task approved, credits the member and
    schedules the next occurrence of a recurring task in a single transaction.
    Rejection sends the task back to pending.

    Returns:
        The updated submission

    Raises:
        KeyError: If the submission or task does not exist
        PermissionError: If the reviewer is not a parent in the family
        ValueError: If the submission was already reviewed
    """
    from typeb.services import task_service

    with span("validation_service.review_submission"):
        submission = await db_client.get_record(collection="task_submissions", record_id=submission_id)
        await family_service.validate_family_permission(
            user_id=reviewer_id, family_id=submission["family_id"], action=FamilyAction.ADMIN
        )

        _ensure_pending(submission)
        reviewed_at = now_iso()
        points = 0

        async with db_client.transaction():
            # Guard: Re-check under the write lock so a submission is reviewed once
            submission = await db_client.get_record(collection="task_submissions", record_id=submission_id)
            _ensure_pending(submission)
            task = await db_client.get_record(collection="tasks", record_id=submission["task_id"])

            updated = await db_client.update_record(
                collection="task_submissions",
                record_id=submission_id,
                data={
                    "status": SubmissionStatus.APPROVED if approved else SubmissionStatus.REJECTED,
                    "reviewed_at": reviewed_at,
                    "reviewed_by": reviewer_id,
                    "validation_notes": notes,
                },
            )

            if approved:
                await db_client.update_record(
                    collection="tasks",
                    record_id=task["id"],
                    data={
                        "validation_status": ValidationStatus.APPROVED,
                        "validation_notes": notes,
                        "photo_validated_by": reviewer_id,
                    },
                )
                points = await award_task_points(
                    task=task,
                    member_id=task["assigned_to"],
                    actor_id=reviewer_id,
                    action=ActivityAction.VALIDATED,
                )
                if task.get("is_recurring"):
                    await task_service.create_next_occurrence(task)
            else:
                await db_client.update_record(
                    collection="tasks",
                    record_id=task["id"],
                    data={
                        "status": TaskStatus.PENDING,
                        "validation_status": ValidationStatus.REJECTED,
                        "validation_notes": notes,
                        "photo_validated_by": reviewer_id,
                        "completed_at": None,
                        "completed_by": None,
                        "photo_url": None,
                    },
                )
                await activity_service.log_activity(
                    family_id=task["family_id"],
                    user_id=reviewer_id,
                    action=ActivityAction.VALIDATED,
                    entity_type=EntityType.TASK,
                    entity_id=task["id"],
                    metadata={"approved": False},
                )

        if approved:
            await analytics_service.invalidate_leaderboard_cache(family_id=task["family_id"])
            body = f'"{task["title"]}" was approved. You earned {points} points!'
        else:
            body = f'"{task["title"]}" needs another try.' + (f" Note: {notes}" if notes else "")

        await notification_service.notify_user(
            user_id=submission["submitted_by"],
            notification_type=NotificationType.VALIDATION_RESULT,
            title="Task approved" if approved else "Task needs another try",
            body=body,
            family_id=task["family_id"],
            data={"task_id": task["id"], "approved": approved},
        )

        logger.info(
            "submission_reviewed",
            extra={"submission_id": submission_id, "task_id": task["id"], "approved": approved},
        )
        return updated


async def validate_task(
    *,
    task_id: str,
    validator_id: str,
    approved: bool,
    notes: str | None = None,
) -> dict[str, Any]:
    """Review the pending submission for a task.

    Returns:
        The updated task

    Raises:
        ValueError: If the task has no pending submission
    """
    with span("validation_service.validate_task"):
        task = await db_client.get_record(collection="tasks", record_id=task_id)
        submission = await db_client.get_first_record(
            collection="task_submissions",
            filter_query=f'task_id = "{db_client.sanitize_param(task_id)}" && status = "{SubmissionStatus.PENDING}"',
        )
        if not submission:
            # Guard: Permission is checked before task state
            await family_service.validate_family_permission(
                user_id=validator_id, family_id=task["family_id"], action=FamilyAction.ADMIN
            )
            raise ValueError("Task is not awaiting validation")

        await review_submission(
            submission_id=submission["id"], reviewer_id=validator_id, approved=approved, notes=notes
        )
        return await db_client.get_record(collection="tasks", record_id=task_id)
