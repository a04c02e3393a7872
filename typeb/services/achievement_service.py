"""Achievement badges: progress tracking and unlocks after task completions."""

import logging
from datetime import UTC, datetime
from typing import Any

from dateutil import tz

from typeb.core import db_client
from typeb.core.date_utils import now_utc, to_datetime, to_iso
from typeb.core.logging import span
from typeb.domain.achievement import ACHIEVEMENTS_CATALOG, Achievement, AchievementProgress, RequirementType
from typeb.domain.activity import NotificationType
from typeb.services import analytics_service, notification_service


logger = logging.getLogger(__name__)


def _local_hour(moment: datetime, timezone: str | None) -> int:
    """Hour of ``moment`` in the member's timezone, UTC when unknown."""
    return moment.astimezone(tz.gettz(timezone or "UTC") or UTC).hour


def _measure(achievement: Achievement, *, tasks_completed: int, streak: int, local_hour: int) -> int:
    if achievement.requirement == RequirementType.COUNT:
        return tasks_completed
    if achievement.requirement == RequirementType.STREAK:
        return streak
    if achievement.requirement == RequirementType.BEFORE_HOUR:
        return int(local_hour < achievement.value)
    return int(local_hour >= achievement.value)


async def _progress_by_id(user_id: str) -> dict[str, dict[str, Any]]:
    records = await db_client.list_all_records(
        collection="achievements",
        filter_query=f'user_id = "{db_client.sanitize_param(user_id)}"',
        sort="id",
    )
    return {record["achievement_id"]: record for record in records}


async def check_achievements_after_task(*, member: dict[str, Any], task: dict[str, Any]) -> list[Achievement]:
    """Update a member's badge progress for a task they were credited for.

    Runs inside the transaction that awards the points, after the member's
    ``tasks_completed`` counter has been incremented. Unlocked badges are
    never re-locked; progress on locked ones only moves up.

    Args:
        member: The credited user record, with updated counters
        task: The completed task

    Returns:
        Achievements unlocked by this completion
    """
    with span("achievement_service.check_achievements_after_task"):
        completed_at = to_datetime(task["completed_at"]) if task.get("completed_at") else now_utc()
        streak = await analytics_service.get_streak(user_id=member["id"])
        existing = await _progress_by_id(member["id"])

        unlocked: list[Achievement] = []
        for achievement in ACHIEVEMENTS_CATALOG:
            record = existing.get(achievement.id)
            if record and record.get("unlocked_at"):
                continue

            value = _measure(
                achievement,
                tasks_completed=member.get("tasks_completed", 0),
                streak=streak.current_streak,
                local_hour=_local_hour(completed_at, member.get("timezone")),
            )
            progress = min(value, achievement.max_progress)
            if progress <= (record["progress"] if record else 0):
                continue

            data: dict[str, Any] = {"progress": progress}
            if progress >= achievement.max_progress:
                data["unlocked_at"] = to_iso(now_utc())
                unlocked.append(achievement)

            if record:
                await db_client.update_record(collection="achievements", record_id=record["id"], data=data)
            else:
                await db_client.create_record(
                    collection="achievements",
                    data={
                        "user_id": member["id"],
                        "achievement_id": achievement.id,
                        "max_progress": achievement.max_progress,
                        **data,
                    },
                )

        for achievement in unlocked:
            await notification_service.notify_user(
                user_id=member["id"],
                notification_type=NotificationType.ACHIEVEMENT_UNLOCKED,
                title=f"Achievement unlocked: {achievement.name}",
                body=achievement.encouragement,
                family_id=task["family_id"],
                data={"achievement_id": achievement.id, "task_id": task["id"]},
            )

        if unlocked:
            logger.info(
                "achievements_unlocked",
                extra={"user_id": member["id"], "achievements": [a.id for a in unlocked]},
            )
        return unlocked


async def get_user_achievements(*, user_id: str) -> list[AchievementProgress]:
    """Return the whole catalog with the user's progress, in catalog order."""
    existing = await _progress_by_id(user_id)
    return [
        AchievementProgress(
            achievement=achievement,
            progress=existing[achievement.id]["progress"] if achievement.id in existing else 0,
            max_progress=achievement.max_progress,
            unlocked=bool(existing.get(achievement.id, {}).get("unlocked_at")),
            unlocked_at=existing.get(achievement.id, {}).get("unlocked_at"),
        )
        for achievement in ACHIEVEMENTS_CATALOG
    ]
