"""Analytics and gamification for families.

- Leaderboard: points earned per member from completed/validated activity,
  cached in Redis for a short TTL.
- Streaks: consecutive UTC days on which a member completed at least one task.
- Family summary: membership, task counts and pending reviews.
"""

import logging
from datetime import date, timedelta

from pydantic import ValidationError

from typeb.core import db_client
from typeb.core.config import Constants
from typeb.core.date_utils import now_utc, to_datetime, to_iso
from typeb.core.logging import span
from typeb.core.redis_client import cache_key, redis_client
from typeb.domain.activity import ActivityAction
from typeb.domain.submission import SubmissionStatus
from typeb.domain.task import TaskStatus
from typeb.models.service_models import FamilySummary, LeaderboardEntry, StreakInfo
from typeb.services import family_service


logger = logging.getLogger(__name__)

_POINT_ACTIONS = {ActivityAction.COMPLETED, ActivityAction.VALIDATED}


def _leaderboard_key(family_id: str, period_days: int) -> str:
    return cache_key("leaderboard", family_id, period_days)


async def invalidate_leaderboard_cache(*, family_id: str) -> None:
    """Drop every cached leaderboard period for a family.

    Failures are logged and ignored; a stale leaderboard expires with its TTL.
    """
    removed = await redis_client.delete_matching(cache_key("leaderboard", family_id, "*"))
    if removed:
        logger.info("leaderboard_cache_invalidated", extra={"family_id": family_id, "keys": removed})
    else:
        logger.debug("leaderboard_cache_empty", extra={"family_id": family_id})


async def get_leaderboard(*, family_id: str, period_days: int = 30) -> list[LeaderboardEntry]:
    """Rank family members by points earned in the period.

    Args:
        family_id: Family to rank
        period_days: Number of days to look back

    Returns:
        Entries sorted by points descending, every member included
    """
    key = _leaderboard_key(family_id, period_days)
    cached = await redis_client.get_json(key)
    if cached:
        try:
            return [LeaderboardEntry(**entry) for entry in cached]
        except (ValidationError, TypeError) as e:
            logger.warning("leaderboard_cache_corrupt", extra={"family_id": family_id, "error": str(e)})

    with span("analytics_service.get_leaderboard"):
        cutoff = to_iso(now_utc() - timedelta(days=period_days))
        logs = await db_client.list_all_records(
            collection="activity_logs",
            filter_query=(
                f'family_id = "{db_client.sanitize_param(family_id)}" && timestamp >= "{cutoff}" '
                f'&& (action = "{ActivityAction.COMPLETED}" || action = "{ActivityAction.VALIDATED}")'
            ),
            sort="id",
        )

        points: dict[str, int] = {}
        completions: dict[str, int] = {}
        for log in logs:
            earned = (log.get("metadata") or {}).get("points")
            if log["action"] not in _POINT_ACTIONS or not earned:
                continue
            points[log["user_id"]] = points.get(log["user_id"], 0) + int(earned)
            completions[log["user_id"]] = completions.get(log["user_id"], 0) + 1

        members = await db_client.list_records(
            collection="users",
            filter_query=f'family_id = "{db_client.sanitize_param(family_id)}"',
            per_page=Constants.MAX_PER_PAGE_LIMIT,
        )
        ordered = sorted(members, key=lambda m: (-points.get(m["id"], 0), m["display_name"].lower()))

        leaderboard = [
            LeaderboardEntry(
                user_id=member["id"],
                display_name=member["display_name"],
                points=points.get(member["id"], 0),
                tasks_completed=completions.get(member["id"], 0),
                rank=rank,
            )
            for rank, member in enumerate(ordered, start=1)
        ]

        logger.info(
            "leaderboard_generated",
            extra={"family_id": family_id, "period_days": period_days, "members": len(leaderboard)},
        )

        await redis_client.set_json(
            key, [entry.model_dump() for entry in leaderboard], Constants.CACHE_TTL_LEADERBOARD_SECONDS
        )
        return leaderboard


def _longest_run(days: list[date]) -> int:
    """Longest run of consecutive dates in an ascending list."""
    longest = current = 0
    previous: date | None = None
    for day in days:
        current = current + 1 if previous and day - previous == timedelta(days=1) else 1
        longest = max(longest, current)
        previous = day
    return longest


async def get_streak(*, user_id: str) -> StreakInfo:
    """Compute a member's completion streak.

    The streak counts back from today, or from yesterday when nothing has
    been completed yet today.
    """
    with span("analytics_service.get_streak"):
        tasks = await db_client.list_all_records(
            collection="tasks",
            filter_query=f'completed_by = "{db_client.sanitize_param(user_id)}" && status = "{TaskStatus.COMPLETED}"',
            sort="id",
        )
        days = sorted({to_datetime(t["completed_at"]).date() for t in tasks if t.get("completed_at")})
        today = now_utc().date()
        completed = set(days)

        if today in completed:
            status, days_until_break, anchor = "active", 2, today
        elif today - timedelta(days=1) in completed:
            status, days_until_break, anchor = "at_risk", 1, today - timedelta(days=1)
        else:
            status, days_until_break, anchor = "broken", 0, None

        current = 0
        while anchor and anchor in completed:
            current += 1
            anchor -= timedelta(days=1)

        return StreakInfo(
            user_id=user_id,
            current_streak=current,
            longest_streak=_longest_run(days),
            last_activity_date=days[-1].isoformat() if days else None,
            status=status,
            days_until_break=days_until_break,
        )


async def get_family_summary(*, family_id: str) -> FamilySummary:
    """Summarize a family's members, tasks and pending reviews."""
    from typeb.services import task_service

    with span("analytics_service.get_family_summary"):
        family = await family_service.load_family(family_id=family_id)
        stats = await task_service.get_task_stats(family_id=family_id)
        pending = await db_client.list_all_records(
            collection="task_submissions",
            filter_query=(
                f'family_id = "{db_client.sanitize_param(family_id)}" && status = "{SubmissionStatus.PENDING}"'
            ),
            sort="id",
        )

        return FamilySummary(
            family_id=family_id,
            member_count=len(family["member_ids"]),
            parent_count=len(family["parent_ids"]),
            child_count=len(family["child_ids"]),
            task_stats=stats,
            pending_validations=len(pending),
        )
