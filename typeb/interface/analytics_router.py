"""Leaderboard, streak and summary routes."""

from fastapi import APIRouter, Query

from typeb.interface.dependencies import CurrentUser, FamilyMember
from typeb.models.service_models import FamilySummary, LeaderboardEntry, StreakInfo
from typeb.services import analytics_service


router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/family/{family_id}/leaderboard")
async def get_leaderboard(
    family_id: str,
    user: FamilyMember,
    period_days: int = Query(default=30, ge=1, le=365),
) -> list[LeaderboardEntry]:
    """Members ranked by points earned in the period."""
    return await analytics_service.get_leaderboard(family_id=family_id, period_days=period_days)


@router.get("/family/{family_id}/summary")
async def get_family_summary(family_id: str, user: FamilyMember) -> FamilySummary:
    """Family member, task and review counts."""
    return await analytics_service.get_family_summary(family_id=family_id)


@router.get("/me/streak")
async def get_my_streak(user: CurrentUser) -> StreakInfo:
    """The signed-in user's completion streak."""
    return await analytics_service.get_streak(user_id=user["id"])
