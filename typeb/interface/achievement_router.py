"""Achievement catalog and badge progress routes."""

from fastapi import APIRouter

from typeb.domain.achievement import ACHIEVEMENTS_CATALOG, Achievement, AchievementProgress
from typeb.interface.dependencies import CurrentUser
from typeb.services import achievement_service


router = APIRouter(prefix="/achievements", tags=["achievements"])


@router.get("/catalog")
async def get_catalog(user: CurrentUser) -> list[Achievement]:
    """Every badge that can be unlocked."""
    return ACHIEVEMENTS_CATALOG


@router.get("/me")
async def get_my_achievements(user: CurrentUser) -> list[AchievementProgress]:
    """The signed-in user's progress towards every badge."""
    return await achievement_service.get_user_achievements(user_id=user["id"])
