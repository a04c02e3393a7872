"""Reward catalog and redemption routes."""

from typing import Any

from fastapi import APIRouter, status

from typeb.domain.create_models import RedeemRequest, RewardCreate
from typeb.interface.dependencies import CurrentUser, FamilyMember
from typeb.services import reward_service


router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("/family/{family_id}")
async def list_rewards(family_id: str, user: FamilyMember) -> list[dict[str, Any]]:
    """List the family's rewards."""
    return await reward_service.list_rewards(family_id=family_id)


@router.post("/family/{family_id}", status_code=status.HTTP_201_CREATED)
async def create_reward(family_id: str, payload: RewardCreate, user: CurrentUser) -> dict[str, Any]:
    """Add a reward (parents only)."""
    return await reward_service.create_reward(
        user_id=user["id"],
        family_id=family_id,
        title=payload.title,
        point_cost=payload.point_cost,
        description=payload.description,
    )


@router.post("/family/{family_id}/redeem", status_code=status.HTTP_201_CREATED)
async def redeem_reward(family_id: str, payload: RedeemRequest, user: CurrentUser) -> dict[str, Any]:
    """Spend a member's points on a reward."""
    return await reward_service.redeem_reward(
        requester_id=user["id"],
        family_id=family_id,
        member_id=payload.member_id,
        reward_id=payload.reward_id,
    )
