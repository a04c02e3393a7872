"""Reward catalog and redemption models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class RedemptionStatus(StrEnum):
    """Fulfilment state of a redemption."""

    PENDING = "pending"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class Reward(BaseModel):
    """A reward members can buy with points."""

    id: str
    family_id: str
    title: str
    description: str | None = None
    point_cost: int = Field(..., gt=0)
    created_by: str


class Redemption(BaseModel):
    """A member's request to redeem a reward."""

    id: str
    family_id: str
    member_id: str
    reward_id: str
    requested_by: str
    point_cost: int
    status: RedemptionStatus = RedemptionStatus.PENDING
