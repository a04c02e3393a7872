"""Family reward catalog and point redemption."""

import logging
from typing import Any

from typeb.core import db_client
from typeb.core.config import Constants
from typeb.core.logging import span
from typeb.domain.activity import ActivityAction, EntityType
from typeb.domain.family import FamilyAction
from typeb.domain.reward import RedemptionStatus
from typeb.services import activity_service, family_service


logger = logging.getLogger(__name__)


async def create_reward(
    *,
    user_id: str,
    family_id: str,
    title: str,
    point_cost: int,
    description: str | None = None,
) -> dict[str, Any]:
    """Add a reward to the family catalog (parents only).

    Raises:
        ValueError: If the title is empty or the cost is not positive
    """
    with span("reward_service.create_reward"):
        await family_service.validate_family_permission(user_id=user_id, family_id=family_id, action=FamilyAction.ADMIN)

        if not title or not title.strip():
            raise ValueError("Reward title is required")
        if point_cost <= 0:
            raise ValueError("Point cost must be greater than 0")

        record = await db_client.create_record(
            collection="rewards",
            data={
                "family_id": family_id,
                "title": title.strip(),
                "description": description,
                "point_cost": point_cost,
                "created_by": user_id,
            },
        )
        logger.info("reward_created", extra={"reward_id": record["id"], "family_id": family_id})
        return record


async def list_rewards(*, family_id: str) -> list[dict[str, Any]]:
    """Return the family's rewards, cheapest first."""
    return await db_client.list_records(
        collection="rewards",
        filter_query=f'family_id = "{db_client.sanitize_param(family_id)}"',
        sort="point_cost,id",
        per_page=Constants.MAX_PER_PAGE_LIMIT,
    )


async def redeem_reward(
    *,
    requester_id: str,
    family_id: str,
    member_id: str,
    reward_id: str,
) -> dict[str, Any]:
    """Spend a member's points on a reward.

    The points deduction and the pending redemption are written in one
    transaction.

    Args:
        requester_id: The member themselves or a parent
        family_id: Family owning the reward
        member_id: Member whose points are spent
        reward_id: Reward being redeemed

    Returns:
        The redemption record

    Raises:
        PermissionError: If the requester is neither the member nor a parent
        KeyError: If the reward or member is not in the family
        ValueError: If the member lacks enough points
    """
    with span("reward_service.redeem_reward"):
        family = await family_service.validate_family_permission(
            user_id=requester_id, family_id=family_id, action=FamilyAction.VIEW
        )

        if requester_id != member_id and requester_id not in family["parent_ids"]:
            raise PermissionError("Only the member or a parent can redeem rewards")
        if member_id not in family["member_ids"]:
            raise KeyError(f"User {member_id} is not a member of this family")

        reward = await db_client.get_record(collection="rewards", record_id=reward_id)
        if reward["family_id"] != family_id:
            raise KeyError(f"Reward not found: {reward_id}")

        async with db_client.transaction():
            # Balance is read under the write lock
            member = await db_client.get_record(collection="users", record_id=member_id)
            balance = member.get("points", 0)
            if balance < reward["point_cost"]:
                raise ValueError(f"Insufficient points. Has {balance}, needs {reward['point_cost']}")

            await db_client.update_record(
                collection="users",
                record_id=member_id,
                data={"points": balance - reward["point_cost"]},
            )
            redemption = await db_client.create_record(
                collection="redemptions",
                data={
                    "family_id": family_id,
                    "member_id": member_id,
                    "reward_id": reward_id,
                    "requested_by": requester_id,
                    "point_cost": reward["point_cost"],
                    "status": RedemptionStatus.PENDING,
                },
            )
            await activity_service.log_activity(
                family_id=family_id,
                user_id=member_id,
                action=ActivityAction.REDEEMED,
                entity_type=EntityType.REWARD,
                entity_id=reward_id,
                metadata={"point_cost": reward["point_cost"], "redemption_id": redemption["id"]},
            )

        logger.info(
            "reward_redeemed",
            extra={"reward_id": reward_id, "member_id": member_id, "point_cost": reward["point_cost"]},
        )
        return redemption
