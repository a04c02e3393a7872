"""Family routes: create, join, membership and settings."""

from typing import Any

from fastapi import APIRouter, Query, status

from typeb.domain.create_models import FamilyCreate, JoinFamilyRequest
from typeb.domain.update_models import FamilyUpdate, RoleChange
from typeb.interface.dependencies import CurrentUser, FamilyMember
from typeb.services import activity_service, family_service
from typeb.services.premium import get_member_limit_text, get_remaining_member_slots


router = APIRouter(prefix="/families", tags=["families"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_family(payload: FamilyCreate, user: CurrentUser) -> dict[str, Any]:
    """Create a family with the signed-in user as parent."""
    return await family_service.create_family(
        user_id=user["id"],
        name=payload.name,
        role_config=payload.role_config,
    )


@router.post("/join")
async def join_family(payload: JoinFamilyRequest, user: CurrentUser) -> dict[str, Any]:
    """Join a family with an invite code."""
    return await family_service.join_family(user_id=user["id"], invite_code=payload.invite_code, role=payload.role)


@router.post("/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_family(user: CurrentUser) -> None:
    """Leave the signed-in user's family."""
    await family_service.leave_family(user_id=user["id"])


@router.get("/{family_id}")
async def get_family(family_id: str, user: CurrentUser) -> dict[str, Any]:
    """Return a family with member usage details."""
    family = await family_service.get_family(user_id=user["id"], family_id=family_id)
    return {
        **family,
        "remaining_member_slots": get_remaining_member_slots(family),
        "member_limit_text": get_member_limit_text(family),
    }


@router.patch("/{family_id}")
async def update_family(family_id: str, payload: FamilyUpdate, user: CurrentUser) -> dict[str, Any]:
    """Update family settings (parents only)."""
    return await family_service.update_family(
        user_id=user["id"],
        family_id=family_id,
        updates=payload.model_dump(exclude_unset=True),
    )


@router.get("/{family_id}/members")
async def get_family_members(family_id: str, user: CurrentUser) -> list[dict[str, Any]]:
    """List the family's members."""
    return await family_service.get_family_members(user_id=user["id"], family_id=family_id)


@router.delete("/{family_id}/members/{member_id}")
async def remove_family_member(family_id: str, member_id: str, user: CurrentUser) -> dict[str, Any]:
    """Remove a member from the family (parents only)."""
    return await family_service.remove_family_member(
        user_id=user["id"], family_id=family_id, target_user_id=member_id
    )


@router.put("/{family_id}/members/{member_id}/role")
async def change_member_role(
    family_id: str,
    member_id: str,
    payload: RoleChange,
    user: CurrentUser,
) -> dict[str, Any]:
    """Change a member's role (parents only)."""
    return await family_service.change_member_role(
        user_id=user["id"],
        family_id=family_id,
        target_user_id=member_id,
        new_role=payload.role,
    )


@router.post("/{family_id}/invite-code")
async def regenerate_invite_code(family_id: str, user: CurrentUser) -> dict[str, str]:
    """Issue a new invite code (parents only)."""
    code = await family_service.regenerate_invite_code(user_id=user["id"], family_id=family_id)
    return {"invite_code": code}


@router.get("/{family_id}/activity")
async def get_activity(
    family_id: str,
    user: FamilyMember,
    since: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
) -> list[dict[str, Any]]:
    """Return the family's activity feed, newest first."""
    return await activity_service.list_activity(family_id=family_id, since=since, limit=limit)
