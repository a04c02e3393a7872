"""In-app notification routes."""

from typing import Any

from fastapi import APIRouter, Query

from typeb.domain.update_models import MarkReadRequest
from typeb.interface.dependencies import CurrentUser
from typeb.services import notification_service


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    user: CurrentUser,
    unread_only: bool = False,
    limit: int = Query(default=50, ge=1, le=500),
) -> list[dict[str, Any]]:
    """The signed-in user's notifications, newest first."""
    return await notification_service.list_notifications(user_id=user["id"], unread_only=unread_only, limit=limit)


@router.post("/read")
async def mark_read(payload: MarkReadRequest, user: CurrentUser) -> dict[str, int]:
    """Mark notifications read; an empty list marks all of them."""
    count = await notification_service.mark_read(user_id=user["id"], notification_ids=payload.notification_ids)
    return {"updated": count}
