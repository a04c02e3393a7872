"""In-app notifications for family members."""

import logging
from typing import Any

from typeb.core import db_client
from typeb.core.config import Constants
from typeb.core.logging import span
from typeb.domain.activity import NotificationType
from typeb.domain.user import UserRole
from typeb.models.service_models import NotificationResult
from typeb.services import feature_flags
from typeb.services.feature_flags import FeatureFlag


logger = logging.getLogger(__name__)


async def notify_user(
    *,
    user_id: str,
    notification_type: NotificationType,
    title: str,
    body: str,
    family_id: str | None = None,
    data: dict[str, Any] | None = None,
) -> NotificationResult:
    """Store a notification for one user.

    Skipped when the notifications kill switch is on or the user has
    notifications disabled. Delivery failures never propagate to the caller.

    Returns:
        NotificationResult describing whether the notification was stored
    """
    if feature_flags.is_enabled(FeatureFlag.KILL_SWITCH_NOTIFICATIONS):
        logger.info("notification_skipped", extra={"user_id": user_id, "reason": "kill_switch"})
        return NotificationResult(user_id=user_id, success=False, error="Notifications are disabled")

    try:
        user = await db_client.get_record(collection="users", record_id=user_id)
        if not user.get("notifications_enabled", True):
            logger.debug("notification_skipped", extra={"user_id": user_id, "reason": "user_opt_out"})
            return NotificationResult(user_id=user_id, success=False, error="User has notifications disabled")

        record = await db_client.create_record(
            collection="notifications",
            data={
                "user_id": user_id,
                "family_id": family_id,
                "type": notification_type,
                "title": title,
                "body": body,
                "data": data,
                "read": False,
            },
        )
        logger.info(
            "notification_created",
            extra={"user_id": user_id, "type": str(notification_type), "notification_id": record["id"]},
        )
        return NotificationResult(user_id=user_id, success=True, notification_id=record["id"])
    except (KeyError, RuntimeError) as e:
        logger.warning("notification_failed", extra={"user_id": user_id, "error": str(e)})
        return NotificationResult(user_id=user_id, success=False, error=str(e))


async def notify_parents(
    *,
    family_id: str,
    notification_type: NotificationType,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
    exclude_user_id: str | None = None,
) -> list[NotificationResult]:
    """Notify every parent in a family, optionally skipping the actor."""
    with span("notification_service.notify_parents"):
        parents = await db_client.list_records(
            collection="users",
            filter_query=(
                f'family_id = "{db_client.sanitize_param(family_id)}" && role = "{UserRole.PARENT}"'
            ),
            per_page=Constants.MAX_PER_PAGE_LIMIT,
        )

        results = []
        for parent in parents:
            if parent["id"] == exclude_user_id:
                continue
            results.append(
                await notify_user(
                    user_id=parent["id"],
                    notification_type=notification_type,
                    title=title,
                    body=body,
                    family_id=family_id,
                    data=data,
                )
            )
        return results


async def list_notifications(
    *,
    user_id: str,
    unread_only: bool = False,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Return a user's notifications, newest first."""
    filter_query = f'user_id = "{db_client.sanitize_param(user_id)}"'
    if unread_only:
        filter_query += ' && read = "false"'

    return await db_client.list_records(
        collection="notifications",
        filter_query=filter_query,
        sort="-id",
        per_page=min(limit, Constants.MAX_PER_PAGE_LIMIT),
    )


async def mark_read(*, user_id: str, notification_ids: list[str] | None = None) -> int:
    """Mark notifications as read.

    Args:
        user_id: Owner of the notifications
        notification_ids: Specific notifications, or None/empty for all unread

    Returns:
        Number of notifications updated

    Raises:
        PermissionError: If a notification belongs to another user
    """
    with span("notification_service.mark_read"):
        if notification_ids:
            targets = []
            for notification_id in notification_ids:
                notification = await db_client.get_record(collection="notifications", record_id=notification_id)
                if notification["user_id"] != user_id:
                    raise PermissionError("You can only update your own notifications")
                if not notification.get("read"):
                    targets.append(notification)
        else:
            targets = await list_notifications(user_id=user_id, unread_only=True, limit=Constants.MAX_PER_PAGE_LIMIT)

        for notification in targets:
            await db_client.update_record(collection="notifications", record_id=notification["id"], data={"read": True})

        logger.info("notifications_marked_read", extra={"user_id": user_id, "count": len(targets)})
        return len(targets)
