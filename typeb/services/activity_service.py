"""Activity feed for families."""

import logging
from typing import Any

from typeb.core import db_client
from typeb.core.config import Constants
from typeb.core.date_utils import now_iso
from typeb.core.logging import span
from typeb.domain.activity import ActivityAction, EntityType


logger = logging.getLogger(__name__)


async def log_activity(
    *,
    family_id: str,
    user_id: str,
    action: ActivityAction,
    entity_type: EntityType,
    entity_id: str,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Append an entry to the family's activity feed."""
    record = await db_client.create_record(
        collection="activity_logs",
        data={
            "family_id": family_id,
            "user_id": user_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "metadata": metadata,
            "timestamp": now_iso(),
        },
    )
    logger.debug(
        "activity_logged",
        extra={"family_id": family_id, "action": str(action), "entity_type": str(entity_type)},
    )
    return record


async def list_activity(
    *,
    family_id: str,
    since: str | None = None,
    limit: int = Constants.DEFAULT_PER_PAGE_LIMIT,
) -> list[dict[str, Any]]:
    """Return the family's activity, newest first.

    Args:
        family_id: Family to read
        since: Optional ISO timestamp lower bound (inclusive)
        limit: Maximum number of entries
    """
    with span("activity_service.list_activity"):
        filter_query = f'family_id = "{db_client.sanitize_param(family_id)}"'
        if since:
            filter_query += f' && timestamp >= "{db_client.sanitize_param(since)}"'

        return await db_client.list_records(
            collection="activity_logs",
            filter_query=filter_query,
            sort="-timestamp",
            per_page=min(limit, Constants.MAX_PER_PAGE_LIMIT),
        )
