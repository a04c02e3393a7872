"""Family lifecycle, membership and settings."""

import logging
import secrets
from typing import Any

from typeb.core import db_client
from typeb.core.config import Constants
from typeb.core.logging import span
from typeb.domain.activity import ActivityAction, EntityType, NotificationType
from typeb.domain.family import DEFAULT_TASK_CATEGORIES, Family, FamilyAction, RoleConfig, RolePreset, TaskCategory
from typeb.domain.task import TaskStatus
from typeb.domain.user import UserRole
from typeb.services import activity_service, notification_service, premium, user_service
from typeb.services.premium import PremiumFeature
from typeb.validators import (
    validate_family_name,
    validate_invite_code,
    validate_max_members,
    validate_role,
    validate_task_categories,
)


logger = logging.getLogger(__name__)

_PARENT_ONLY_ACTIONS = {FamilyAction.UPDATE, FamilyAction.ADMIN}


async def _list_members(family_id: str) -> list[dict[str, Any]]:
    return await db_client.list_records(
        collection="users",
        filter_query=f'family_id = "{db_client.sanitize_param(family_id)}"',
        per_page=Constants.MAX_PER_PAGE_LIMIT,
    )


async def load_family(*, family_id: str) -> dict[str, Any]:
    """Fetch a family record with membership lists derived from its users.

    Raises:
        KeyError: If the family does not exist
    """
    record = await db_client.get_record(collection="families", record_id=family_id)
    members = await _list_members(family_id)
    return {
        **record,
        "member_ids": [m["id"] for m in members],
        "parent_ids": [m["id"] for m in members if m.get("role") == UserRole.PARENT],
        "child_ids": [m["id"] for m in members if m.get("role") == UserRole.CHILD],
    }


def _to_family(record: dict[str, Any]) -> dict[str, Any]:
    return Family.model_validate({k: v for k, v in record.items() if k in Family.model_fields}).model_dump()


async def _generate_invite_code() -> str:
    """Return an invite code no other family uses.

    Raises:
        RuntimeError: If no unique code was found
    """
    for _ in range(Constants.INVITE_CODE_MAX_ATTEMPTS):
        code = "".join(
            secrets.choice(Constants.INVITE_CODE_ALPHABET) for _ in range(Constants.INVITE_CODE_LENGTH)
        )
        existing = await db_client.get_first_record(collection="families", filter_query=f'invite_code = "{code}"')
        if not existing:
            return code
    raise RuntimeError("Failed to generate a unique invite code. Please try again.")


async def validate_family_permission(
    *,
    user_id: str,
    family_id: str,
    action: FamilyAction,
) -> dict[str, Any]:
    """Check that a user may perform an action on a family.

    Members may view and leave; only parents may update or administer.

    Returns:
        The family record with derived membership lists

    Raises:
        KeyError: If the family does not exist
        PermissionError: If the user is not a member or lacks the role
    """
    family = await load_family(family_id=family_id)

    if user_id not in family["member_ids"]:
        logger.warning("family_permission_denied", extra={"user_id": user_id, "family_id": family_id})
        raise PermissionError("You are not a member of this family")

    if action in _PARENT_ONLY_ACTIONS and user_id not in family["parent_ids"]:
        logger.warning(
            "family_permission_denied",
            extra={"user_id": user_id, "family_id": family_id, "action": str(action)},
        )
        raise PermissionError("Only parents can perform this action")

    return family


async def can_perform_admin_action(*, user_id: str, family_id: str) -> bool:
    """Return True if the user is a parent in the family."""
    try:
        await validate_family_permission(user_id=user_id, family_id=family_id, action=FamilyAction.ADMIN)
    except (PermissionError, KeyError):
        return False
    return True


async def _clear_stale_membership(user: dict[str, Any]) -> dict[str, Any]:
    """Detach a user whose family no longer exists."""
    if not user.get("family_id"):
        return user
    try:
        await db_client.get_record(collection="families", record_id=user["family_id"])
    except KeyError:
        logger.info("stale_family_reference_cleared", extra={"user_id": user["id"], "family_id": user["family_id"]})
        return await db_client.update_record(
            collection="users",
            record_id=user["id"],
            data={"family_id": None, "role": None},
        )
    return user


async def create_family(
    *,
    user_id: str,
    name: str,
    role_config: RoleConfig | dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a family with the user as its only parent.

    The family starts on the premium tier when its creator has premium.

    Args:
        user_id: Creator, who becomes the first parent
        name: Family name
        role_config: Optional role labels

    Returns:
        The created family

    Raises:
        ValueError: If the name is invalid or the user is already in a family
    """
    with span("family_service.create_family"):
        validate_family_name(name).raise_for_errors()

        user = await _clear_stale_membership(await user_service.get_user(user_id=user_id))

        # Guard: One family per user
        if user.get("family_id"):
            raise ValueError("You are already a member of a family")

        is_premium = bool(user.get("is_premium"))
        config = RoleConfig.model_validate(role_config) if role_config else None
        invite_code = await _generate_invite_code()

        async with db_client.transaction():
            record = await db_client.create_record(
                collection="families",
                data={
                    "name": name.strip(),
                    "invite_code": invite_code,
                    "created_by": user_id,
                    "max_members": premium.default_max_members(is_premium=is_premium),
                    "is_premium": is_premium,
                    "task_categories": [c.model_dump() for c in DEFAULT_TASK_CATEGORIES],
                    "role_config": config.model_dump() if config else None,
                },
            )
            await db_client.update_record(
                collection="users",
                record_id=user_id,
                data={"family_id": record["id"], "role": UserRole.PARENT},
            )
            await activity_service.log_activity(
                family_id=record["id"],
                user_id=user_id,
                action=ActivityAction.CREATED,
                entity_type=EntityType.FAMILY,
                entity_id=record["id"],
            )

        logger.info("family_created", extra={"family_id": record["id"], "user_id": user_id})
        return _to_family(await load_family(family_id=record["id"]))


async def join_family(
    *,
    user_id: str,
    invite_code: str,
    role: UserRole | str = UserRole.CHILD,
) -> dict[str, Any]:
    """Join a family by invite code.

    Returns:
        The joined family

    Raises:
        ValueError: If the code or role is invalid, the user is already in a
            family, or the family is full
    """
    with span("family_service.join_family"):
        validate_invite_code(invite_code).raise_for_errors()
        validate_role(role).raise_for_errors()

        user = await _clear_stale_membership(await user_service.get_user(user_id=user_id))
        if user.get("family_id"):
            raise ValueError("You are already a member of a family")

        code = invite_code.strip().upper()
        record = await db_client.get_first_record(
            collection="families",
            filter_query=f'invite_code = "{db_client.sanitize_param(code)}"',
        )
        if not record:
            logger.warning("join_family_unknown_code", extra={"user_id": user_id})
            raise ValueError("Invalid invite code")

        async with db_client.transaction():
            # Guard: Membership and capacity are re-read under the write lock
            if (await user_service.get_user(user_id=user_id)).get("family_id"):
                raise ValueError("You are already a member of a family")
            family = await load_family(family_id=record["id"])
            if not premium.can_add_family_member(family):
                raise ValueError(f"Family is at maximum capacity ({family['max_members']} members)")

            await db_client.update_record(
                collection="users",
                record_id=user_id,
                data={"family_id": family["id"], "role": UserRole(role)},
            )
            await activity_service.log_activity(
                family_id=family["id"],
                user_id=user_id,
                action=ActivityAction.JOINED,
                entity_type=EntityType.USER,
                entity_id=user_id,
                metadata={"role": str(role)},
            )

        await notification_service.notify_parents(
            family_id=family["id"],
            notification_type=NotificationType.FAMILY_MEMBER_JOINED,
            title="New family member",
            body=f"{user['display_name']} joined {family['name']}",
            data={"user_id": user_id},
            exclude_user_id=user_id,
        )

        logger.info("family_joined", extra={"family_id": family["id"], "user_id": user_id, "role": str(role)})
        return _to_family(await load_family(family_id=family["id"]))


async def get_family(*, user_id: str, family_id: str) -> dict[str, Any]:
    """Return a family the user belongs to."""
    family = await validate_family_permission(user_id=user_id, family_id=family_id, action=FamilyAction.VIEW)
    return _to_family(family)


async def get_family_members(*, user_id: str, family_id: str) -> list[dict[str, Any]]:
    """Return the public profiles of every family member."""
    with span("family_service.get_family_members"):
        await validate_family_permission(user_id=user_id, family_id=family_id, action=FamilyAction.VIEW)
        return [user_service.to_public(member) for member in await _list_members(family_id)]


async def update_family(*, user_id: str, family_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    """Update family settings (parents only).

    Supported fields are ``name``, ``max_members``, ``task_categories`` and
    ``role_config``.

    Raises:
        ValueError: If a field fails validation
        PermissionError: If the change needs premium or the user is not a parent
    """
    with span("family_service.update_family"):
        family = await validate_family_permission(user_id=user_id, family_id=family_id, action=FamilyAction.UPDATE)
        user = await user_service.get_user(user_id=user_id)
        data: dict[str, Any] = {}

        if updates.get("name") is not None:
            validate_family_name(updates["name"]).raise_for_errors()
            data["name"] = updates["name"].strip()

        if updates.get("max_members") is not None:
            max_members = updates["max_members"]
            validate_max_members(max_members).raise_for_errors()
            current = len(family["member_ids"])
            if max_members < current:
                raise ValueError(f"Cannot set max members below the current member count ({current})")
            if max_members > premium.default_max_members(is_premium=False):
                premium.require_premium(PremiumFeature.MULTIPLE_MEMBERS, user, family)
            data["max_members"] = max_members

        if updates.get("task_categories") is not None:
            categories = updates["task_categories"]
            validate_task_categories(categories).raise_for_errors()
            premium.require_premium(PremiumFeature.CUSTOM_CATEGORIES, user, family)
            data["task_categories"] = [TaskCategory.model_validate(c).model_dump() for c in categories]

        if updates.get("role_config") is not None:
            config = RoleConfig.model_validate(updates["role_config"])
            if config.preset == RolePreset.CUSTOM:
                premium.require_premium(PremiumFeature.CUSTOM_ROLES, user, family)
            data["role_config"] = config.model_dump()

        if not data:
            return _to_family(family)

        await db_client.update_record(collection="families", record_id=family_id, data=data)
        await activity_service.log_activity(
            family_id=family_id,
            user_id=user_id,
            action=ActivityAction.UPDATED,
            entity_type=EntityType.FAMILY,
            entity_id=family_id,
            metadata={"fields": sorted(data)},
        )

        logger.info("family_updated", extra={"family_id": family_id, "fields": sorted(data)})
        return _to_family(await load_family(family_id=family_id))


async def _reassign_orphaned_tasks(*, family: dict[str, Any], departed_id: str) -> int:
    """Hand open tasks of a departed member to the creator or a remaining parent.

    Returns:
        Number of tasks reassigned
    """
    remaining = [m for m in family["member_ids"] if m != departed_id]
    if not remaining:
        return 0

    parents = [p for p in family["parent_ids"] if p != departed_id]
    fallback = family["created_by"] if family["created_by"] in remaining else (parents[0] if parents else remaining[0])

    tasks = await db_client.list_all_records(
        collection="tasks",
        filter_query=(
            f'family_id = "{db_client.sanitize_param(family["id"])}" '
            f'&& assigned_to = "{db_client.sanitize_param(departed_id)}" '
            f'&& (status = "{TaskStatus.PENDING}" || status = "{TaskStatus.IN_PROGRESS}")'
        ),
        sort="id",
    )
    for task in tasks:
        await db_client.update_record(
            collection="tasks",
            record_id=task["id"],
            data={"assigned_to": fallback, "assigned_by": fallback},
        )

    if tasks:
        logger.info(
            "orphaned_tasks_reassigned",
            extra={"family_id": family["id"], "from_user": departed_id, "to_user": fallback, "count": len(tasks)},
        )
    return len(tasks)


async def remove_family_member(*, user_id: str, family_id: str, target_user_id: str) -> dict[str, Any]:
    """Remove another member from the family (parents only).

    Raises:
        ValueError: If removing oneself or the last parent
        KeyError: If the target is not a member
    """
    with span("family_service.remove_family_member"):
        family = await validate_family_permission(user_id=user_id, family_id=family_id, action=FamilyAction.ADMIN)

        # Guard: Use leave_family for yourself
        if target_user_id == user_id:
            raise ValueError("Cannot remove yourself. Leave the family instead")

        if target_user_id not in family["member_ids"]:
            raise KeyError(f"User {target_user_id} is not a member of this family")

        if family["parent_ids"] == [target_user_id]:
            raise ValueError("Cannot remove the last parent")

        async with db_client.transaction():
            await db_client.update_record(
                collection="users",
                record_id=target_user_id,
                data={"family_id": None, "role": None},
            )
            await _reassign_orphaned_tasks(family=family, departed_id=target_user_id)
            await activity_service.log_activity(
                family_id=family_id,
                user_id=user_id,
                action=ActivityAction.LEFT,
                entity_type=EntityType.USER,
                entity_id=target_user_id,
                metadata={"removed_by": user_id},
            )

        logger.info("family_member_removed", extra={"family_id": family_id, "target_user_id": target_user_id})
        return _to_family(await load_family(family_id=family_id))


async def leave_family(*, user_id: str) -> None:
    """Leave the user's current family.

    The family is deleted when its last member leaves.

    Raises:
        ValueError: If the user is not in a family or is the last parent
    """
    with span("family_service.leave_family"):
        user = await user_service.get_user(user_id=user_id)
        family_id = user.get("family_id")
        if not family_id:
            raise ValueError("You are not a member of a family")

        family = await validate_family_permission(user_id=user_id, family_id=family_id, action=FamilyAction.LEAVE)
        others = [m for m in family["member_ids"] if m != user_id]

        # Guard: A family with members always keeps a parent
        if others and family["parent_ids"] == [user_id]:
            raise ValueError("The last parent cannot leave while other members remain")

        async with db_client.transaction():
            await db_client.update_record(
                collection="users",
                record_id=user_id,
                data={"family_id": None, "role": None},
            )
            if not others:
                await db_client.delete_record(collection="families", record_id=family_id)
            else:
                await _reassign_orphaned_tasks(family=family, departed_id=user_id)
                await activity_service.log_activity(
                    family_id=family_id,
                    user_id=user_id,
                    action=ActivityAction.LEFT,
                    entity_type=EntityType.USER,
                    entity_id=user_id,
                )

        if not others:
            logger.info("family_deleted_last_member_left", extra={"family_id": family_id, "user_id": user_id})
        else:
            logger.info("family_left", extra={"family_id": family_id, "user_id": user_id})


async def change_member_role(
    *,
    user_id: str,
    family_id: str,
    target_user_id: str,
    new_role: UserRole | str,
) -> dict[str, Any]:
    """Change a member's role (parents only).

    Returns:
        The target's public profile

    Raises:
        ValueError: If the role is invalid or the last parent would be demoted
        KeyError: If the target is not a member
    """
    with span("family_service.change_member_role"):
        validate_role(new_role).raise_for_errors()
        family = await validate_family_permission(user_id=user_id, family_id=family_id, action=FamilyAction.ADMIN)

        if target_user_id not in family["member_ids"]:
            raise KeyError(f"User {target_user_id} is not a member of this family")

        target = await user_service.get_user(user_id=target_user_id)
        if target.get("role") == new_role:
            return user_service.to_public(target)

        if new_role == UserRole.CHILD and family["parent_ids"] == [target_user_id]:
            raise ValueError("Cannot demote the last parent")

        record = await db_client.update_record(
            collection="users",
            record_id=target_user_id,
            data={"role": UserRole(new_role)},
        )
        await activity_service.log_activity(
            family_id=family_id,
            user_id=user_id,
            action=ActivityAction.UPDATED,
            entity_type=EntityType.USER,
            entity_id=target_user_id,
            metadata={"role": str(new_role)},
        )

        logger.info(
            "member_role_changed",
            extra={"family_id": family_id, "target_user_id": target_user_id, "role": str(new_role)},
        )
        return user_service.to_public(record)


async def regenerate_invite_code(*, user_id: str, family_id: str) -> str:
    """Replace the family's invite code (parents only)."""
    with span("family_service.regenerate_invite_code"):
        await validate_family_permission(user_id=user_id, family_id=family_id, action=FamilyAction.ADMIN)
        code = await _generate_invite_code()
        await db_client.update_record(collection="families", record_id=family_id, data={"invite_code": code})
        logger.info("invite_code_regenerated", extra={"family_id": family_id})
        return code
