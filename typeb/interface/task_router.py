"""Task routes."""

from typing import Any

from fastapi import APIRouter, Query, status

from typeb.domain.create_models import CompleteTaskRequest, TaskCreate
from typeb.domain.task import TaskPriority, TaskStatus
from typeb.domain.update_models import TaskUpdate
from typeb.interface.dependencies import CurrentUser, FamilyMember
from typeb.models.service_models import TaskStats
from typeb.services import task_service


router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/family/{family_id}", status_code=status.HTTP_201_CREATED)
async def create_task(family_id: str, payload: TaskCreate, user: CurrentUser) -> dict[str, Any]:
    """Create a task in the family."""
    return await task_service.create_task(family_id=family_id, user_id=user["id"], task_input=payload.model_dump())


@router.get("/family/{family_id}")
async def get_family_tasks(
    family_id: str,
    user: FamilyMember,
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    assigned_to: str | None = None,
    priority: TaskPriority | None = None,
    limit: int | None = Query(default=None, ge=1, le=500),
) -> list[dict[str, Any]]:
    """List the family's tasks, newest first."""
    return await task_service.get_family_tasks(
        family_id=family_id,
        status=status_filter,
        assigned_to=assigned_to,
        priority=priority,
        limit=limit,
    )


@router.get("/family/{family_id}/mine")
async def get_my_tasks(
    family_id: str,
    user: FamilyMember,
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
) -> list[dict[str, Any]]:
    """List the tasks assigned to the signed-in user."""
    return await task_service.get_user_tasks(user_id=user["id"], family_id=family_id, status=status_filter)


@router.get("/family/{family_id}/overdue")
async def get_overdue_tasks(family_id: str, user: FamilyMember) -> list[dict[str, Any]]:
    """List pending tasks past their due date, oldest first."""
    return await task_service.get_overdue_tasks(family_id=family_id)


@router.get("/family/{family_id}/stats")
async def get_task_stats(family_id: str, user: FamilyMember, member_id: str | None = None) -> TaskStats:
    """Task counts for the family or one member."""
    return await task_service.get_task_stats(family_id=family_id, user_id=member_id)


@router.get("/{task_id}")
async def get_task(task_id: str, user: CurrentUser) -> dict[str, Any]:
    """Return a single task."""
    return await task_service.get_task(task_id=task_id, user_id=user["id"])


@router.patch("/{task_id}")
async def update_task(task_id: str, payload: TaskUpdate, user: CurrentUser) -> dict[str, Any]:
    """Update a task."""
    return await task_service.update_task(
        task_id=task_id,
        user_id=user["id"],
        updates=payload.model_dump(exclude_unset=True),
    )


@router.post("/{task_id}/complete")
async def complete_task(task_id: str, payload: CompleteTaskRequest, user: CurrentUser) -> dict[str, Any]:
    """Mark a task complete, optionally with photo proof."""
    return await task_service.complete_task(task_id=task_id, user_id=user["id"], photo_url=payload.photo_url)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, user: CurrentUser) -> None:
    """Delete a task."""
    await task_service.delete_task(task_id=task_id, user_id=user["id"])
