"""Photo validation routes for parents."""

from typing import Any

from fastapi import APIRouter

from typeb.domain.create_models import ReviewRequest
from typeb.interface.dependencies import CurrentUser
from typeb.models.service_models import ValidationQueueItem
from typeb.services import validation_service


router = APIRouter(prefix="/validation", tags=["validation"])


@router.get("/family/{family_id}/queue")
async def get_validation_queue(family_id: str, user: CurrentUser) -> list[ValidationQueueItem]:
    """Pending photo submissions, oldest first."""
    return await validation_service.get_validation_queue(family_id=family_id, user_id=user["id"])


@router.post("/submissions/{submission_id}/review")
async def review_submission(submission_id: str, payload: ReviewRequest, user: CurrentUser) -> dict[str, Any]:
    """Approve or reject a submission."""
    return await validation_service.review_submission(
        submission_id=submission_id,
        reviewer_id=user["id"],
        approved=payload.approved,
        notes=payload.notes,
    )


@router.post("/tasks/{task_id}")
async def validate_task(task_id: str, payload: ReviewRequest, user: CurrentUser) -> dict[str, Any]:
    """Approve or reject the pending submission of a task."""
    return await validation_service.validate_task(
        task_id=task_id,
        validator_id=user["id"],
        approved=payload.approved,
        notes=payload.notes,
    )
