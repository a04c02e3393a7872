"""Photo submission domain models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class SubmissionStatus(StrEnum):
    """Review state of a photo submission."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Submission(BaseModel):
    """A completed task's photo proof awaiting (or after) parent review."""

    id: str = Field(..., description="Unique submission ID")
    task_id: str = Field(..., description="Task the proof belongs to")
    family_id: str = Field(..., description="Owning family")
    submitted_by: str = Field(..., description="User who completed the task")
    photo_url: str = Field(..., description="Proof photo URL")
    submitted_at: str = Field(..., description="Submission timestamp")
    status: SubmissionStatus = Field(default=SubmissionStatus.PENDING, description="Review state")
    reviewed_at: str | None = Field(default=None, description="Review timestamp")
    reviewed_by: str | None = Field(default=None, description="Reviewer user ID")
    validation_notes: str | None = Field(default=None, description="Reviewer notes")
