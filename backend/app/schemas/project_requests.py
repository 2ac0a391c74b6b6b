"""Project request Pydantic schemas."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class ProjectRequestCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    stage: str = Field(..., description="Stage label or short name, e.g. 'Design'")
    organization: str | None = None
    stage_duration: int | None = Field(None, gt=0, description="Days per stage")
    project_start_date: date | None = None
    project_due_date: date | None = None


class ProjectRequestCreated(BaseModel):
    request_id: uuid.UUID


class ReviewRequest(BaseModel):
    notes: str | None = None


class ApprovalResponse(BaseModel):
    request_id: uuid.UUID
    stage_instance_id: uuid.UUID


class ProjectRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str
    stage: str
    organization: str
    stage_duration: int | None
    project_start_date: date | None
    project_due_date: date | None
    status: str
    reviewer_id: uuid.UUID | None
    review_notes: str | None
    reviewed_at: datetime | None
    stage_instance_id: uuid.UUID | None
    created_at: datetime
