"""Project, stage transition and emission Pydantic schemas."""

import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CompleteStageRequest(BaseModel):
    current_stage: str | None = Field(None, description="Stage being completed; defaults to the instance's stage")
    next_stage: str | None = Field(None, description="Stage to move into; omit for the final stage")


class TransitionResponse(BaseModel):
    outcome: Literal["project-completed", "user-stage-completed", "stage-completed"]
    branch: Literal["terminal", "joined-existing", "created-next"]
    stage_instance_id: uuid.UUID
    stage: str
    all_completed: bool
    completed_members: int | None = None
    total_members: int | None = None


class AccrueEmissionRequest(BaseModel):
    session_duration_seconds: float = Field(..., ge=0)
    record_session_duration: bool = True


class AccrualResponse(BaseModel):
    stage_instance_id: uuid.UUID
    device_id: uuid.UUID
    total_watts: float
    energy_wh: float
    carbon_factor: float
    carbon_delta: float
    session_duration: float


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    project_group_id: uuid.UUID
    organization: str
    name: str
    description: str
    stage: str
    status: str
    stage_duration: int
    stage_start_date: date | None
    stage_due_date: date | None
    project_start_date: date | None
    project_due_date: date | None
    session_duration: float
    carbon_emit: float
    created_at: datetime


class UserProjectResponse(ProjectResponse):
    owner_name: str | None
    owner_email: str | None
    roles: list[str]
    progress_status: str | None
    current_stage: str
    visible: bool


class MemberResponse(BaseModel):
    user_id: uuid.UUID
    name: str | None
    email: str | None
    role: str
    role_title: str
    progress_status: str | None
    current_stage: str | None


class StageProgressResponse(BaseModel):
    stage_instance_id: uuid.UUID
    stage: str
    status: str
    completed_members: int
    total_members: int


class ProjectEmission(BaseModel):
    project_name: str
    total_emissions: float


class EmissionSummaryResponse(BaseModel):
    projects: list[ProjectEmission]
    highest_emission: float | None
    lowest_emission: float | None


class EmissionReportRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    organization: str
    name: str
    email: str
    total_emissions: float


class AdminProjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    status: Literal["In Progress", "Complete", "Archived"] | None = None
    stage_start_date: date | None = None
    stage_due_date: date | None = None
    project_due_date: date | None = None


class AddMemberRequest(BaseModel):
    email: str = Field(..., min_length=3)
    role: Literal["project_owner", "project_leader", "member"] = "member"


class StageOption(BaseModel):
    value: str
    name: str
    order: int
    next_stage: str | None = Field(None, description="Suggested next_stage for completeStage; None on the last stage")
