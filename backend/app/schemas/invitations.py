"""Invitation and notification Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class InviteRequest(BaseModel):
    email: str = Field(..., min_length=3)
    message: str = ""


class InviteResponse(BaseModel):
    notification_id: uuid.UUID


class RespondRequest(BaseModel):
    response: Literal["accepted", "rejected"]


class RespondResponse(BaseModel):
    notification_id: uuid.UUID
    response: str
    changed: bool


class NotificationResponse(BaseModel):
    id: uuid.UUID
    type: str
    message: str
    status: str
    response: str | None
    created_at: datetime
    sender_id: uuid.UUID
    sender_name: str | None
    sender_email: str | None
    stage_instance_id: uuid.UUID
    project_name: str | None
    project_stage: str | None
