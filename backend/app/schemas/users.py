"""User profile and device Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DeviceIn(BaseModel):
    """All fields are required, as on the registration form."""

    category: Literal["desktop", "laptop", "mobile"]
    cpu: str = Field(..., min_length=1)
    gpu: str = Field(..., min_length=1)
    ram: str = Field(..., min_length=1, description="RAM descriptor or DDR generation, e.g. 'DDR4'")
    capacity: str = Field(..., min_length=1)
    motherboard: str = Field(..., min_length=1)
    psu: float = Field(..., ge=0, description="PSU rating in watts")


class ProfileRegister(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    organization: str = ""
    region: str | None = None
    device: DeviceIn


class DeviceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category: str
    cpu: str
    gpu: str
    ram: str
    capacity: str
    motherboard: str
    psu: float
    created_at: datetime


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    organization: str
    region: str | None
    current_device_id: uuid.UUID | None


class DeviceCreate(DeviceIn):
    make_current: bool = False


class DeviceListResponse(BaseModel):
    devices: list[DeviceResponse]
    current_device_id: uuid.UUID | None


class SetCurrentDeviceRequest(BaseModel):
    device_id: uuid.UUID


class ProfileUpdate(BaseModel):
    """Partial profile edit; email and devices have their own flows."""

    name: str | None = Field(None, min_length=1)
    organization: str | None = None
    region: str | None = None
