"""Component wattage catalog Pydantic schemas."""

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

CatalogName = Literal["cpus", "gpus", "cpus_mobile", "gpus_mobile", "ram"]


class ComponentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    catalog: str
    model: str
    manufacturer: str | None
    series: str | None
    avg_watt_usage: float


class ComponentUpsert(BaseModel):
    model: str = Field(..., min_length=1)
    avg_watt_usage: float = Field(..., ge=0)
    manufacturer: str | None = None
    series: str | None = None
