"""ComponentWattage model: read-only reference data for emission accrual."""

import uuid

from sqlalchemy import Column, Float, String, UniqueConstraint, Uuid

from app.db.base import Base


class ComponentWattage(Base):
    __tablename__ = "component_wattages"
    __table_args__ = (UniqueConstraint("catalog", "model", name="uq_component_wattages_catalog_model"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    catalog = Column(String(20), nullable=False, index=True)  # cpus, gpus, cpus_mobile, gpus_mobile, ram
    model = Column(String(255), nullable=False)  # for ram: the DDR generation
    manufacturer = Column(String(100), nullable=True)
    series = Column(String(100), nullable=True)
    avg_watt_usage = Column(Float, nullable=False)
