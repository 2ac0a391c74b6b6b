"""User and Device models: identity profile and registered hardware."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, String, Uuid

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    # Same value as the identity token's ``sub`` claim
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    organization = Column(String(255), nullable=False, default="")
    region = Column(String(100), nullable=True)  # selects the carbon factor
    current_device_id = Column(Uuid, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class Device(Base):
    __tablename__ = "devices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    category = Column(String(20), nullable=False)  # desktop, laptop, mobile
    cpu = Column(String(255), nullable=False)
    gpu = Column(String(255), nullable=False)
    ram = Column(String(255), nullable=False)
    capacity = Column(String(50), nullable=False)
    motherboard = Column(String(255), nullable=False)
    psu = Column(Float, nullable=False)  # rated watts; ignored for mobile categories

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
