"""Notification model: project invitations and their responses."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid

from app.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id = Column(Uuid, nullable=False)
    recipient_id = Column(Uuid, nullable=False, index=True)
    stage_instance_id = Column(
        Uuid, ForeignKey("project_stage_instances.id", ondelete="CASCADE"), nullable=False, index=True
    )

    type = Column(String(50), nullable=False, default="project_invitation")
    message = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="unread")  # unread, read
    response = Column(String(20), nullable=True)  # accepted, rejected

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
