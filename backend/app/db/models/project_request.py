"""ProjectRequest model: user proposals awaiting admin review."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Integer, String, Text, Uuid

from app.db.base import Base


class ProjectRequest(Base):
    __tablename__ = "project_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    stage = Column(String(100), nullable=False)
    organization = Column(String(255), nullable=False, default="")

    # Requested timeline; defaults are applied on approval
    stage_duration = Column(Integer, nullable=True)
    project_start_date = Column(Date, nullable=True)
    project_due_date = Column(Date, nullable=True)

    status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected
    reviewer_id = Column(Uuid, nullable=True)
    review_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    stage_instance_id = Column(Uuid, nullable=True)  # set on approval

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
