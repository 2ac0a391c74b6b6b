"""StageProgressRecord model: durable per-user stage history."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, UniqueConstraint, Uuid

from app.db.base import Base


class StageProgressRecord(Base):
    __tablename__ = "stage_progress_records"
    __table_args__ = (
        UniqueConstraint("stage_instance_id", "user_id", "stage", name="uq_stage_progress_instance_user_stage"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # No foreign key: history outlives hard-deleted instances and removed members
    stage_instance_id = Column(Uuid, nullable=False, index=True)
    user_id = Column(Uuid, nullable=False, index=True)
    stage = Column(String(100), nullable=False)

    status = Column(String(20), nullable=False, default="Complete")
    started_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    # NO delete path -- upsert only
