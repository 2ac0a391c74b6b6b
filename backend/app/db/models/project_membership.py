"""ProjectMembership model: a user's role and progress on one stage instance."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from app.db.base import Base


class ProjectMembership(Base):
    __tablename__ = "project_memberships"
    __table_args__ = (
        UniqueConstraint("stage_instance_id", "user_id", "role", name="uq_memberships_instance_user_role"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    stage_instance_id = Column(
        Uuid, ForeignKey("project_stage_instances.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Uuid, nullable=False, index=True)

    role = Column(String(30), nullable=False)  # project_owner, project_leader, member
    current_stage = Column(String(100), nullable=True)
    progress_status = Column(String(20), nullable=True)  # always null for project_owner

    joined_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
