"""ProjectStageInstance model: one row per (project group, stage)."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Float, Index, Integer, String, Text, Uuid, text

from app.db.base import Base


class ProjectStageInstance(Base):
    __tablename__ = "project_stage_instances"
    __table_args__ = (
        # At most one live instance per stage of a project group
        Index(
            "uq_stage_instances_group_stage_live",
            "project_group_id",
            "stage",
            unique=True,
            postgresql_where=text("status <> 'Archived'"),
            sqlite_where=text("status <> 'Archived'"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)  # owning user
    project_group_id = Column(Uuid, nullable=False, index=True)  # id of the group's first instance

    organization = Column(String(255), nullable=False, default="")
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    stage = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="In Progress")  # In Progress, Complete, Archived

    stage_duration = Column(Integer, nullable=False, default=14)  # days
    stage_start_date = Column(Date, nullable=True)
    stage_due_date = Column(Date, nullable=True)
    project_start_date = Column(Date, nullable=True)
    project_due_date = Column(Date, nullable=True)

    # Running totals maintained by atomic relative updates
    session_duration = Column(Float, nullable=False, default=0)  # seconds
    carbon_emit = Column(Float, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
