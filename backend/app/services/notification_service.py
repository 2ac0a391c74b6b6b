"""NotificationService: a recipient's inbox."""

import uuid
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from app.core.exceptions import NotFoundError
from app.db.models.notification import Notification
from app.db.models.project_stage_instance import ProjectStageInstance
from app.db.models.user import User
from app.db.transaction import run_transaction

logger = structlog.get_logger(__name__)


@dataclass
class NotificationView:
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


class NotificationService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_for_recipient(self, recipient_id: uuid.UUID) -> list[NotificationView]:
        """Newest first, joined with sender and project fields."""
        sender = aliased(User)
        async with self.session_factory() as session:
            result = await session.execute(
                select(Notification, sender, ProjectStageInstance)
                .outerjoin(sender, sender.id == Notification.sender_id)
                .outerjoin(ProjectStageInstance, ProjectStageInstance.id == Notification.stage_instance_id)
                .where(Notification.recipient_id == recipient_id)
                .order_by(Notification.created_at.desc())
            )
            return [
                NotificationView(
                    id=n.id,
                    type=n.type,
                    message=n.message,
                    status=n.status,
                    response=n.response,
                    created_at=n.created_at,
                    sender_id=n.sender_id,
                    sender_name=s.name if s else None,
                    sender_email=s.email if s else None,
                    stage_instance_id=n.stage_instance_id,
                    project_name=p.name if p else None,
                    project_stage=p.stage if p else None,
                )
                for n, s, p in result.all()
            ]

    async def mark_read(self, notification_id: uuid.UUID, recipient_id: uuid.UUID) -> None:
        async def work(session: AsyncSession) -> None:
            notification = await session.get(Notification, notification_id)
            if notification is None or notification.recipient_id != recipient_id:
                raise NotFoundError("Notification not found")
            notification.status = "read"

        await run_transaction(self.session_factory, work, operation="mark_notification_read")
        logger.debug("notification_read", notification_id=str(notification_id))
