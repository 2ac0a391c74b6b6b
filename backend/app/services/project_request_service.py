"""ProjectRequestService: user proposals and their admin disposition."""

import uuid
from datetime import date, datetime, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.db.models.project_membership import ProjectMembership
from app.db.models.project_request import ProjectRequest
from app.db.models.project_stage_instance import ProjectStageInstance
from app.db.models.user import User
from app.db.transaction import run_transaction
from app.domain.stages import InstanceStatus, MemberRole, ProgressStatus, Stage

logger = structlog.get_logger(__name__)


class ProjectRequestService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def submit(
        self,
        user_id: uuid.UUID,
        title: str,
        description: str,
        stage: str,
        organization: str | None = None,
        stage_duration: int | None = None,
        project_start_date: date | None = None,
        project_due_date: date | None = None,
    ) -> uuid.UUID:
        """Store a pending request. Organization defaults to the requester's.

        Raises:
            ValidationError: blank title/description, unknown stage, due before start
        """
        if not title or not title.strip() or not description or not description.strip():
            raise ValidationError("Title and description are required")
        try:
            parsed_stage = Stage.parse(stage)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if project_start_date and project_due_date and project_due_date < project_start_date:
            raise ValidationError("project_due_date must not be before project_start_date")

        async def work(session: AsyncSession) -> uuid.UUID:
            org = organization
            if org is None:
                user = await session.get(User, user_id)
                org = user.organization if user else ""
            request = ProjectRequest(
                id=uuid.uuid4(),
                user_id=user_id,
                title=title.strip(),
                description=description.strip(),
                stage=parsed_stage.value,
                organization=org,
                stage_duration=stage_duration,
                project_start_date=project_start_date,
                project_due_date=project_due_date,
                status="pending",
            )
            session.add(request)
            return request.id

        request_id = await run_transaction(self.session_factory, work, operation="submit_project_request")
        logger.info("project_request_submitted", request_id=str(request_id), user_id=str(user_id))
        return request_id

    async def _pending(self, session: AsyncSession, request_id: uuid.UUID) -> ProjectRequest:
        result = await session.execute(
            select(ProjectRequest).where(ProjectRequest.id == request_id).with_for_update()
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundError("Project request not found")
        if request.status != "pending":
            raise ConflictError(f"Project request already {request.status}")
        return request

    async def approve(self, request_id: uuid.UUID, reviewer_id: uuid.UUID, notes: str | None = None) -> uuid.UUID:
        """Approve a pending request, creating its first stage instance.

        The requester becomes owner (no progress) and leader (In Progress).
        Returns the new stage instance id, which is also its project group id.

        Raises:
            NotFoundError: unknown request
            ConflictError: request already decided
        """
        settings = get_settings()

        async def work(session: AsyncSession) -> uuid.UUID:
            request = await self._pending(session, request_id)

            today = datetime.now(timezone.utc).date()
            duration = request.stage_duration or settings.default_stage_duration_days
            project_start = request.project_start_date or today
            project_due = request.project_due_date or project_start + timedelta(
                days=settings.default_project_duration_days
            )

            instance_id = uuid.uuid4()
            session.add(
                ProjectStageInstance(
                    id=instance_id,
                    user_id=request.user_id,
                    project_group_id=instance_id,
                    organization=request.organization,
                    name=request.title,
                    description=request.description,
                    stage=request.stage,
                    status=InstanceStatus.IN_PROGRESS.value,
                    stage_duration=duration,
                    stage_start_date=today,
                    stage_due_date=today + timedelta(days=duration),
                    project_start_date=project_start,
                    project_due_date=project_due,
                    session_duration=0,
                    carbon_emit=0,
                )
            )
            # Instance row must exist before its memberships reference it
            await session.flush()
            session.add_all(
                [
                    ProjectMembership(
                        stage_instance_id=instance_id,
                        user_id=request.user_id,
                        role=MemberRole.OWNER.value,
                        current_stage=request.stage,
                        progress_status=None,
                    ),
                    ProjectMembership(
                        stage_instance_id=instance_id,
                        user_id=request.user_id,
                        role=MemberRole.LEADER.value,
                        current_stage=request.stage,
                        progress_status=ProgressStatus.IN_PROGRESS.value,
                    ),
                ]
            )

            request.status = "approved"
            request.reviewer_id = reviewer_id
            request.review_notes = notes
            request.reviewed_at = datetime.now(timezone.utc)
            request.stage_instance_id = instance_id
            return instance_id

        instance_id = await run_transaction(self.session_factory, work, operation="approve_project_request")
        logger.info(
            "project_request_approved",
            request_id=str(request_id),
            reviewer_id=str(reviewer_id),
            stage_instance_id=str(instance_id),
        )
        return instance_id

    async def reject(self, request_id: uuid.UUID, reviewer_id: uuid.UUID, notes: str | None = None) -> None:
        """Mark a pending request rejected. No other effect."""

        async def work(session: AsyncSession) -> None:
            request = await self._pending(session, request_id)
            request.status = "rejected"
            request.reviewer_id = reviewer_id
            request.review_notes = notes
            request.reviewed_at = datetime.now(timezone.utc)

        await run_transaction(self.session_factory, work, operation="reject_project_request")
        logger.info("project_request_rejected", request_id=str(request_id), reviewer_id=str(reviewer_id))

    async def list_for_user(self, user_id: uuid.UUID) -> list[ProjectRequest]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ProjectRequest)
                .where(ProjectRequest.user_id == user_id)
                .order_by(ProjectRequest.created_at.desc())
            )
            return list(result.scalars().all())

    async def list_all(self, status: str | None = None) -> list[ProjectRequest]:
        async with self.session_factory() as session:
            stmt = select(ProjectRequest).order_by(ProjectRequest.created_at.desc())
            if status:
                stmt = stmt.where(ProjectRequest.status == status)
            result = await session.execute(stmt)
            return list(result.scalars().all())
