"""ProjectService: project listings, archive, admin edits and summaries."""

import uuid
from dataclasses import dataclass, field
from datetime import date

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.db.models.notification import Notification
from app.db.models.project_membership import ProjectMembership
from app.db.models.project_stage_instance import ProjectStageInstance
from app.db.models.user import User
from app.db.transaction import run_transaction
from app.domain.stages import InstanceStatus, MemberRole, ProgressStatus, Stage
from app.services.completion_service import CompletionEvaluator
from app.services.project_access import get_live_instance, participant_roles

logger = structlog.get_logger(__name__)

ADMIN_EDITABLE = (
    "name",
    "description",
    "status",
    "stage_start_date",
    "stage_due_date",
    "project_due_date",
)
EMISSION_REPORT_VIEWS = ("organization", "individual")


@dataclass
class UserProjectView:
    """One stage instance as seen by one user."""

    instance: ProjectStageInstance
    owner_name: str | None
    owner_email: str | None
    roles: list[str] = field(default_factory=list)
    progress_status: str | None = None
    current_stage: str | None = None

    @property
    def visible(self) -> bool:
        return self.progress_status != ProgressStatus.NOT_STARTED.value


@dataclass
class StageProgress:
    stage_instance_id: uuid.UUID
    stage: str
    status: str
    completed_members: int
    total_members: int


@dataclass
class EmissionSummary:
    projects: list[dict]
    highest_emission: float | None
    lowest_emission: float | None


@dataclass
class EmissionReportRow:
    organization: str
    name: str
    email: str
    total_emissions: float


class ProjectService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_for_user(self, user_id: uuid.UUID) -> list[UserProjectView]:
        """Every live instance the user owns or is a member of."""
        async with self.session_factory() as session:
            member_of = select(ProjectMembership.stage_instance_id).where(ProjectMembership.user_id == user_id)
            result = await session.execute(
                select(ProjectStageInstance, User)
                .outerjoin(User, User.id == ProjectStageInstance.user_id)
                .where(
                    ProjectStageInstance.status != InstanceStatus.ARCHIVED.value,
                    or_(
                        ProjectStageInstance.user_id == user_id,
                        ProjectStageInstance.id.in_(member_of),
                    ),
                )
                .order_by(ProjectStageInstance.created_at.desc())
            )
            rows = result.all()
            if not rows:
                return []

            memberships = await session.execute(
                select(ProjectMembership).where(
                    ProjectMembership.user_id == user_id,
                    ProjectMembership.stage_instance_id.in_([inst.id for inst, _ in rows]),
                )
            )
            by_instance: dict[uuid.UUID, list[ProjectMembership]] = {}
            for m in memberships.scalars().all():
                by_instance.setdefault(m.stage_instance_id, []).append(m)

            views = []
            for instance, owner in rows:
                held = by_instance.get(instance.id, [])
                roles = [m.role for m in held]
                if not roles and instance.user_id == user_id:
                    roles = [MemberRole.OWNER.value]
                contributor = next((m for m in held if m.role != MemberRole.OWNER.value), None)
                stage = next((m.current_stage for m in held if m.current_stage), None)
                views.append(
                    UserProjectView(
                        instance=instance,
                        owner_name=owner.name if owner else None,
                        owner_email=owner.email if owner else None,
                        roles=roles,
                        progress_status=contributor.progress_status if contributor else None,
                        current_stage=stage or instance.stage,
                    )
                )
            return views

    async def get_stage_progress(
        self, instance_id: uuid.UUID, caller_id: uuid.UUID, is_admin: bool = False
    ) -> StageProgress:
        """Read-only completed/total contributor count."""
        async with self.session_factory() as session:
            instance = await get_live_instance(session, instance_id)
            if not is_admin:
                await participant_roles(session, instance, caller_id)
            tally = await CompletionEvaluator(session).tally(instance.id)
            return StageProgress(
                stage_instance_id=instance.id,
                stage=instance.stage,
                status=instance.status,
                completed_members=tally.completed,
                total_members=tally.total,
            )

    async def archive(self, instance_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Soft-delete. Only the owning user may archive.

        Raises:
            NotFoundError: missing, already archived, or not owned by the caller
        """

        async def work(session: AsyncSession) -> None:
            instance = await get_live_instance(session, instance_id, for_update=True)
            if instance.user_id != user_id:
                raise NotFoundError("Project not found or you do not have permission to archive it")
            instance.status = InstanceStatus.ARCHIVED.value

        await run_transaction(self.session_factory, work, operation="archive_project")
        logger.info("project_archived", stage_instance_id=str(instance_id), user_id=str(user_id))

    async def admin_update(self, instance_id: uuid.UUID, changes: dict) -> ProjectStageInstance:
        """Apply admin edits to name, description, status and dates."""
        unknown = set(changes) - set(ADMIN_EDITABLE)
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
        if "status" in changes:
            try:
                InstanceStatus(changes["status"])
            except ValueError as exc:
                raise ValidationError(f"Unknown status: {changes['status']}") from exc

        async def work(session: AsyncSession) -> ProjectStageInstance:
            instance = await session.get(ProjectStageInstance, instance_id, with_for_update=True)
            if instance is None:
                raise NotFoundError("Project not found")
            if instance.status == InstanceStatus.COMPLETE.value and changes.get("status") == InstanceStatus.IN_PROGRESS.value:
                raise ConflictError("A completed stage cannot be reopened")
            for key, value in changes.items():
                setattr(instance, key, value)
            start: date | None = instance.stage_start_date
            due: date | None = instance.stage_due_date
            if start and due and due < start:
                raise ValidationError("stage_due_date must not be before stage_start_date")
            try:
                await session.flush()
            except IntegrityError as exc:
                raise ConflictError("Another live instance already holds this stage") from exc
            return instance

        instance = await run_transaction(self.session_factory, work, operation="admin_update_project")
        logger.info("project_updated", stage_instance_id=str(instance_id), fields=sorted(changes))
        return instance

    async def admin_delete(self, instance_id: uuid.UUID) -> None:
        """Hard delete with its memberships and notifications; progress history stays."""

        async def work(session: AsyncSession) -> None:
            instance = await session.get(ProjectStageInstance, instance_id)
            if instance is None:
                raise NotFoundError("Project not found")
            await session.execute(delete(Notification).where(Notification.stage_instance_id == instance_id))
            await session.execute(
                delete(ProjectMembership).where(ProjectMembership.stage_instance_id == instance_id)
            )
            await session.delete(instance)

        await run_transaction(self.session_factory, work, operation="admin_delete_project")
        logger.info("project_deleted", stage_instance_id=str(instance_id))

    async def emission_summary(self, user_id: uuid.UUID) -> EmissionSummary:
        """Carbon totals per owned project name, with the extremes."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(
                    ProjectStageInstance.name,
                    func.sum(ProjectStageInstance.carbon_emit).label("total_emissions"),
                )
                .where(
                    ProjectStageInstance.user_id == user_id,
                    ProjectStageInstance.status != InstanceStatus.ARCHIVED.value,
                )
                .group_by(ProjectStageInstance.name)
                .order_by(ProjectStageInstance.name)
            )
            projects = [
                {"project_name": name, "total_emissions": float(total or 0)} for name, total in result.all()
            ]
        emissions = [p["total_emissions"] for p in projects]
        return EmissionSummary(
            projects=projects,
            highest_emission=max(emissions) if emissions else None,
            lowest_emission=min(emissions) if emissions else None,
        )

    async def emission_report(self, view_by: str = "organization") -> list[EmissionReportRow]:
        """Carbon per project owner across non-archived instances, for admins.

        ``organization`` groups rows by organization then name; ``individual`` orders by name.
        """
        if view_by not in EMISSION_REPORT_VIEWS:
            raise ValidationError(f"view_by must be one of: {', '.join(EMISSION_REPORT_VIEWS)}")
        order = (User.organization, User.name) if view_by == "organization" else (User.name, User.email)
        async with self.session_factory() as session:
            result = await session.execute(
                select(
                    User.organization,
                    User.name,
                    User.email,
                    func.sum(ProjectStageInstance.carbon_emit).label("total_emissions"),
                )
                .select_from(ProjectStageInstance)
                .join(User, User.id == ProjectStageInstance.user_id)
                .where(ProjectStageInstance.status != InstanceStatus.ARCHIVED.value)
                .group_by(User.organization, User.name, User.email)
                .order_by(*order)
            )
            return [
                EmissionReportRow(organization=org, name=name, email=email, total_emissions=float(total or 0))
                for org, name, email, total in result.all()
            ]

    @staticmethod
    def stage_order() -> list[dict]:
        """The fixed stage sequence, for clients building stage pickers."""
        return [
            {
                "value": s.value,
                "name": s.short_name,
                "order": s.order,
                "next_stage": s.following().value if s.following() else None,
            }
            for s in Stage
        ]
