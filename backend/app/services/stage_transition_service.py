"""StageTransitionService: a member finishes a stage; the project may advance.

Everything in ``complete_stage`` is one unit of work run through
``run_transaction``. The find-or-create of the next stage instance is
serialized by the partial unique index on (project_group_id, stage): the
losing writer gets a NextStageRaceError, the whole unit is replayed, and the
replay takes the "found" path.
"""

import uuid
from datetime import date, datetime, timedelta, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.core.exceptions import NextStageRaceError, ProgressRecordRaceError, ValidationError
from app.db.models.project_membership import ProjectMembership
from app.db.models.project_stage_instance import ProjectStageInstance
from app.db.models.stage_progress import StageProgressRecord
from app.db.transaction import run_transaction
from app.domain.stages import (
    Branch,
    InstanceStatus,
    MemberRole,
    ProgressStatus,
    Stage,
    TransitionResult,
    classify_outcome,
    initial_progress_for,
    migrated_progress_for,
    validate_stage_advance,
)
from app.services.completion_service import CompletionEvaluator, CompletionVerdict
from app.services.project_access import get_live_instance, participant_roles

logger = structlog.get_logger(__name__)


def _parse_stage(value: str | Stage | None, field: str) -> Stage | None:
    if value is None or isinstance(value, Stage):
        return value
    try:
        return Stage.parse(value)
    except ValueError as exc:
        raise ValidationError(f"{field}: {exc}") from exc


class StageTransitionService:
    """Service layer for completeStage."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def complete_stage(
        self,
        instance_id: uuid.UUID,
        user_id: uuid.UUID,
        current_stage: str | Stage | None = None,
        next_stage: str | Stage | None = None,
    ) -> TransitionResult:
        """Mark ``user_id`` done with the current stage and advance if asked.

        Args:
            instance_id: stage instance the user is working on
            user_id: completing user (owner or member of the instance)
            current_stage: stage being completed; must match the instance's stage when given
            next_stage: stage to move into; None when this is the last stage

        Returns:
            TransitionResult describing the outcome and the branch taken

        Raises:
            NotFoundError: instance missing or archived
            ForbiddenError: caller is not a participant
            ValidationError: unknown stage label, current_stage not the instance's stage, or next stage not later
        """
        parsed_current = _parse_stage(current_stage, "current_stage")
        parsed_next = _parse_stage(next_stage, "next_stage")

        async def work(session: AsyncSession) -> TransitionResult:
            return await self._complete_stage(session, instance_id, user_id, parsed_current, parsed_next)

        result = await run_transaction(self.session_factory, work, operation="complete_stage")

        logger.info(
            "stage_completed",
            stage_instance_id=str(instance_id),
            user_id=str(user_id),
            outcome=result.outcome.value,
            branch=result.branch.value,
            target_instance_id=str(result.stage_instance_id),
            completed_members=result.completed_members,
            total_members=result.total_members,
        )
        return result

    async def _complete_stage(
        self,
        session: AsyncSession,
        instance_id: uuid.UUID,
        user_id: uuid.UUID,
        current_stage: Stage | None,
        next_stage: Stage | None,
    ) -> TransitionResult:
        instance = await get_live_instance(session, instance_id, for_update=True)
        roles = await participant_roles(session, instance, user_id)

        current = Stage.parse(instance.stage)
        if current_stage is not None and current_stage != current:
            raise ValidationError(
                f"current_stage '{current_stage.short_name}' does not match the project's stage '{current.short_name}'"
            )
        check = validate_stage_advance(current, next_stage)
        if not check.allowed:
            raise ValidationError(check.reason)

        await self._record_progress(session, instance.id, user_id, current)

        await session.execute(
            update(ProjectMembership)
            .where(
                ProjectMembership.stage_instance_id == instance.id,
                ProjectMembership.user_id == user_id,
                ProjectMembership.role != MemberRole.OWNER.value,
            )
            .values(progress_status=ProgressStatus.STAGE_COMPLETE.value)
        )

        verdict = await CompletionEvaluator(session).evaluate(instance)

        if next_stage is None:
            return self._result(verdict, Branch.TERMINAL, instance.id, current)

        existing = await self._find_next_instance(session, instance, next_stage)
        if existing is not None:
            await self._join_existing(session, existing, user_id, roles, next_stage)
            return self._result(verdict, Branch.JOINED_EXISTING, existing.id, next_stage)

        created = await self._create_next_instance(session, instance, next_stage)
        await self._migrate_members(session, instance, created, user_id, roles, next_stage)
        return self._result(verdict, Branch.CREATED_NEXT, created.id, next_stage)

    @staticmethod
    def _result(
        verdict: CompletionVerdict, branch: Branch, target_id: uuid.UUID, stage: Stage
    ) -> TransitionResult:
        return TransitionResult(
            outcome=classify_outcome(verdict.complete, terminal=branch == Branch.TERMINAL),
            branch=branch,
            stage_instance_id=target_id,
            stage=stage,
            all_completed=verdict.complete,
            completed_members=verdict.completed_members,
            total_members=verdict.total_members,
        )

    async def _find_progress_record(
        self, session: AsyncSession, instance_id: uuid.UUID, user_id: uuid.UUID, stage: Stage
    ) -> StageProgressRecord | None:
        result = await session.execute(
            select(StageProgressRecord).where(
                StageProgressRecord.stage_instance_id == instance_id,
                StageProgressRecord.user_id == user_id,
                StageProgressRecord.stage == stage.value,
            )
        )
        return result.scalar_one_or_none()

    async def _record_progress(
        self, session: AsyncSession, instance_id: uuid.UUID, user_id: uuid.UUID, stage: Stage
    ) -> None:
        """Upsert the caller's progress row.

        A concurrent completion by the same user can insert first; the unique
        constraint rejects ours and the replay takes the update path.
        """
        now = datetime.now(timezone.utc)
        record = await self._find_progress_record(session, instance_id, user_id, stage)
        if record is not None:
            record.status = "Complete"
            record.completed_at = now
            return

        session.add(
            StageProgressRecord(
                stage_instance_id=instance_id,
                user_id=user_id,
                stage=stage.value,
                status="Complete",
                started_at=now,
                completed_at=now,
            )
        )
        try:
            await session.flush()
        except IntegrityError as exc:
            logger.info(
                "progress_record_race_lost",
                stage_instance_id=str(instance_id),
                user_id=str(user_id),
                stage=stage.value,
            )
            raise ProgressRecordRaceError(instance_id, user_id, stage.value) from exc

    async def _find_next_instance(
        self, session: AsyncSession, source: ProjectStageInstance, stage: Stage
    ) -> ProjectStageInstance | None:
        result = await session.execute(
            select(ProjectStageInstance).where(
                ProjectStageInstance.project_group_id == source.project_group_id,
                ProjectStageInstance.id != source.id,
                ProjectStageInstance.stage == stage.value,
                ProjectStageInstance.status != InstanceStatus.ARCHIVED.value,
            )
        )
        return result.scalar_one_or_none()

    async def _join_existing(
        self,
        session: AsyncSession,
        target: ProjectStageInstance,
        user_id: uuid.UUID,
        roles: list[MemberRole],
        stage: Stage,
    ) -> None:
        """The caller moves forward individually, whatever teammates are doing."""
        result = await session.execute(
            select(ProjectMembership).where(
                ProjectMembership.stage_instance_id == target.id,
                ProjectMembership.user_id == user_id,
            )
        )
        held = {m.role: m for m in result.scalars().all()}

        for role in roles:
            progress = initial_progress_for(role, default=ProgressStatus.IN_PROGRESS)
            membership = held.get(role.value)
            if membership is None:
                session.add(
                    ProjectMembership(
                        stage_instance_id=target.id,
                        user_id=user_id,
                        role=role.value,
                        current_stage=stage.value,
                        progress_status=progress.value if progress else None,
                    )
                )
            else:
                membership.current_stage = stage.value
                membership.progress_status = progress.value if progress else None

    async def _create_next_instance(
        self, session: AsyncSession, source: ProjectStageInstance, stage: Stage
    ) -> ProjectStageInstance:
        settings = get_settings()
        duration = source.stage_duration or settings.default_stage_duration_days
        today: date = datetime.now(timezone.utc).date()

        created = ProjectStageInstance(
            id=uuid.uuid4(),
            user_id=source.user_id,
            project_group_id=source.project_group_id,
            organization=source.organization,
            name=source.name,
            description=source.description,
            stage=stage.value,
            status=InstanceStatus.IN_PROGRESS.value,
            stage_duration=duration,
            stage_start_date=today,
            stage_due_date=today + timedelta(days=duration),
            project_start_date=source.project_start_date,
            project_due_date=source.project_due_date,
            session_duration=0,
            carbon_emit=0,
        )
        session.add(created)
        try:
            await session.flush()
        except IntegrityError as exc:
            logger.info(
                "next_stage_race_lost",
                project_group_id=str(source.project_group_id),
                stage=stage.value,
            )
            raise NextStageRaceError(source.project_group_id, stage.value) from exc

        logger.info(
            "next_stage_created",
            project_group_id=str(source.project_group_id),
            stage=stage.value,
            stage_instance_id=str(created.id),
            stage_due_date=str(created.stage_due_date),
        )
        return created

    async def _migrate_members(
        self,
        session: AsyncSession,
        source: ProjectStageInstance,
        target: ProjectStageInstance,
        user_id: uuid.UUID,
        roles: list[MemberRole],
        stage: Stage,
    ) -> None:
        """Copy every membership forward, preserving roles."""
        result = await session.execute(
            select(ProjectMembership).where(ProjectMembership.stage_instance_id == source.id)
        )
        migrated = 0
        for membership in result.scalars().all():
            role = MemberRole(membership.role)
            progress = migrated_progress_for(role, is_completing_user=membership.user_id == user_id)
            session.add(
                ProjectMembership(
                    stage_instance_id=target.id,
                    user_id=membership.user_id,
                    role=role.value,
                    current_stage=stage.value,
                    progress_status=progress.value if progress else None,
                )
            )
            migrated += 1

        await session.flush()
        logger.info(
            "members_migrated",
            from_instance_id=str(source.id),
            to_instance_id=str(target.id),
            members=migrated,
            completing_roles=[r.value for r in roles],
        )
