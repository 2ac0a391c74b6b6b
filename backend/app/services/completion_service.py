"""CompletionEvaluator: decides when every contributor has finished a stage."""

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.project_membership import ProjectMembership
from app.db.models.project_stage_instance import ProjectStageInstance
from app.domain.completion import ContributorTally, tally_contributors
from app.domain.stages import InstanceStatus, MemberRole

logger = structlog.get_logger(__name__)


@dataclass
class CompletionVerdict:
    complete: bool
    completed_members: int | None = None
    total_members: int | None = None


class CompletionEvaluator:
    """Runs inside the caller's transaction; never commits."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def tally(self, instance_id: uuid.UUID) -> ContributorTally:
        result = await self.session.execute(
            select(ProjectMembership.progress_status).where(
                ProjectMembership.stage_instance_id == instance_id,
                ProjectMembership.role != MemberRole.OWNER.value,
            )
        )
        return tally_contributors(result.scalars().all())

    async def evaluate(self, instance: ProjectStageInstance) -> CompletionVerdict:
        """Evaluate completion and mark the instance Complete when everyone is done.

        A Complete instance is terminal: members are not re-read and the
        status is never written again.
        """
        if instance.status == InstanceStatus.COMPLETE.value:
            return CompletionVerdict(complete=True)

        tally = await self.tally(instance.id)
        if tally.all_completed:
            instance.status = InstanceStatus.COMPLETE.value
            await self.session.flush()
            logger.info(
                "stage_instance_completed",
                stage_instance_id=str(instance.id),
                stage=instance.stage,
                contributors=tally.total,
            )

        return CompletionVerdict(
            complete=tally.all_completed,
            completed_members=tally.completed,
            total_members=tally.total,
        )
