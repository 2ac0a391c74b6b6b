"""Lookups and participation checks shared by the project services."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, NotFoundError
from app.db.models.project_membership import ProjectMembership
from app.db.models.project_stage_instance import ProjectStageInstance
from app.domain.stages import InstanceStatus, MemberRole


async def get_live_instance(
    session: AsyncSession, instance_id: uuid.UUID, *, for_update: bool = False
) -> ProjectStageInstance:
    """Load a non-archived stage instance, optionally row-locked.

    Raises:
        NotFoundError: missing or archived
    """
    stmt = select(ProjectStageInstance).where(
        ProjectStageInstance.id == instance_id,
        ProjectStageInstance.status != InstanceStatus.ARCHIVED.value,
    )
    if for_update:
        stmt = stmt.with_for_update()
    instance = (await session.execute(stmt)).scalar_one_or_none()
    if instance is None:
        raise NotFoundError("Project not found")
    return instance


async def memberships_of(
    session: AsyncSession, instance_id: uuid.UUID, user_id: uuid.UUID
) -> list[ProjectMembership]:
    result = await session.execute(
        select(ProjectMembership).where(
            ProjectMembership.stage_instance_id == instance_id,
            ProjectMembership.user_id == user_id,
        )
    )
    return list(result.scalars().all())


async def participant_roles(
    session: AsyncSession, instance: ProjectStageInstance, user_id: uuid.UUID
) -> list[MemberRole]:
    """Roles the user holds on ``instance``.

    The owning user counts as owner even without an explicit membership row.

    Raises:
        ForbiddenError: the user is neither the owner nor a member
    """
    roles = [MemberRole(m.role) for m in await memberships_of(session, instance.id, user_id)]
    if not roles and instance.user_id == user_id:
        roles = [MemberRole.OWNER]
    if not roles:
        raise ForbiddenError("Not a member of this project")
    return roles
