"""MembershipService: invitations, direct admin assignment, removal and rosters."""

import uuid
from dataclasses import dataclass
from typing import Literal

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.db.models.notification import Notification
from app.db.models.project_membership import ProjectMembership
from app.db.models.user import User
from app.db.transaction import run_transaction
from app.domain.stages import MemberRole, initial_progress_for
from app.services.project_access import get_live_instance, memberships_of, participant_roles

logger = structlog.get_logger(__name__)

INVITATION_TYPE = "project_invitation"

InvitationResponse = Literal["accepted", "rejected"]


@dataclass
class MemberView:
    user_id: uuid.UUID
    name: str | None
    email: str | None
    role: str
    role_title: str
    progress_status: str | None
    current_stage: str | None


async def _user_by_email(session: AsyncSession, email: str) -> User:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


def _new_membership(instance, user_id: uuid.UUID, role: MemberRole) -> ProjectMembership:
    progress = initial_progress_for(role)
    return ProjectMembership(
        stage_instance_id=instance.id,
        user_id=user_id,
        role=role.value,
        current_stage=instance.stage,
        progress_status=progress.value if progress else None,
    )


class MembershipService:
    """Service layer for how users join and leave a project."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def invite(
        self,
        sender_id: uuid.UUID,
        recipient_email: str,
        instance_id: uuid.UUID,
        message: str = "",
    ) -> uuid.UUID:
        """Create an invitation notification. No membership is created yet.

        Raises:
            NotFoundError: project or recipient unknown
            ForbiddenError: sender is not a participant
            ConflictError: recipient is already on the project
        """

        async def work(session: AsyncSession) -> uuid.UUID:
            instance = await get_live_instance(session, instance_id)
            await participant_roles(session, instance, sender_id)
            recipient = await _user_by_email(session, recipient_email)
            if await memberships_of(session, instance.id, recipient.id):
                raise ConflictError("User is already a member of this project")

            notification = Notification(
                id=uuid.uuid4(),
                sender_id=sender_id,
                recipient_id=recipient.id,
                stage_instance_id=instance.id,
                type=INVITATION_TYPE,
                message=message,
                status="unread",
            )
            session.add(notification)
            return notification.id

        notification_id = await run_transaction(self.session_factory, work, operation="invite")
        logger.info(
            "invitation_sent",
            notification_id=str(notification_id),
            stage_instance_id=str(instance_id),
            sender_id=str(sender_id),
        )
        return notification_id

    async def respond(
        self, notification_id: uuid.UUID, recipient_id: uuid.UUID, response: InvitationResponse
    ) -> bool:
        """Record the recipient's answer; an acceptance adds a member row.

        Answering again with the same response is a no-op. Returns True when
        this call changed state.

        Raises:
            ValidationError: response is not accepted/rejected
            NotFoundError: notification not addressed to the caller, or project gone
            ConflictError: invitation already answered differently
        """
        if response not in ("accepted", "rejected"):
            raise ValidationError("response must be 'accepted' or 'rejected'")

        async def work(session: AsyncSession) -> bool:
            result = await session.execute(
                select(Notification)
                .where(
                    Notification.id == notification_id,
                    Notification.recipient_id == recipient_id,
                    Notification.type == INVITATION_TYPE,
                )
                .with_for_update()
            )
            notification = result.scalar_one_or_none()
            if notification is None:
                raise NotFoundError("Invitation not found")

            if notification.response is not None:
                if notification.response == response:
                    return False
                raise ConflictError(f"Invitation already {notification.response}")

            notification.status = "read"
            notification.response = response

            if response == "accepted":
                instance = await get_live_instance(session, notification.stage_instance_id)
                if not await memberships_of(session, instance.id, recipient_id):
                    session.add(_new_membership(instance, recipient_id, MemberRole.MEMBER))
            return True

        changed = await run_transaction(self.session_factory, work, operation="respond_to_invitation")
        logger.info(
            "invitation_accepted" if response == "accepted" else "invitation_rejected",
            notification_id=str(notification_id),
            recipient_id=str(recipient_id),
            changed=changed,
        )
        return changed

    async def add_member(self, instance_id: uuid.UUID, user_email: str, role: str = "member") -> uuid.UUID:
        """Admin direct-add. Returns the new membership id.

        Raises:
            ValidationError: unknown role
            NotFoundError: project or user unknown
            ConflictError: user already holds a membership on the instance
        """
        try:
            member_role = MemberRole(role)
        except ValueError as exc:
            raise ValidationError(f"Unknown role: {role}") from exc

        async def work(session: AsyncSession) -> uuid.UUID:
            instance = await get_live_instance(session, instance_id)
            user = await _user_by_email(session, user_email)
            if await memberships_of(session, instance.id, user.id):
                raise ConflictError("User is already a member of this project")

            membership = _new_membership(instance, user.id, member_role)
            membership.id = uuid.uuid4()
            session.add(membership)
            return membership.id

        membership_id = await run_transaction(self.session_factory, work, operation="add_member")
        logger.info(
            "member_added",
            stage_instance_id=str(instance_id),
            membership_id=str(membership_id),
            role=member_role.value,
        )
        return membership_id

    async def remove_member(self, instance_id: uuid.UUID, user_id: uuid.UUID) -> int:
        """Delete every membership row of ``user_id`` on the instance.

        Progress history is left alone. Returns the number of rows removed.
        """

        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                delete(ProjectMembership).where(
                    ProjectMembership.stage_instance_id == instance_id,
                    ProjectMembership.user_id == user_id,
                )
            )
            return result.rowcount or 0

        removed = await run_transaction(self.session_factory, work, operation="remove_member")
        logger.info("member_removed", stage_instance_id=str(instance_id), user_id=str(user_id), rows=removed)
        return removed

    async def list_members(self, instance_id: uuid.UUID, caller_id: uuid.UUID, is_admin: bool = False) -> list[MemberView]:
        """Roster of the instance with human role titles.

        Raises:
            NotFoundError: instance missing or archived
            ForbiddenError: caller is neither participant nor admin
        """
        async with self.session_factory() as session:
            instance = await get_live_instance(session, instance_id)
            if not is_admin:
                try:
                    await participant_roles(session, instance, caller_id)
                except ForbiddenError:
                    raise ForbiddenError("Not authorized to view this project's members")

            result = await session.execute(
                select(ProjectMembership, User)
                .outerjoin(User, User.id == ProjectMembership.user_id)
                .where(ProjectMembership.stage_instance_id == instance.id)
                .order_by(ProjectMembership.joined_at)
            )
            members = []
            for membership, user in result.all():
                role = MemberRole(membership.role)
                members.append(
                    MemberView(
                        user_id=membership.user_id,
                        name=user.name if user else None,
                        email=user.email if user else None,
                        role=role.value,
                        role_title=role.display_title,
                        progress_status=membership.progress_status,
                        current_stage=membership.current_stage,
                    )
                )
            return members
