"""Integration tests for invitations, direct adds and rosters."""

import pytest
from sqlalchemy import func, select

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.db.models.notification import Notification
from app.db.models.project_membership import ProjectMembership
from app.db.models.stage_progress import StageProgressRecord
from app.services.membership_service import MembershipService
from app.services.stage_transition_service import StageTransitionService

pytestmark = pytest.mark.integration


@pytest.fixture
async def project(make_user, make_project):
    owner = await make_user("Olivia")
    instance_id = await make_project(owner, members=[(owner, "project_owner", None)])
    return owner, instance_id


async def _member_rows(session_factory, instance_id, user_id) -> list[ProjectMembership]:
    async with session_factory() as session:
        result = await session.execute(
            select(ProjectMembership).where(
                ProjectMembership.stage_instance_id == instance_id,
                ProjectMembership.user_id == user_id,
            )
        )
        return list(result.scalars().all())


async def test_invite_creates_notification_only(session_factory, project, make_user):
    owner, instance_id = project
    alice = await make_user("Alice")
    service = MembershipService(session_factory)

    notification_id = await service.invite(owner, "ALICE@example.com", instance_id, "Join us")

    async with session_factory() as session:
        notification = await session.get(Notification, notification_id)
    assert notification.recipient_id == alice
    assert notification.type == "project_invitation"
    assert notification.status == "unread"
    assert notification.response is None
    assert await _member_rows(session_factory, instance_id, alice) == []


async def test_invite_unknown_email(session_factory, project):
    owner, instance_id = project
    with pytest.raises(NotFoundError):
        await MembershipService(session_factory).invite(owner, "nobody@example.com", instance_id)


async def test_invite_from_outsider_is_forbidden(session_factory, project, make_user):
    _, instance_id = project
    outsider = await make_user("Mallory")
    await make_user("Alice")
    with pytest.raises(ForbiddenError):
        await MembershipService(session_factory).invite(outsider, "alice@example.com", instance_id)


async def test_accept_creates_single_not_started_membership(session_factory, project, make_user):
    owner, instance_id = project
    alice = await make_user("Alice")
    service = MembershipService(session_factory)
    notification_id = await service.invite(owner, "alice@example.com", instance_id)

    assert await service.respond(notification_id, alice, "accepted") is True
    assert await service.respond(notification_id, alice, "accepted") is False

    rows = await _member_rows(session_factory, instance_id, alice)
    assert len(rows) == 1
    assert rows[0].role == "member"
    assert rows[0].progress_status == "Not Started"

    async with session_factory() as session:
        notification = await session.get(Notification, notification_id)
    assert notification.status == "read"
    assert notification.response == "accepted"


async def test_reject_has_no_membership_effect(session_factory, project, make_user):
    owner, instance_id = project
    alice = await make_user("Alice")
    service = MembershipService(session_factory)
    notification_id = await service.invite(owner, "alice@example.com", instance_id)

    await service.respond(notification_id, alice, "rejected")

    assert await _member_rows(session_factory, instance_id, alice) == []


async def test_changing_answer_conflicts(session_factory, project, make_user):
    owner, instance_id = project
    alice = await make_user("Alice")
    service = MembershipService(session_factory)
    notification_id = await service.invite(owner, "alice@example.com", instance_id)
    await service.respond(notification_id, alice, "rejected")

    with pytest.raises(ConflictError):
        await service.respond(notification_id, alice, "accepted")


async def test_only_recipient_can_respond(session_factory, project, make_user):
    owner, instance_id = project
    await make_user("Alice")
    bob = await make_user("Bob")
    service = MembershipService(session_factory)
    notification_id = await service.invite(owner, "alice@example.com", instance_id)

    with pytest.raises(NotFoundError):
        await service.respond(notification_id, bob, "accepted")


async def test_invalid_response_value(session_factory, project, make_user):
    owner, instance_id = project
    alice = await make_user("Alice")
    service = MembershipService(session_factory)
    notification_id = await service.invite(owner, "alice@example.com", instance_id)

    with pytest.raises(ValidationError):
        await service.respond(notification_id, alice, "maybe")


async def test_add_member_and_duplicate_conflict(session_factory, project, make_user):
    _, instance_id = project
    alice = await make_user("Alice")
    service = MembershipService(session_factory)

    await service.add_member(instance_id, "alice@example.com", "project_leader")
    rows = await _member_rows(session_factory, instance_id, alice)
    assert [(r.role, r.progress_status) for r in rows] == [("project_leader", "Not Started")]

    with pytest.raises(ConflictError):
        await service.add_member(instance_id, "alice@example.com", "member")


async def test_add_member_unknown_user_or_role(session_factory, project):
    _, instance_id = project
    service = MembershipService(session_factory)
    with pytest.raises(NotFoundError):
        await service.add_member(instance_id, "ghost@example.com")
    with pytest.raises(ValidationError):
        await service.add_member(instance_id, "ghost@example.com", "superuser")


async def test_remove_member_keeps_progress_history(session_factory, project, make_user):
    owner, instance_id = project
    alice = await make_user("Alice")
    service = MembershipService(session_factory)
    await service.add_member(instance_id, "alice@example.com")
    await StageTransitionService(session_factory).complete_stage(instance_id, alice)

    assert await service.remove_member(instance_id, alice) == 1
    assert await service.remove_member(instance_id, alice) == 0

    assert await _member_rows(session_factory, instance_id, alice) == []
    async with session_factory() as session:
        history = await session.scalar(
            select(func.count()).select_from(StageProgressRecord).where(StageProgressRecord.user_id == alice)
        )
    assert history == 1


async def test_list_members_with_titles(session_factory, project, make_user):
    owner, instance_id = project
    alice = await make_user("Alice")
    outsider = await make_user("Mallory")
    service = MembershipService(session_factory)
    await service.add_member(instance_id, "alice@example.com")

    members = await service.list_members(instance_id, alice)
    titles = {m.name: m.role_title for m in members}
    assert titles == {"Olivia": "Project Owner (Client)", "Alice": "Team Member"}

    with pytest.raises(ForbiddenError):
        await service.list_members(instance_id, outsider)
    assert len(await service.list_members(instance_id, outsider, is_admin=True)) == 2
