"""Integration tests for profiles, devices and admin user maintenance."""

import uuid

import pytest
from sqlalchemy import func, select

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.db.models.notification import Notification
from app.db.models.project_membership import ProjectMembership
from app.db.models.project_request import ProjectRequest
from app.db.models.project_stage_instance import ProjectStageInstance
from app.db.models.stage_progress import StageProgressRecord
from app.db.models.user import Device, User
from app.domain.stages import Stage
from app.services.user_service import DeviceSpec, UserService

pytestmark = pytest.mark.integration


def _device(**overrides) -> DeviceSpec:
    fields = {
        "category": "desktop",
        "cpu": "AMD Ryzen 5 5600X",
        "gpu": "NVIDIA GeForce RTX 3060",
        "ram": "DDR4",
        "capacity": "16GB",
        "motherboard": "B550",
        "psu": 550,
    }
    fields.update(overrides)
    return DeviceSpec(**fields)


async def test_register_sets_first_device_current(session_factory):
    service = UserService(session_factory)
    user_id = uuid.uuid4()

    user = await service.register_profile(user_id, "Dana", " Dana@Example.com ", "Acme", "Singapore", _device())

    assert user.email == "dana@example.com"
    devices, current = await service.list_devices(user_id)
    assert len(devices) == 1
    assert current == devices[0].id


async def test_register_twice_conflicts(session_factory):
    service = UserService(session_factory)
    user_id = uuid.uuid4()
    await service.register_profile(user_id, "Dana", "dana@example.com", "Acme", None, _device())

    with pytest.raises(ConflictError):
        await service.register_profile(user_id, "Dana", "other@example.com", "Acme", None, _device())
    with pytest.raises(ConflictError):
        await service.register_profile(uuid.uuid4(), "Dee", "dana@example.com", "Acme", None, _device())


@pytest.mark.parametrize("field", ["cpu", "gpu", "ram", "capacity", "motherboard"])
async def test_all_device_fields_required(session_factory, field):
    with pytest.raises(ValidationError, match=field):
        await UserService(session_factory).register_profile(
            uuid.uuid4(), "Dana", "dana@example.com", "Acme", None, _device(**{field: ""})
        )


async def test_unknown_category(session_factory):
    with pytest.raises(ValidationError):
        await UserService(session_factory).register_profile(
            uuid.uuid4(), "Dana", "dana@example.com", "Acme", None, _device(category="tablet")
        )


async def test_add_and_switch_device(session_factory):
    service = UserService(session_factory)
    user_id = uuid.uuid4()
    await service.register_profile(user_id, "Dana", "dana@example.com", "Acme", None, _device())

    laptop = await service.add_device(user_id, _device(category="laptop", cpu="Apple M1", gpu="Apple M1 GPU"))
    _, current = await service.list_devices(user_id)
    assert current != laptop.id

    await service.set_current_device(user_id, laptop.id)
    _, current = await service.list_devices(user_id)
    assert current == laptop.id


async def test_cannot_select_someone_elses_device(session_factory):
    service = UserService(session_factory)
    dana, eli = uuid.uuid4(), uuid.uuid4()
    await service.register_profile(dana, "Dana", "dana@example.com", "Acme", None, _device())
    await service.register_profile(eli, "Eli", "eli@example.com", "Acme", None, _device())
    eli_devices, _ = await service.list_devices(eli)

    with pytest.raises(NotFoundError):
        await service.set_current_device(dana, eli_devices[0].id)


async def test_profile_not_found(session_factory):
    with pytest.raises(NotFoundError):
        await UserService(session_factory).get_profile(uuid.uuid4())


async def test_update_profile(session_factory):
    service = UserService(session_factory)
    user_id = uuid.uuid4()
    await service.register_profile(user_id, "Dana", "dana@example.com", "Acme", None, _device())

    user = await service.update_profile(user_id, {"name": " Dana K ", "region": "Singapore"})

    assert user.name == "Dana K"
    assert user.region == "Singapore"
    assert user.organization == "Acme"
    assert (await service.get_profile(user_id)).name == "Dana K"


async def test_update_profile_clears_organization(session_factory):
    service = UserService(session_factory)
    user_id = uuid.uuid4()
    await service.register_profile(user_id, "Dana", "dana@example.com", "Acme", None, _device())

    user = await service.update_profile(user_id, {"organization": None})

    assert user.organization == ""


@pytest.mark.parametrize("changes", [{"name": "  "}, {"name": None}, {"email": "new@example.com"}])
async def test_update_profile_rejects_bad_changes(session_factory, changes):
    service = UserService(session_factory)
    user_id = uuid.uuid4()
    await service.register_profile(user_id, "Dana", "dana@example.com", "Acme", None, _device())

    with pytest.raises(ValidationError):
        await service.update_profile(user_id, changes)
    assert (await service.get_profile(user_id)).email == "dana@example.com"


async def test_update_missing_profile(session_factory):
    with pytest.raises(NotFoundError):
        await UserService(session_factory).update_profile(uuid.uuid4(), {"region": "Singapore"})


async def test_list_users_search_and_pages(session_factory, make_user):
    for name in ("Dana", "Daniel", "Eli"):
        await make_user(name)
    service = UserService(session_factory)

    matches = await service.list_users(search="dan")
    assert sorted(u.name for u in matches) == ["Dana", "Daniel"]
    assert {u.name for u in await service.list_users(search="ELI@EXAMPLE")} == {"Eli"}

    first = await service.list_users(page=1, per_page=2)
    second = await service.list_users(page=2, per_page=2)
    assert len(first) == 2
    assert len(second) == 1
    assert {u.id for u in first}.isdisjoint({u.id for u in second})


async def test_delete_user_keeps_history(session_factory, make_user, make_project):
    dana = await make_user(
        "Dana",
        device={
            "category": "laptop",
            "cpu": "Apple M1",
            "gpu": "Apple M1 GPU",
            "ram": "LPDDR4X",
            "capacity": "8GB",
            "motherboard": "Apple",
            "psu": 0,
        },
    )
    olivia = await make_user("Olivia")
    owned = await make_project(dana, members=[(dana, "project_owner", None), (olivia, "member", "In Progress")])
    joined = await make_project(
        olivia, members=[(olivia, "project_owner", None), (dana, "member", "In Progress")], name="Other"
    )
    async with session_factory() as session:
        session.add_all(
            [
                Notification(sender_id=olivia, recipient_id=dana, stage_instance_id=joined),
                Notification(sender_id=dana, recipient_id=olivia, stage_instance_id=owned),
                StageProgressRecord(stage_instance_id=joined, user_id=dana, stage=Stage.DESIGN.value),
                ProjectRequest(user_id=dana, title="Solar", description="Panels", stage=Stage.DESIGN.value),
            ]
        )
        await session.commit()

    deletion = await UserService(session_factory).delete_user(dana)

    assert (deletion.devices, deletion.projects, deletion.notifications) == (1, 1, 2)
    assert deletion.memberships == 3
    async with session_factory() as session:
        assert await session.get(User, dana) is None
        assert await session.get(ProjectStageInstance, owned) is None
        assert await session.get(ProjectStageInstance, joined) is not None
        assert await session.scalar(select(func.count()).select_from(Device)) == 0
        assert await session.scalar(select(func.count()).select_from(Notification)) == 0
        remaining = (await session.execute(select(ProjectMembership))).scalars().all()
        assert [(m.user_id, m.stage_instance_id) for m in remaining] == [(olivia, joined)]
        assert await session.scalar(select(func.count()).select_from(StageProgressRecord)) == 1
        assert await session.scalar(select(func.count()).select_from(ProjectRequest)) == 1


async def test_delete_missing_user(session_factory):
    with pytest.raises(NotFoundError):
        await UserService(session_factory).delete_user(uuid.uuid4())
