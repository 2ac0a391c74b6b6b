"""Shared test fixtures for all test groups."""

import uuid
from datetime import date

import fakeredis.aioredis
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.db.base import Base


@pytest.fixture
def db_url(tmp_path) -> str:
    """File-backed SQLite database, one per test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'emission_test.db'}"


@pytest.fixture
async def engine(db_url) -> AsyncEngine:
    """Create the schema and point the global session factory at it.

    Services built from ``get_session_factory()`` and services given the
    ``session_factory`` fixture share the same database.
    """
    import app.db.base as db_mod

    engine = create_async_engine(db_url, echo=False)

    # Import all models so metadata is populated
    import app.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    from app.db.seed import seed_component_wattages

    await seed_component_wattages()

    yield engine

    db_mod._engine = None
    db_mod._session_factory = None
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis():
    """In-memory Redis with the same decoding as the shared pool."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def make_user(session_factory):
    """Insert a User (and optionally a current Device) directly."""
    from app.db.models.user import Device, User

    async def _make(
        name: str,
        email: str | None = None,
        region: str | None = None,
        device: dict | None = None,
    ):
        user_id = uuid.uuid4()
        async with session_factory() as session:
            user = User(
                id=user_id,
                name=name,
                email=email or f"{name.lower()}@example.com",
                organization="Acme",
                region=region,
            )
            session.add(user)
            await session.flush()
            if device is not None:
                row = Device(id=uuid.uuid4(), user_id=user_id, **device)
                session.add(row)
                await session.flush()
                user.current_device_id = row.id
            await session.commit()
        return user_id

    return _make


@pytest.fixture
def make_project(session_factory):
    """Insert a first-stage instance with explicit memberships.

    ``members`` is a list of (user_id, role, progress_status) tuples.
    """
    from app.db.models.project_membership import ProjectMembership
    from app.db.models.project_stage_instance import ProjectStageInstance
    from app.domain.stages import Stage

    async def _make(owner_id, members=(), stage: Stage = Stage.DESIGN, name: str = "Carbon Dashboard"):
        instance_id = uuid.uuid4()
        async with session_factory() as session:
            session.add(
                ProjectStageInstance(
                    id=instance_id,
                    user_id=owner_id,
                    project_group_id=instance_id,
                    organization="Acme",
                    name=name,
                    description="Track emissions per sprint",
                    stage=stage.value,
                    status="In Progress",
                    stage_duration=14,
                    stage_start_date=date(2026, 1, 5),
                    stage_due_date=date(2026, 1, 19),
                    project_start_date=date(2026, 1, 5),
                    project_due_date=date(2026, 2, 16),
                    session_duration=0,
                    carbon_emit=0,
                )
            )
            await session.flush()
            for user_id, role, progress in members:
                session.add(
                    ProjectMembership(
                        stage_instance_id=instance_id,
                        user_id=user_id,
                        role=role,
                        current_stage=stage.value,
                        progress_status=progress,
                    )
                )
            await session.commit()
        return instance_id

    return _make
