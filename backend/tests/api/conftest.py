"""API-specific test fixtures."""

import time
import uuid
from contextlib import asynccontextmanager

import fakeredis
import fakeredis.aioredis
import jwt as pyjwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.auth import ROLE_ADMIN, ROLE_USER
from app.core.config import get_settings


def make_token(user_id: uuid.UUID, role: str = ROLE_USER, **claims) -> str:
    """Sign a session token the way the external auth service does."""
    settings = get_settings()
    payload = {"sub": str(user_id), "role": role, "exp": int(time.time()) + 3600, **claims}
    if settings.jwt_issuer:
        payload.setdefault("iss", settings.jwt_issuer)
    return pyjwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: uuid.UUID, role: str = ROLE_USER) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def redis_server():
    """Backing store shared by the app's async client and a test's sync client."""
    return fakeredis.FakeServer()


@pytest.fixture
def redis_reader(redis_server):
    """Synchronous view of the app's Redis, for assertions from plain tests."""
    return fakeredis.FakeRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def api_client(tmp_path, redis_server):
    """FastAPI test client with a throwaway SQLite database and in-memory Redis.

    The database and Redis client are created inside the TestClient's own
    event loop so route handlers can use get_session_factory() and get_redis().
    """
    from fastapi.middleware.cors import CORSMiddleware

    from app.api.routes import api_router
    from app.db import close_db, init_db
    from app.db.seed import seed_component_wattages
    from app.main import register_exception_handlers
    from app.middleware.correlation import setup_correlation_middleware

    db_url = f"sqlite+aiosqlite:///{tmp_path / 'emission_api.db'}"

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        """Test lifespan - initialize DB and Redis in TestClient's event loop."""
        import app.db.base as db_mod
        import app.db.redis as redis_mod

        # Reset globals so init_db creates a fresh engine in THIS loop
        db_mod._engine = None
        db_mod._session_factory = None
        await init_db(db_url)
        await seed_component_wattages()
        redis_mod._redis = fakeredis.aioredis.FakeRedis(server=redis_server, decode_responses=True)
        yield
        redis_mod._redis = None
        await close_db()

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Emission tracker - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_correlation_middleware(app)

    # Exception handlers (needed for debug_id testing)
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    # raise_server_exceptions=False so the 500 handler's body can be asserted
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def register(api_client):
    """Register a profile (with a desktop device) through the API; returns the user id."""

    def _register(name: str, region: str | None = "Singapore", **device) -> uuid.UUID:
        user_id = uuid.uuid4()
        body = {
            "name": name,
            "email": f"{name.lower()}@example.com",
            "organization": "Acme",
            "region": region,
            "device": {
                "category": "desktop",
                "cpu": "AMD Ryzen 5 5600X",
                "gpu": "NVIDIA GeForce RTX 3060",
                "ram": "DDR4",
                "capacity": "16GB",
                "motherboard": "B550",
                "psu": 550,
                **device,
            },
        }
        response = api_client.post("/api/users/me", json=body, headers=auth_headers(user_id))
        assert response.status_code == 201, response.text
        return user_id

    return _register


@pytest.fixture
def admin_headers():
    return auth_headers(uuid.uuid4(), ROLE_ADMIN)


@pytest.fixture
def approved_project(api_client, admin_headers):
    """Submit and approve a project request; returns the first stage instance id."""

    def _create(owner_id: uuid.UUID, title: str = "Carbon Dashboard", stage: str = "Design") -> uuid.UUID:
        submitted = api_client.post(
            "/api/project-requests",
            json={
                "title": title,
                "description": "Track emissions per sprint",
                "stage": stage,
                "stage_duration": 14,
                "project_start_date": "2026-01-05",
                "project_due_date": "2026-02-16",
            },
            headers=auth_headers(owner_id),
        )
        assert submitted.status_code == 201, submitted.text
        request_id = submitted.json()["request_id"]

        approved = api_client.post(
            f"/api/admin/project-requests/{request_id}/approve",
            json={"notes": "ok"},
            headers=admin_headers,
        )
        assert approved.status_code == 200, approved.text
        return uuid.UUID(approved.json()["stage_instance_id"])

    return _create


@pytest.fixture
def auth():
    """``auth(user_id, role="user")`` -> Authorization header dict."""
    return auth_headers
