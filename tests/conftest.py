"""
Shared fixtures: in-memory SQLite database, HTTP client and user/org/project
factories.

Settings are read once per process, so the environment is prepared before
anything from ``tasklane`` is imported.
"""

from __future__ import annotations

import os

os.environ["TL_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["TL_BCRYPT_ROUNDS"] = "4"
os.environ["TL_ACCESS_TOKEN_SECRET"] = "test-access-secret-0123456789abcdef"
os.environ["TL_REFRESH_TOKEN_SECRET"] = "test-refresh-secret-0123456789abcdef"
os.environ["TL_LOG_FORMAT"] = "text"

import uuid  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import tasklane.models  # noqa: E402,F401
from tasklane.core.database import get_session  # noqa: E402
from tasklane.main import app  # noqa: E402
from tasklane.models.organization_member import OrganizationMember  # noqa: E402
from tasklane_shared.schemas.common import OrgRole  # noqa: E402

PASSWORD = "Sup3rSecret"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture
def register_user(client):
    """Register through the API. Returns a dict with id, email, tokens and headers."""

    async def _register(email: str | None = None, name: str = "Test User") -> dict:
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        resp = await client.post(
            "/auth/register",
            json={"email": email, "password": PASSWORD, "name": name},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return {
            "id": data["user"]["id"],
            "email": data["user"]["email"],
            "access_token": data["tokens"]["access_token"],
            "refresh_token": data["tokens"]["refresh_token"],
            "headers": bearer(data["tokens"]["access_token"]),
        }

    return _register


@pytest.fixture
def create_org(client):
    async def _create(owner: dict, name: str = "Acme Corp", slug: str | None = None) -> dict:
        body = {"name": name}
        if slug:
            body["slug"] = slug
        resp = await client.post("/api/v1/orgs", json=body, headers=owner["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create


@pytest.fixture
def add_org_member(session_factory):
    """Insert a membership row directly (there is no invitation flow)."""

    async def _add(org: dict, user: dict, role: OrgRole = OrgRole.MEMBER) -> None:
        async with session_factory() as session:
            session.add(
                OrganizationMember(
                    org_id=uuid.UUID(org["id"]),
                    user_id=uuid.UUID(user["id"]),
                    role=role,
                )
            )
            await session.commit()

    return _add


@pytest.fixture
def create_project(client):
    async def _create(org: dict, actor: dict, name: str = "Website", slug: str | None = None) -> dict:
        body = {"name": name}
        if slug:
            body["slug"] = slug
        resp = await client.post(
            f"/api/v1/orgs/{org['slug']}/projects", json=body, headers=actor["headers"]
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create
