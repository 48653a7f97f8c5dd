"""
Shared fixtures: an in-memory SQLite database, seeded org/users, and an
HTTP client wired to the real app with the session dependency overridden.
"""

from __future__ import annotations

import os

# Settings are read once at import time; point them at SQLite before the app loads.
os.environ.setdefault("TB_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TB_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

import uuid
from dataclasses import dataclass
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import taskboard.models  # noqa: F401  populate metadata
from taskboard.core.auth import create_jwt
from taskboard.core.database import get_session
from taskboard.main import app as taskboard_app
from taskboard.models.org_member import OrgMember
from taskboard.models.organization import Organization
from taskboard.models.project import Project
from taskboard.models.user import User
from taskboard_shared.schemas.common import Role


@dataclass
class Seed:
    org_id: uuid.UUID
    org_slug: str
    project_id: uuid.UUID
    admin_id: uuid.UUID
    manager_id: uuid.UUID
    member_id: uuid.UUID
    other_member_id: uuid.UUID
    outsider_id: uuid.UUID


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


async def add_user(session: AsyncSession, name: str, email: str | None = None) -> User:
    user = User(id=uuid.uuid4(), email=email or f"{name.lower()}@example.com", display_name=name)
    session.add(user)
    await session.flush()
    return user


async def add_member(
    session: AsyncSession,
    org: Organization,
    user: User,
    role: Role,
    active: bool = True,
) -> OrgMember:
    member = OrgMember(org_id=org.id, user_id=user.id, role=role.value, is_active=active)
    session.add(member)
    await session.flush()
    return member


@pytest.fixture
async def seed(session: AsyncSession) -> Seed:
    """One org with an admin, a manager, two members and a user from elsewhere."""
    org = Organization(id=uuid.uuid4(), name="Acme", slug="acme")
    session.add(org)
    await session.flush()

    admin = await add_user(session, "Ada")
    manager = await add_user(session, "Max")
    member = await add_user(session, "Mia")
    other = await add_user(session, "Otto")
    outsider = await add_user(session, "Olga")

    await add_member(session, org, admin, Role.ADMIN)
    await add_member(session, org, manager, Role.MANAGER)
    await add_member(session, org, member, Role.MEMBER)
    await add_member(session, org, other, Role.MEMBER)

    project = Project(id=uuid.uuid4(), org_id=org.id, name="Launch")
    session.add(project)
    await session.commit()

    return Seed(
        org_id=org.id,
        org_slug=org.slug,
        project_id=project.id,
        admin_id=admin.id,
        manager_id=manager.id,
        member_id=member.id,
        other_member_id=other.id,
        outsider_id=outsider.id,
    )


@pytest.fixture
async def client(session_factory, monkeypatch):
    """AsyncClient against the real app; each request gets its own session."""

    async def _get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    monkeypatch.setattr("taskboard.core.auth.is_jwt_revoked", AsyncMock(return_value=False))
    monkeypatch.setattr("taskboard.api.v1.auth.revoke_jwt", AsyncMock())

    taskboard_app.dependency_overrides[get_session] = _get_session
    async with AsyncClient(transport=ASGITransport(app=taskboard_app), base_url="http://test") as ac:
        yield ac
    taskboard_app.dependency_overrides.clear()


def bearer(user_id: uuid.UUID) -> dict[str, str]:
    token, _ = create_jwt(user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a user id."""
    return bearer
