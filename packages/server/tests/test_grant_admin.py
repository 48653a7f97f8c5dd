"""
Tests for the privileged admin grant script.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from sqlmodel import select

from taskboard.models.org_member import OrgMember
from taskboard.models.organization import Organization
from taskboard.models.user import User
from taskboard.scripts import grant_admin


@pytest.fixture
def script_db(session_factory, monkeypatch):
    @asynccontextmanager
    async def _context():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    monkeypatch.setattr(grant_admin, "get_session_context", _context)
    monkeypatch.setattr(grant_admin, "init_db", AsyncMock())


async def test_elevates_existing_member(script_db, seed, session_factory):
    await grant_admin.run("acme", "max@example.com")

    async with session_factory() as s:
        member = await s.get(OrgMember, (seed.org_id, seed.manager_id))
        assert member.role == "admin"


async def test_bootstraps_org_and_user(script_db, session_factory):
    await grant_admin.run(
        "fresh-org", "boss@example.com", create_org=True, password="longenough", display_name="Boss"
    )

    async with session_factory() as s:
        org = (await s.execute(select(Organization).where(Organization.slug == "fresh-org"))).scalar_one()
        user = (await s.execute(select(User).where(User.email == "boss@example.com"))).scalar_one()
        member = await s.get(OrgMember, (org.id, user.id))
        assert member.role == "admin"
        assert user.display_name == "Boss"


async def test_missing_org_without_flag_exits(script_db):
    with pytest.raises(SystemExit):
        await grant_admin.run("nowhere", "boss@example.com")


def test_invalid_slug_exits_with_usage_error():
    with pytest.raises(SystemExit) as exc_info:
        grant_admin.main(["--org", "Bad Slug!", "--email", "x@example.com", "--create-org", "--password", "longenough"])
    assert exc_info.value.code == 2
