"""
Invite service: single-use links that let a signed-in user join an org.

Invites are created by managers and admins and always join as ``member``.
An invite bound to an email address can only be accepted by that account.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskboard.core.guards import can_accept_invite, can_invite, ensure
from taskboard.models.org_invite import OrgInvite
from taskboard.models.org_member import OrgMember
from taskboard.models.organization import Organization
from taskboard.models.user import User
from taskboard_shared.schemas.common import Role

log = structlog.get_logger()


def generate_invite_token() -> str:
    return secrets.token_urlsafe(32)


async def create_invite(
    session: AsyncSession,
    org_id: uuid.UUID,
    email: Optional[str],
    now: datetime,
    ttl_hours: int,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> OrgInvite:
    ensure(can_invite(actor_role), org_id=str(org_id), actor=str(actor_id))
    invite = OrgInvite(
        org_id=org_id,
        token=generate_invite_token(),
        email=email.lower() if email else None,
        created_by=actor_id,
        created_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
    )
    session.add(invite)
    await session.flush()
    log.info("invite.created", invite_id=str(invite.id), org_id=str(org_id), actor=str(actor_id))
    return invite


async def list_invites(
    session: AsyncSession, org_id: uuid.UUID, actor_role: Optional[Role], actor_id: uuid.UUID
) -> list[OrgInvite]:
    ensure(can_invite(actor_role), org_id=str(org_id), actor=str(actor_id))
    result = await session.execute(
        select(OrgInvite).where(OrgInvite.org_id == org_id).order_by(OrgInvite.created_at.desc())
    )
    return list(result.scalars().all())


async def revoke_invite(
    session: AsyncSession,
    org_id: uuid.UUID,
    invite_id: uuid.UUID,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> None:
    ensure(can_invite(actor_role), org_id=str(org_id), actor=str(actor_id))
    invite = await session.get(OrgInvite, invite_id)
    if not invite or invite.org_id != org_id:
        raise HTTPException(status_code=404, detail="Invite not found")
    await session.delete(invite)
    await session.flush()
    log.info("invite.revoked", invite_id=str(invite_id), org_id=str(org_id), actor=str(actor_id))


async def accept_invite(
    session: AsyncSession, token: str, user: User, now: datetime
) -> tuple[Organization, OrgMember]:
    """Join the invite's org as a member and mark the invite used."""
    result = await session.execute(select(OrgInvite).where(OrgInvite.token == token))
    invite = result.scalar_one_or_none()
    if invite is None:
        raise HTTPException(status_code=404, detail="Invite not found")

    membership = await session.get(OrgMember, (invite.org_id, user.id))
    ensure(
        can_accept_invite(invite, user.email, now, membership),
        invite_id=str(invite.id),
        user_id=str(user.id),
    )

    member = OrgMember(org_id=invite.org_id, user_id=user.id, role=Role.MEMBER.value)
    invite.accepted_by = user.id
    invite.accepted_at = now
    session.add(member)
    session.add(invite)
    await session.flush()

    org = await session.get(Organization, invite.org_id)
    log.info("invite.accepted", invite_id=str(invite.id), org_id=str(invite.org_id), user_id=str(user.id))
    return org, member
