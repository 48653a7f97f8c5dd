"""
Membership service: active-membership lookup, member listing, the
guarded role / activation mutations and display-name changes.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskboard.core.guards import can_change_role, can_set_active, can_set_display_name, ensure
from taskboard.core.roles import effective_role
from taskboard.models.org_member import OrgMember
from taskboard.models.organization import Organization
from taskboard.models.user import User
from taskboard_shared.schemas.common import Role

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_active_memberships(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID
) -> list[OrgMember]:
    result = await session.execute(
        select(OrgMember).where(
            OrgMember.user_id == user_id,
            OrgMember.org_id == org_id,
            OrgMember.is_active == True,  # noqa: E712
        )
    )
    return list(result.scalars().all())


async def list_user_orgs(user_id: uuid.UUID, session: AsyncSession) -> list[dict]:
    """Orgs where the user has an active membership, with the effective role."""
    result = await session.execute(
        select(Organization, OrgMember)
        .join(OrgMember, OrgMember.org_id == Organization.id)
        .where(OrgMember.user_id == user_id, OrgMember.is_active == True)  # noqa: E712
        .order_by(OrgMember.joined_at)
    )
    by_org: dict[uuid.UUID, tuple[Organization, list[OrgMember]]] = {}
    for org, membership in result.all():
        by_org.setdefault(org.id, (org, []))[1].append(membership)

    return [
        {"id": org.id, "name": org.name, "slug": org.slug, "role": effective_role(rows)}
        for org, rows in by_org.values()
    ]


async def get_member_or_404(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> OrgMember:
    member = await session.get(OrgMember, (org_id, user_id))
    if not member:
        raise HTTPException(status_code=404, detail="Member not found in this org")
    return member


async def is_active_member(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID
) -> bool:
    return bool(await get_active_memberships(session, user_id, org_id))


async def count_active_admins(session: AsyncSession, org_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count()).select_from(OrgMember).where(
            OrgMember.org_id == org_id,
            OrgMember.role == Role.ADMIN.value,
            OrgMember.is_active == True,  # noqa: E712
        )
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Display labels
# ---------------------------------------------------------------------------


def build_label(
    display_name: Optional[str], email: Optional[str], user_id: Optional[uuid.UUID]
) -> str:
    name = (display_name or "").strip()
    mail = (email or "").strip()
    if name and mail:
        return f"{name} ({mail})"
    if name:
        return name
    if mail:
        return mail
    if user_id:
        return str(user_id)[:8]
    return "Unknown user"


async def member_labels(
    session: AsyncSession, user_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, str]:
    """Display labels for users. Never raises: falls back to the raw id.

    The lookup runs in a savepoint so a failure leaves the caller's
    transaction usable.
    """
    ids = {uid for uid in user_ids if uid is not None}
    labels = {uid: build_label(None, None, uid) for uid in ids}
    if not ids:
        return labels
    try:
        async with session.begin_nested():
            result = await session.execute(select(User).where(User.id.in_(ids)))
            users = list(result.scalars().all())
        for user in users:
            labels[user.id] = build_label(user.display_name, user.email, user.id)
    except SQLAlchemyError as exc:
        log.warning("members.labels_unavailable", error=str(exc), count=len(ids))
    return labels


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


async def list_members(org_id: uuid.UUID, session: AsyncSession) -> list[dict]:
    """All memberships in the org (active and inactive), oldest first."""
    result = await session.execute(
        select(OrgMember).where(OrgMember.org_id == org_id).order_by(OrgMember.joined_at)
    )
    rows = list(result.scalars().all())

    profiles: dict[uuid.UUID, User] = {}
    try:
        async with session.begin_nested():
            users = await session.execute(
                select(User).where(User.id.in_([m.user_id for m in rows]))
            )
            profiles = {u.id: u for u in users.scalars().all()}
    except SQLAlchemyError as exc:
        log.warning("members.profiles_unavailable", org_id=str(org_id), error=str(exc))

    items = []
    for m in rows:
        profile = profiles.get(m.user_id)
        items.append(
            {
                "org_id": m.org_id,
                "user_id": m.user_id,
                "role": m.role,
                "is_active": m.is_active,
                "joined_at": m.joined_at,
                "display_name": build_label(
                    profile.display_name if profile else None,
                    profile.email if profile else None,
                    m.user_id,
                ),
                "email": profile.email if profile else None,
            }
        )
    return items


# ---------------------------------------------------------------------------
# Guarded mutations
# ---------------------------------------------------------------------------


async def set_member_role(
    session: AsyncSession,
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    role: Role,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> OrgMember:
    """Change a member's role. Admin elevation is rejected here."""
    target = await get_member_or_404(session, org_id, user_id)
    admins = await count_active_admins(session, org_id)
    ensure(
        can_change_role(actor_role, target, role, admins),
        org_id=str(org_id),
        target=str(user_id),
        actor=str(actor_id),
    )

    old_role = target.role
    target.role = Role(role).value
    session.add(target)
    await session.flush()

    log.info(
        "member.role_changed",
        org_id=str(org_id),
        user_id=str(user_id),
        from_role=old_role,
        to_role=target.role,
        actor=str(actor_id),
    )
    return target


async def set_member_active(
    session: AsyncSession,
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    active: bool,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> OrgMember:
    """Activate or deactivate a membership."""
    target = await get_member_or_404(session, org_id, user_id)
    admins = await count_active_admins(session, org_id)
    ensure(
        can_set_active(actor_role, actor_id, target, active, admins),
        org_id=str(org_id),
        target=str(user_id),
        actor=str(actor_id),
    )

    target.is_active = active
    session.add(target)
    await session.flush()

    log.info(
        "member.activated" if active else "member.deactivated",
        org_id=str(org_id),
        user_id=str(user_id),
        actor=str(actor_id),
    )
    return target


async def update_display_name(session: AsyncSession, user: User, display_name: str) -> User:
    """Change the caller's own display name."""
    old_name = user.display_name
    user.display_name = display_name
    session.add(user)
    await session.flush()
    log.info("user.display_name_changed", user_id=str(user.id), from_name=old_name, actor=str(user.id))
    return user


async def set_member_display_name(
    session: AsyncSession,
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    display_name: str,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> User:
    """Rename a member of this org on their behalf (Manager+)."""
    ensure(can_set_display_name(actor_role), org_id=str(org_id), target=str(user_id), actor=str(actor_id))
    await get_member_or_404(session, org_id, user_id)
    user = await session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="Member not found in this org")

    old_name = user.display_name
    user.display_name = display_name
    session.add(user)
    await session.flush()
    log.info(
        "user.display_name_changed",
        user_id=str(user_id),
        org_id=str(org_id),
        from_name=old_name,
        actor=str(actor_id),
    )
    return user


async def grant_admin(
    session: AsyncSession,
    org: Organization,
    user: User,
) -> OrgMember:
    """Privileged elevation to admin, bypassing the member-management guards.

    Only reachable from the admin grant script. Creates the membership if
    the user has none in this org.
    """
    member = await session.get(OrgMember, (org.id, user.id))
    if member is None:
        member = OrgMember(org_id=org.id, user_id=user.id, role=Role.ADMIN.value)
    member.role = Role.ADMIN.value
    member.is_active = True
    session.add(member)
    await session.flush()
    log.info("member.admin_granted", org_id=str(org.id), user_id=str(user.id))
    return member
