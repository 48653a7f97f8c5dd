"""
Member management API endpoints.

GET    /api/v1/orgs/{orgSlug}/members                  - List org members
PATCH  /api/v1/orgs/{orgSlug}/members/{userId}/role     - Change a member's role
PATCH  /api/v1/orgs/{orgSlug}/members/{userId}/active   - Activate / deactivate
PATCH  /api/v1/orgs/{orgSlug}/members/{userId}/display-name - Rename a member
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.auth import AuthenticatedUser, require_member, require_supervisor
from taskboard.core.database import get_session
from taskboard.services import members as member_service
from taskboard_shared.schemas.organizations import (
    DisplayNameUpdate,
    MemberActiveUpdate,
    MemberListResponse,
    MemberRead,
    MemberRoleUpdate,
)

router = APIRouter()


async def _member_read(session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID) -> MemberRead:
    items = await member_service.list_members(org_id, session)
    return next(MemberRead(**item) for item in items if item["user_id"] == user_id)


@router.get("", response_model=MemberListResponse, tags=["Members"])
async def list_members(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List all memberships of the org, active and inactive."""
    items = await member_service.list_members(auth.org_id, session)
    admins = await member_service.count_active_admins(session, auth.org_id)
    return MemberListResponse(
        data=[MemberRead(**item) for item in items],
        active_admin_count=admins,
    )


@router.patch("/{userId}/role", response_model=MemberRead, tags=["Members"])
async def change_role(
    userId: uuid.UUID,
    body: MemberRoleUpdate,
    auth: AuthenticatedUser = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    """Change a member's role (Manager+). Elevation to admin is not possible here."""
    await member_service.set_member_role(
        session, auth.org_id, userId, body.role, auth.role, auth.user_id
    )
    return await _member_read(session, auth.org_id, userId)


@router.patch("/{userId}/active", response_model=MemberRead, tags=["Members"])
async def change_active(
    userId: uuid.UUID,
    body: MemberActiveUpdate,
    auth: AuthenticatedUser = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    """Activate or deactivate a membership (Manager+)."""
    await member_service.set_member_active(
        session, auth.org_id, userId, body.is_active, auth.role, auth.user_id
    )
    return await _member_read(session, auth.org_id, userId)


@router.patch("/{userId}/display-name", response_model=MemberRead, tags=["Members"])
async def change_display_name(
    userId: uuid.UUID,
    body: DisplayNameUpdate,
    auth: AuthenticatedUser = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    """Set a member's display name on their behalf (Manager+)."""
    await member_service.set_member_display_name(
        session, auth.org_id, userId, body.display_name, auth.role, auth.user_id
    )
    return await _member_read(session, auth.org_id, userId)
