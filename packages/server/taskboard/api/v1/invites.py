"""
Org invite endpoints.

GET    /api/v1/orgs/{orgSlug}/invites              - List invites (Manager+)
POST   /api/v1/orgs/{orgSlug}/invites              - Create an invite link (Manager+)
DELETE /api/v1/orgs/{orgSlug}/invites/{inviteId}   - Revoke an invite (Manager+)
POST   /api/v1/invites/{token}/accept              - Join the org as a member
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.auth import AuthenticatedUser, get_current_user, require_member
from taskboard.core.config import get_settings
from taskboard.core.database import get_session
from taskboard.models.user import User
from taskboard.services import invites as invite_service
from taskboard_shared.schemas.organizations import (
    InviteCreate,
    InviteListResponse,
    InviteRead,
    OrgListItem,
)

settings = get_settings()

# Mounted under /orgs/{orgSlug}/invites
router = APIRouter()

# Mounted at the API root; the caller is not a member yet
router_global = APIRouter()


@router.get("", response_model=InviteListResponse)
async def list_invites(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    invites = await invite_service.list_invites(session, auth.org_id, auth.role, auth.user_id)
    return InviteListResponse(data=[InviteRead.model_validate(i) for i in invites])


@router.post("", response_model=InviteRead, status_code=201)
async def create_invite(
    body: InviteCreate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Create a single-use invite, optionally bound to one email address."""
    invite = await invite_service.create_invite(
        session,
        auth.org_id,
        body.email,
        now=datetime.now(timezone.utc),
        ttl_hours=settings.invite_ttl_hours,
        actor_role=auth.role,
        actor_id=auth.user_id,
    )
    return InviteRead.model_validate(invite)


@router.delete("/{inviteId}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_invite(
    inviteId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    await invite_service.revoke_invite(session, auth.org_id, inviteId, auth.role, auth.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router_global.post("/invites/{token}/accept", response_model=OrgListItem, tags=["Invites"])
async def accept_invite(
    token: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Accept an invite as the signed-in user. Always joins as member."""
    org, member = await invite_service.accept_invite(
        session, token, user, now=datetime.now(timezone.utc)
    )
    return OrgListItem(id=org.id, name=org.name, slug=org.slug, role=member.role)
