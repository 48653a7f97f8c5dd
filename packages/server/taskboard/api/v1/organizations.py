"""
Organization API endpoints.

GET    /api/v1/orgs              - List orgs the caller is an active member of
GET    /api/v1/orgs/{orgSlug}    - Org details with the caller's effective role
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.auth import AuthenticatedUser, get_current_user, require_member
from taskboard.core.database import get_session
from taskboard.models.user import User
from taskboard.services import members as member_service
from taskboard_shared.schemas.organizations import OrgListItem, OrgListResponse

# ---------------------------------------------------------------------------
# Non-org-scoped routes (no orgSlug in path)
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("/orgs", response_model=OrgListResponse, tags=["Organizations"])
async def list_orgs(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user belongs to."""
    items = await member_service.list_user_orgs(user.id, session)
    return OrgListResponse(data=items)


# ---------------------------------------------------------------------------
# Org-scoped routes (mounted under /orgs/{orgSlug})
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("", response_model=OrgListItem)
async def get_org(
    orgSlug: str,
    auth: AuthenticatedUser = Depends(require_member),
):
    """Get org details. Orgs without an active membership are a 404."""
    return OrgListItem(id=auth.org.id, name=auth.org.name, slug=auth.org.slug, role=auth.role)
