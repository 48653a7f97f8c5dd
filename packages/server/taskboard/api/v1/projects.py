"""
Project endpoints: list, create, get, update, delete.

Projects are the container tasks and completion reports hang off.
Creating and editing projects is limited to managers and admins.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.auth import AuthenticatedUser, require_member
from taskboard.core.database import get_session
from taskboard.services import projects as project_service
from taskboard_shared.schemas.common import ProjectStatus
from taskboard_shared.schemas.projects import ProjectCreate, ProjectRead, ProjectUpdate

router = APIRouter()


@router.get("/", response_model=List[ProjectRead])
async def list_projects(
    status: Optional[ProjectStatus] = None,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List projects in the org, newest first."""
    return await project_service.list_projects(session, auth.org_id, status)


@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Create a project (Manager+)."""
    return await project_service.create_project(session, body, auth.org_id, auth.role, auth.user_id)


@router.get("/{projectId}", response_model=ProjectRead)
async def get_project(
    projectId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await project_service.get_project_or_404(session, projectId, auth.org_id)


@router.patch("/{projectId}", response_model=ProjectRead)
async def update_project(
    projectId: uuid.UUID,
    body: ProjectUpdate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Update project fields, including marking it completed (Manager+)."""
    project = await project_service.get_project_or_404(session, projectId, auth.org_id)
    return await project_service.update_project(session, project, body, auth.role, auth.user_id)


@router.delete("/{projectId}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    projectId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Delete a project and its tasks (Manager+)."""
    project = await project_service.get_project_or_404(session, projectId, auth.org_id)
    await project_service.delete_project(session, project, auth.role, auth.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
