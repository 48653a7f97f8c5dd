"""
Dashboard and completion report endpoints.

GET /api/v1/orgs/{orgSlug}/dashboard               - Summary, action lists, workload
GET /api/v1/orgs/{orgSlug}/completions/tasks       - Done tasks in a date range
GET /api/v1/orgs/{orgSlug}/completions/projects    - Completion rate per project
GET /api/v1/orgs/{orgSlug}/completions/history     - Archived daily items
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.auth import AuthenticatedUser, require_member, require_supervisor
from taskboard.core.config import get_settings
from taskboard.core.database import get_session
from taskboard.services import reports as report_service
from taskboard_shared.schemas.common import TaskScope
from taskboard_shared.schemas.reports import (
    CompletionRecordRead,
    DashboardRead,
    ProjectCompletionRead,
    TaskCompletionRead,
)

settings = get_settings()

dashboard_router = APIRouter()
completions_router = APIRouter()


@dashboard_router.get("", response_model=DashboardRead)
async def dashboard(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Dashboard for the caller's scoped tasks. Workload is included for Manager+."""
    return await report_service.build_dashboard(
        session,
        auth.org_id,
        auth.role,
        auth.user_id,
        now=datetime.now(timezone.utc),
        tz=settings.tzinfo,
        list_limit=settings.dashboard_list_limit,
        horizon_days=settings.due_soon_days,
    )


@completions_router.get("/tasks", response_model=List[TaskCompletionRead])
async def task_completions(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    scope: TaskScope = TaskScope.ALL,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Done tasks, newest first. Members always get their own tasks only."""
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=422, detail="date_from must not be after date_to")
    return await report_service.task_completions(
        session,
        auth.org_id,
        auth.role,
        auth.user_id,
        settings.tzinfo,
        date_from=date_from,
        date_to=date_to,
        scope=scope,
    )


@completions_router.get("/projects", response_model=List[ProjectCompletionRead])
async def project_completions(
    auth: AuthenticatedUser = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    return await report_service.project_completion(session, auth.org_id)


@completions_router.get("/history", response_model=List[CompletionRecordRead])
async def completion_history(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await report_service.completion_history(session, auth.org_id, auth.role, auth.user_id)
