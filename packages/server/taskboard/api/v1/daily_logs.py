"""
Daily work log endpoints.

Lifecycle: draft → pending (submit) → approved | rejected (review)
- Owners edit their own draft or rejected logs; saving a rejected log reopens it.
- Managers and admins review pending logs of other members.
- Items of an approved log can be archived into the completion history.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.auth import AuthenticatedUser, require_member, require_supervisor
from taskboard.core.database import get_session
from taskboard.services import daily_logs as log_service
from taskboard_shared.schemas.daily_logs import DailyLogRead, DailyLogReview, DailyLogSave, WeekLogsResponse
from taskboard_shared.schemas.reports import CompletionRecordRead

router = APIRouter()


# ---------------------------------------------------------------------------
# Collections (declared before /{log_date} so the paths don't collide)
# ---------------------------------------------------------------------------


@router.get("/pending", response_model=List[DailyLogRead])
async def list_pending(
    auth: AuthenticatedUser = Depends(require_supervisor),
    session: AsyncSession = Depends(get_session),
):
    """Logs awaiting review (Manager+), oldest first."""
    logs = await log_service.list_pending_logs(session, auth.org_id)
    return [await log_service.to_daily_log_read(session, d) for d in logs]


@router.get("/week/{day}", response_model=WeekLogsResponse)
async def week_view(
    day: date,
    user_id: Optional[uuid.UUID] = None,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Status of each day's log in the Monday-start week containing ``day``."""
    owner = user_id or auth.user_id
    log_service.ensure_can_view(auth.role, auth.user_id, owner)
    start, end, logs = await log_service.week_logs(session, auth.org_id, owner, day)
    return WeekLogsResponse(week_start=start, week_end=end, logs=logs)


# ---------------------------------------------------------------------------
# A single day's log
# ---------------------------------------------------------------------------


@router.get("/{log_date}", response_model=DailyLogRead)
async def get_log(
    log_date: date,
    user_id: Optional[uuid.UUID] = None,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """The caller's log for a date. Supervisors may pass ``user_id``."""
    owner = user_id or auth.user_id
    log_service.ensure_can_view(auth.role, auth.user_id, owner)
    daily_log = await log_service.get_daily_log(session, auth.org_id, owner, log_date)
    if daily_log is None:
        raise HTTPException(status_code=404, detail="Daily log not found")
    return await log_service.to_daily_log_read(session, daily_log)


@router.put("/{log_date}", response_model=DailyLogRead)
async def save_log(
    log_date: date,
    body: DailyLogSave,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    daily_log = await log_service.save_daily_log(session, auth.org_id, auth.user_id, log_date, body)
    return await log_service.to_daily_log_read(session, daily_log)


@router.post("/{log_date}/submit", response_model=DailyLogRead)
async def submit_log(
    log_date: date,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Submit a draft log with at least one item for review."""
    daily_log = await log_service.submit_daily_log(session, auth.org_id, auth.user_id, log_date)
    return await log_service.to_daily_log_read(session, daily_log)


# ---------------------------------------------------------------------------
# Review and archive (addressed by log id)
# ---------------------------------------------------------------------------


@router.post("/{log_id}/review", response_model=DailyLogRead)
async def review_log(
    log_id: uuid.UUID,
    body: DailyLogReview,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    daily_log = await log_service.review_daily_log(
        session, auth.org_id, log_id, body.approved, body.comments, auth.role, auth.user_id
    )
    return await log_service.to_daily_log_read(session, daily_log)


@router.post(
    "/{log_id}/items/{item_id}/archive",
    response_model=CompletionRecordRead,
    status_code=201,
)
async def archive_item(
    log_id: uuid.UUID,
    item_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Move an item of an approved log into the completion history."""
    return await log_service.archive_daily_item(
        session, auth.org_id, log_id, item_id, auth.role, auth.user_id
    )
