"""
Daily work log service.

Lifecycle: draft -> pending (submitted) -> approved | rejected.
A rejected log can be edited again, which returns it to draft. Items of an
approved log are moved into the completion history one by one.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskboard.core.guards import (
    can_archive_daily_item,
    can_edit_daily_log,
    can_review_daily_log,
    can_submit_daily_log,
    ensure,
)
from taskboard.core.roles import is_supervisor
from taskboard.models.daily_log import Approval, CompletionRecord, DailyItem, DailyLog
from taskboard_shared.schemas.common import ApprovalStatus, DailyLogStatus, Role
from taskboard_shared.schemas.daily_logs import (
    ApprovalRead,
    DailyItemRead,
    DailyLogRead,
    DailyLogSave,
)

log = structlog.get_logger()

APPROVAL_TARGET = "daily_log"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_daily_log(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID, log_date: date
) -> Optional[DailyLog]:
    result = await session.execute(
        select(DailyLog).where(
            DailyLog.org_id == org_id,
            DailyLog.user_id == user_id,
            DailyLog.log_date == log_date,
        )
    )
    return result.scalar_one_or_none()


async def get_daily_log_or_404(
    session: AsyncSession, org_id: uuid.UUID, log_id: uuid.UUID
) -> DailyLog:
    daily_log = await session.get(DailyLog, log_id)
    if not daily_log or daily_log.org_id != org_id:
        raise HTTPException(status_code=404, detail="Daily log not found")
    return daily_log


async def _items(session: AsyncSession, daily_log: DailyLog) -> list[DailyItem]:
    result = await session.execute(
        select(DailyItem)
        .where(DailyItem.daily_log_id == daily_log.id)
        .order_by(DailyItem.priority, DailyItem.created_at)
    )
    return list(result.scalars().all())


async def _approval(session: AsyncSession, daily_log: DailyLog) -> Optional[Approval]:
    result = await session.execute(
        select(Approval).where(
            Approval.org_id == daily_log.org_id,
            Approval.target_type == APPROVAL_TARGET,
            Approval.target_id == daily_log.id,
        )
    )
    return result.scalar_one_or_none()


async def to_daily_log_read(session: AsyncSession, daily_log: DailyLog) -> DailyLogRead:
    items = await _items(session, daily_log)
    approval = await _approval(session, daily_log)
    return DailyLogRead(
        id=daily_log.id,
        org_id=daily_log.org_id,
        user_id=daily_log.user_id,
        log_date=daily_log.log_date,
        status=daily_log.status,
        notes=daily_log.notes,
        items=[DailyItemRead.model_validate(i) for i in items],
        approval=ApprovalRead.model_validate(approval) if approval else None,
        created_at=daily_log.created_at,
        updated_at=daily_log.updated_at,
    )


def ensure_can_view(actor_role: Optional[Role], actor_id: uuid.UUID, owner_id: uuid.UUID) -> None:
    if owner_id != actor_id and not is_supervisor(actor_role):
        raise HTTPException(status_code=403, detail="You can only view your own daily logs")


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


async def save_daily_log(
    session: AsyncSession,
    org_id: uuid.UUID,
    actor_id: uuid.UUID,
    log_date: date,
    body: DailyLogSave,
) -> DailyLog:
    """Create the day's log or replace its notes and item set."""
    daily_log = await get_daily_log(session, org_id, actor_id, log_date)
    ensure(can_edit_daily_log(actor_id, daily_log), actor=str(actor_id), log_date=str(log_date))

    if daily_log is None:
        daily_log = DailyLog(
            org_id=org_id,
            user_id=actor_id,
            log_date=log_date,
            notes=body.notes,
            status=DailyLogStatus.DRAFT.value,
        )
        session.add(daily_log)
        await session.flush()
        existing: dict[uuid.UUID, DailyItem] = {}
    else:
        daily_log.notes = body.notes
        daily_log.status = DailyLogStatus.DRAFT.value
        daily_log.updated_at = _utcnow()
        session.add(daily_log)
        existing = {i.id: i for i in await _items(session, daily_log)}

    kept: set[uuid.UUID] = set()
    for item_in in body.items:
        fields = item_in.model_dump(exclude={"id"})
        fields["status"] = item_in.status.value
        fields["priority"] = item_in.priority.value
        if item_in.id is None:
            session.add(DailyItem(daily_log_id=daily_log.id, **fields))
            continue
        item = existing.get(item_in.id)
        if item is None:
            raise HTTPException(status_code=404, detail="Daily item not found")
        for key, value in fields.items():
            setattr(item, key, value)
        session.add(item)
        kept.add(item.id)

    for item_id, item in existing.items():
        if item_id not in kept:
            await session.delete(item)

    await session.flush()
    log.info(
        "daily_log.saved",
        log_id=str(daily_log.id),
        user_id=str(actor_id),
        items=len(body.items),
    )
    return daily_log


async def submit_daily_log(
    session: AsyncSession,
    org_id: uuid.UUID,
    actor_id: uuid.UUID,
    log_date: date,
) -> DailyLog:
    daily_log = await get_daily_log(session, org_id, actor_id, log_date)
    if daily_log is None:
        raise HTTPException(status_code=404, detail="Daily log not found")

    count = await session.execute(
        select(func.count()).select_from(DailyItem).where(DailyItem.daily_log_id == daily_log.id)
    )
    ensure(
        can_submit_daily_log(actor_id, daily_log, count.scalar_one()),
        log_id=str(daily_log.id),
        actor=str(actor_id),
    )

    daily_log.status = DailyLogStatus.PENDING.value
    daily_log.updated_at = _utcnow()
    session.add(daily_log)

    approval = await _approval(session, daily_log)
    if approval is None:
        approval = Approval(
            org_id=org_id,
            target_type=APPROVAL_TARGET,
            target_id=daily_log.id,
            requester_user_id=actor_id,
        )
    approval.status = ApprovalStatus.PENDING.value
    approval.approver_user_id = None
    approval.comments = None
    approval.updated_at = _utcnow()
    session.add(approval)
    await session.flush()

    log.info("daily_log.submitted", log_id=str(daily_log.id), user_id=str(actor_id))
    return daily_log


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


async def list_pending_logs(session: AsyncSession, org_id: uuid.UUID) -> list[DailyLog]:
    result = await session.execute(
        select(DailyLog)
        .where(DailyLog.org_id == org_id, DailyLog.status == DailyLogStatus.PENDING.value)
        .order_by(DailyLog.log_date)
    )
    return list(result.scalars().all())


async def review_daily_log(
    session: AsyncSession,
    org_id: uuid.UUID,
    log_id: uuid.UUID,
    approved: bool,
    comments: Optional[str],
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> DailyLog:
    daily_log = await get_daily_log_or_404(session, org_id, log_id)
    ensure(
        can_review_daily_log(actor_role, actor_id, daily_log),
        log_id=str(log_id),
        actor=str(actor_id),
    )

    outcome = ApprovalStatus.APPROVED if approved else ApprovalStatus.REJECTED
    approval = await _approval(session, daily_log)
    if approval is None:
        approval = Approval(
            org_id=org_id,
            target_type=APPROVAL_TARGET,
            target_id=daily_log.id,
            requester_user_id=daily_log.user_id,
        )
    approval.status = outcome.value
    approval.approver_user_id = actor_id
    approval.comments = comments or None
    approval.updated_at = _utcnow()
    session.add(approval)

    daily_log.status = DailyLogStatus(outcome.value).value
    daily_log.updated_at = _utcnow()
    session.add(daily_log)
    await session.flush()

    log.info("daily_log.reviewed", log_id=str(log_id), outcome=outcome.value, reviewer=str(actor_id))
    return daily_log


# ---------------------------------------------------------------------------
# Completion history
# ---------------------------------------------------------------------------


async def archive_daily_item(
    session: AsyncSession,
    org_id: uuid.UUID,
    log_id: uuid.UUID,
    item_id: uuid.UUID,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> CompletionRecord:
    """Move an item of an approved log into the completion history."""
    daily_log = await get_daily_log_or_404(session, org_id, log_id)
    ensure(
        can_archive_daily_item(actor_role, actor_id, daily_log),
        log_id=str(log_id),
        actor=str(actor_id),
    )

    item = await session.get(DailyItem, item_id)
    if not item or item.daily_log_id != daily_log.id:
        raise HTTPException(status_code=404, detail="Daily item not found")

    record = CompletionRecord(
        org_id=org_id,
        user_id=daily_log.user_id,
        daily_log_id=daily_log.id,
        log_date=daily_log.log_date,
        description=item.description,
        priority=item.priority,
        estimated_hours=item.estimated_hours,
        actual_hours=item.actual_hours,
    )
    session.add(record)
    await session.delete(item)
    await session.flush()

    log.info("daily_item.archived", item_id=str(item_id), record_id=str(record.id))
    return record


# ---------------------------------------------------------------------------
# Week view
# ---------------------------------------------------------------------------


def week_bounds(day: date) -> tuple[date, date]:
    """Monday..Sunday of the week containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


async def week_logs(
    session: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID, day: date
) -> tuple[date, date, dict[date, str]]:
    start, end = week_bounds(day)
    result = await session.execute(
        select(DailyLog).where(
            DailyLog.org_id == org_id,
            DailyLog.user_id == user_id,
            DailyLog.log_date >= start,
            DailyLog.log_date <= end,
        )
    )
    return start, end, {d.log_date: d.status for d in result.scalars().all()}
