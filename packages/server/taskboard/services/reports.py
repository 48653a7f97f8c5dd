"""
Reporting service: dashboard aggregates and completion reports.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, tzinfo
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskboard.core import due
from taskboard.core.guards import task_scope
from taskboard.core.roles import is_supervisor
from taskboard.models.daily_log import CompletionRecord
from taskboard.models.project import Project
from taskboard.models.task import Task
from taskboard.services.members import member_labels
from taskboard.services.tasks import list_tasks, project_names, to_task_read
from taskboard_shared.schemas.common import Role, TaskScope, TaskStatus
from taskboard_shared.schemas.reports import (
    ActionListsRead,
    DashboardRead,
    ProjectCompletionRead,
    TaskCompletionRead,
    TaskSummaryRead,
    WorkloadRead,
)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


async def build_dashboard(
    session: AsyncSession,
    org_id: uuid.UUID,
    actor_role: Role,
    actor_id: uuid.UUID,
    now: datetime,
    tz: tzinfo,
    list_limit: int = due.DEFAULT_LIST_LIMIT,
    horizon_days: int = due.DEFAULT_HORIZON_DAYS,
) -> DashboardRead:
    """Summary, action lists and (for supervisors) workload at one instant."""
    tasks = await list_tasks(session, org_id, actor_role, actor_id)
    names = await project_names(session, org_id, {t.project_id for t in tasks})

    def read(items: list[Task]) -> list:
        return [to_task_read(t, now, tz, names, horizon_days) for t in items]

    summary = due.summarize(tasks, now, tz, horizon_days)
    lists = due.action_lists(tasks, now, tz, list_limit, horizon_days)

    workload = None
    if is_supervisor(actor_role):
        rows = due.workload(tasks, now, tz, limit=list_limit)
        labels = await member_labels(session, {r.user_id for r in rows})
        workload = [
            WorkloadRead(
                user_id=r.user_id,
                display_name=labels.get(r.user_id, str(r.user_id)[:8]),
                open=r.open,
                overdue=r.overdue,
                in_progress=r.in_progress,
            )
            for r in rows
        ]

    return DashboardRead(
        generated_at=now,
        role=Role(actor_role).value,
        summary=TaskSummaryRead(**vars(summary)),
        action_lists=ActionListsRead(
            overdue=read(lists.overdue),
            due_today=read(lists.due_today),
            due_this_week=read(lists.due_this_week),
            in_progress=read(lists.in_progress),
        ),
        workload=workload,
    )


# ---------------------------------------------------------------------------
# Completions
# ---------------------------------------------------------------------------


def _day_start(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _day_end(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.max, tzinfo=tz)


async def task_completions(
    session: AsyncSession,
    org_id: uuid.UUID,
    actor_role: Role,
    actor_id: uuid.UUID,
    tz: tzinfo,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    scope: TaskScope = TaskScope.ALL,
) -> list[TaskCompletionRead]:
    """Done tasks, newest completion first. Date bounds are whole local days."""
    stmt = select(Task).where(Task.org_id == org_id, Task.status == TaskStatus.DONE.value)

    assignee = task_scope(actor_role, actor_id)
    if assignee is None and scope == TaskScope.ME:
        assignee = actor_id
    if assignee is not None:
        stmt = stmt.where(Task.assignee_user_id == assignee)

    result = await session.execute(stmt)
    tasks = list(result.scalars().all())

    # Filter in Python: the timestamps may come back naive on some backends
    if date_from:
        lower = _day_start(date_from, tz)
        tasks = [t for t in tasks if t.completed_at and due.as_utc(t.completed_at) >= lower]
    if date_to:
        upper = _day_end(date_to, tz)
        tasks = [t for t in tasks if t.completed_at and due.as_utc(t.completed_at) <= upper]

    tasks.sort(
        key=lambda t: due.as_utc(t.completed_at) if t.completed_at else due.as_utc(t.created_at),
        reverse=True,
    )

    names = await project_names(session, org_id, {t.project_id for t in tasks})
    labels = await member_labels(session, {t.assignee_user_id for t in tasks if t.assignee_user_id})
    return [
        TaskCompletionRead(
            task_id=t.id,
            project_id=t.project_id,
            project_name=names.get(t.project_id),
            task_description=t.description,
            assignee_user_id=t.assignee_user_id,
            assignee_name=labels.get(t.assignee_user_id) if t.assignee_user_id else None,
            expected_finish_at=t.expected_finish_at,
            completed_at=t.completed_at,
            created_at=t.created_at,
        )
        for t in tasks
    ]


def completion_rate(done: int, total: int) -> int:
    if total == 0:
        return 0
    return round(done * 100 / total)


async def project_completion(
    session: AsyncSession, org_id: uuid.UUID
) -> list[ProjectCompletionRead]:
    projects = await session.execute(
        select(Project).where(Project.org_id == org_id).order_by(Project.created_at.desc())
    )
    tasks = await session.execute(
        select(Task.project_id, Task.status, Task.completed_at).where(Task.org_id == org_id)
    )

    totals: dict[uuid.UUID, list] = {}
    for project_id, status, completed_at in tasks.all():
        entry = totals.setdefault(project_id, [0, 0, None])
        entry[0] += 1
        if status == TaskStatus.DONE.value:
            entry[1] += 1
            if completed_at and (entry[2] is None or due.as_utc(completed_at) > entry[2]):
                entry[2] = due.as_utc(completed_at)

    rows = []
    for p in projects.scalars().all():
        total, done, last = totals.get(p.id, [0, 0, None])
        rows.append(
            ProjectCompletionRead(
                project_id=p.id,
                project_name=p.name,
                status=p.status,
                target_due_date=p.target_due_date,
                total_tasks=total,
                done_tasks=done,
                completion_rate_percent=completion_rate(done, total),
                last_task_completed_at=last,
            )
        )
    return rows


async def completion_history(
    session: AsyncSession,
    org_id: uuid.UUID,
    actor_role: Role,
    actor_id: uuid.UUID,
) -> list[CompletionRecord]:
    """Archived daily items; members only see their own."""
    stmt = select(CompletionRecord).where(CompletionRecord.org_id == org_id)
    if not is_supervisor(actor_role):
        stmt = stmt.where(CompletionRecord.user_id == actor_id)
    result = await session.execute(stmt.order_by(CompletionRecord.completed_at.desc()))
    return list(result.scalars().all())
