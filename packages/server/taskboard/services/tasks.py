"""
Task service layer: business logic for tasks and progress replies.

Handles:
- Scoped task listing (members only see tasks assigned to them)
- Guarded status / assignee / expected-finish changes
- Progress replies, optionally moving the task to a new status
- Conversion of task rows to API responses with due-date classification
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone, tzinfo
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskboard.core.due import DEFAULT_HORIZON_DAYS, classify_due
from taskboard.core.guards import (
    can_change_task_status,
    can_manage_tasks,
    can_modify_reply,
    can_reassign_task,
    can_reply,
    ensure,
    task_scope,
)
from taskboard.models.project import Project
from taskboard.models.task import Task
from taskboard.models.task_reply import TaskReply
from taskboard.services.members import is_active_member, member_labels
from taskboard_shared.schemas.common import Role, TaskStatus
from taskboard_shared.schemas.tasks import ReplyRead, TaskCreate, TaskRead

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_task_or_404(
    session: AsyncSession,
    task_id: uuid.UUID,
    org_id: uuid.UUID,
    actor_role: Optional[Role] = None,
    actor_id: Optional[uuid.UUID] = None,
) -> Task:
    """Fetch a task inside the actor's visible scope.

    A task outside the scope is reported exactly like a missing one.
    """
    task = await session.get(Task, task_id)
    if not task or task.org_id != org_id:
        raise HTTPException(status_code=404, detail="Task not found")
    if actor_id is not None:
        scope = task_scope(actor_role, actor_id)
        if scope is not None and task.assignee_user_id != scope:
            raise HTTPException(status_code=404, detail="Task not found")
    return task


async def project_names(
    session: AsyncSession, org_id: uuid.UUID, project_ids: set[uuid.UUID]
) -> dict[uuid.UUID, str]:
    """Project id -> name. Missing names are left out rather than raising."""
    if not project_ids:
        return {}
    try:
        async with session.begin_nested():
            result = await session.execute(
                select(Project.id, Project.name).where(
                    Project.org_id == org_id, Project.id.in_(project_ids)
                )
            )
            return {pid: name for pid, name in result.all()}
    except SQLAlchemyError as exc:
        log.warning("tasks.project_names_unavailable", org_id=str(org_id), error=str(exc))
        return {}


def to_task_read(
    task: Task,
    now: datetime,
    tz: tzinfo,
    names: Optional[dict[uuid.UUID, str]] = None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> TaskRead:
    return TaskRead(
        id=task.id,
        org_id=task.org_id,
        project_id=task.project_id,
        project_name=(names or {}).get(task.project_id),
        description=task.description,
        assignee_user_id=task.assignee_user_id,
        status=task.status,
        expected_finish_at=task.expected_finish_at,
        completed_at=task.completed_at,
        due=classify_due(task, now, tz, horizon_days),
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


async def enrich_tasks(
    session: AsyncSession,
    tasks: Sequence[Task],
    org_id: uuid.UUID,
    now: datetime,
    tz: tzinfo,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> list[TaskRead]:
    names = await project_names(session, org_id, {t.project_id for t in tasks})
    return [to_task_read(t, now, tz, names, horizon_days) for t in tasks]


def _apply_status(task: Task, new_status: TaskStatus) -> None:
    old = TaskStatus(task.status)
    task.status = new_status.value
    if new_status == TaskStatus.DONE and old != TaskStatus.DONE:
        task.completed_at = datetime.now(timezone.utc)
    elif new_status != TaskStatus.DONE:
        task.completed_at = None  # reopen


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


async def list_tasks(
    session: AsyncSession,
    org_id: uuid.UUID,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
    project_id: Optional[uuid.UUID] = None,
    status: Optional[TaskStatus] = None,
    assignee_id: Optional[uuid.UUID] = None,
) -> list[Task]:
    """Tasks in the org, restricted to the actor's own tasks unless supervisor."""
    stmt = select(Task).where(Task.org_id == org_id)

    scope = task_scope(actor_role, actor_id)
    if scope is not None:
        stmt = stmt.where(Task.assignee_user_id == scope)
    elif assignee_id:
        stmt = stmt.where(Task.assignee_user_id == assignee_id)

    if project_id:
        stmt = stmt.where(Task.project_id == project_id)
    if status:
        stmt = stmt.where(Task.status == status.value)

    stmt = stmt.order_by(Task.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def _ensure_assignable(
    session: AsyncSession, org_id: uuid.UUID, assignee_id: Optional[uuid.UUID]
) -> None:
    if assignee_id is not None and not await is_active_member(session, org_id, assignee_id):
        raise HTTPException(status_code=422, detail="Assignee is not an active member of this org")


async def create_task(
    session: AsyncSession,
    task_in: TaskCreate,
    org_id: uuid.UUID,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> Task:
    ensure(can_manage_tasks(actor_role), org_id=str(org_id), actor=str(actor_id))

    project = await session.get(Project, task_in.project_id)
    if not project or project.org_id != org_id:
        raise HTTPException(status_code=404, detail="Project not found")
    await _ensure_assignable(session, org_id, task_in.assignee_user_id)

    task = Task(
        org_id=org_id,
        project_id=project.id,
        description=task_in.description,
        assignee_user_id=task_in.assignee_user_id,
        status=TaskStatus.TODO.value,
        expected_finish_at=task_in.expected_finish_at,
    )
    session.add(task)
    await session.flush()

    log.info("task.created", task_id=str(task.id), org_id=str(org_id), actor=str(actor_id))
    return task


# ---------------------------------------------------------------------------
# Guarded mutations
# ---------------------------------------------------------------------------


async def update_task_status(
    session: AsyncSession,
    task: Task,
    new_status: TaskStatus,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> Task:
    ensure(
        can_change_task_status(actor_role, actor_id, task.assignee_user_id),
        task_id=str(task.id),
        actor=str(actor_id),
    )
    old_status = task.status
    _apply_status(task, new_status)
    session.add(task)
    await session.flush()

    log.info(
        "task.status_changed",
        task_id=str(task.id),
        from_status=old_status,
        to_status=task.status,
        actor=str(actor_id),
    )
    return task


async def update_task_assignee(
    session: AsyncSession,
    task: Task,
    assignee_id: Optional[uuid.UUID],
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> Task:
    ensure(can_reassign_task(actor_role), task_id=str(task.id), actor=str(actor_id))
    await _ensure_assignable(session, task.org_id, assignee_id)

    task.assignee_user_id = assignee_id
    session.add(task)
    await session.flush()

    log.info(
        "task.assignee_changed",
        task_id=str(task.id),
        assignee=str(assignee_id) if assignee_id else None,
        actor=str(actor_id),
    )
    return task


async def update_expected_finish(
    session: AsyncSession,
    task: Task,
    expected_finish_at: Optional[datetime],
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> Task:
    ensure(can_reassign_task(actor_role), task_id=str(task.id), actor=str(actor_id))

    task.expected_finish_at = expected_finish_at
    session.add(task)
    await session.flush()

    log.info(
        "task.expected_finish_changed",
        task_id=str(task.id),
        expected_finish_at=expected_finish_at.isoformat() if expected_finish_at else None,
        actor=str(actor_id),
    )
    return task


# ---------------------------------------------------------------------------
# Progress replies
# ---------------------------------------------------------------------------


async def get_reply_or_404(
    session: AsyncSession, task: Task, reply_id: uuid.UUID
) -> TaskReply:
    reply = await session.get(TaskReply, reply_id)
    if not reply or reply.task_id != task.id:
        raise HTTPException(status_code=404, detail="Reply not found")
    return reply


async def list_replies(session: AsyncSession, task: Task) -> list[ReplyRead]:
    result = await session.execute(
        select(TaskReply)
        .where(TaskReply.task_id == task.id)
        .order_by(TaskReply.created_at)
    )
    replies = list(result.scalars().all())
    labels = await member_labels(session, {r.author_user_id for r in replies})
    return [
        ReplyRead(
            id=r.id,
            task_id=r.task_id,
            author_user_id=r.author_user_id,
            author_name=labels.get(r.author_user_id),
            message=r.message,
            new_status=r.new_status,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )
        for r in replies
    ]


async def create_reply(
    session: AsyncSession,
    task: Task,
    message: str,
    new_status: Optional[TaskStatus],
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> TaskReply:
    ensure(
        can_reply(actor_role, actor_id, task.assignee_user_id),
        task_id=str(task.id),
        actor=str(actor_id),
    )
    if new_status is not None:
        await update_task_status(session, task, new_status, actor_role, actor_id)

    reply = TaskReply(
        org_id=task.org_id,
        task_id=task.id,
        author_user_id=actor_id,
        message=message.strip(),
        new_status=new_status.value if new_status else None,
    )
    session.add(reply)
    await session.flush()

    log.info("task.reply_created", task_id=str(task.id), reply_id=str(reply.id), actor=str(actor_id))
    return reply


async def update_reply(
    session: AsyncSession,
    task: Task,
    reply: TaskReply,
    message: str,
    new_status: Optional[TaskStatus],
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> TaskReply:
    ensure(
        can_modify_reply(actor_role, actor_id, reply.author_user_id),
        reply_id=str(reply.id),
        actor=str(actor_id),
    )
    if new_status is not None:
        await update_task_status(session, task, new_status, actor_role, actor_id)

    reply.message = message.strip()
    reply.new_status = new_status.value if new_status else None
    reply.updated_at = datetime.now(timezone.utc)
    session.add(reply)
    await session.flush()

    log.info("task.reply_updated", reply_id=str(reply.id), actor=str(actor_id))
    return reply


async def delete_reply(
    session: AsyncSession,
    reply: TaskReply,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> None:
    ensure(
        can_modify_reply(actor_role, actor_id, reply.author_user_id),
        reply_id=str(reply.id),
        actor=str(actor_id),
    )
    await session.delete(reply)
    await session.flush()
    log.info("task.reply_deleted", reply_id=str(reply.id), actor=str(actor_id))
