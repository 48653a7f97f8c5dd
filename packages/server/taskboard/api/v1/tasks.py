"""
Task endpoints: list, create, guarded changes, progress replies.

Status: todo → in_progress → done (any move allowed, reopening clears completed_at)
- Members only see and act on tasks assigned to them; other tasks are a 404.
- Status changes: supervisor or the current assignee.
- Assignee / expected-finish changes: supervisors only.
- Replies may carry a status change, checked like a direct status change.
- Reply edit/delete: the author or Manager+, even after the task was reassigned.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.auth import AuthenticatedUser, require_member
from taskboard.core.config import get_settings
from taskboard.core.database import get_session
from taskboard.services import tasks as task_service
from taskboard_shared.schemas.common import TaskStatus
from taskboard_shared.schemas.tasks import (
    ExpectedFinishChange,
    ReplyCreate,
    ReplyEdit,
    ReplyListResponse,
    ReplyRead,
    TaskAssigneeChange,
    TaskCreate,
    TaskRead,
    TaskStatusChange,
)

router = APIRouter()
settings = get_settings()


async def _read(session: AsyncSession, auth: AuthenticatedUser, task) -> TaskRead:
    now = datetime.now(timezone.utc)
    reads = await task_service.enrich_tasks(
        session, [task], auth.org_id, now, settings.tzinfo, settings.due_soon_days
    )
    return reads[0]


async def _scoped_task(session: AsyncSession, auth: AuthenticatedUser, task_id: uuid.UUID):
    return await task_service.get_task_or_404(
        session, task_id, auth.org_id, auth.role, auth.user_id
    )


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[TaskRead])
async def list_tasks_endpoint(
    project_id: Optional[uuid.UUID] = None,
    status: Optional[TaskStatus] = None,
    assignee_id: Optional[uuid.UUID] = None,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List tasks visible to the caller, with optional project/status/assignee filters."""
    tasks = await task_service.list_tasks(
        session,
        auth.org_id,
        auth.role,
        auth.user_id,
        project_id=project_id,
        status=status,
        assignee_id=assignee_id,
    )
    now = datetime.now(timezone.utc)
    return await task_service.enrich_tasks(
        session, tasks, auth.org_id, now, settings.tzinfo, settings.due_soon_days
    )


@router.post("/", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    body: TaskCreate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Create a task in todo (Manager+)."""
    task = await task_service.create_task(session, body, auth.org_id, auth.role, auth.user_id)
    return await _read(session, auth, task)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    task = await _scoped_task(session, auth, task_id)
    return await _read(session, auth, task)


# ---------------------------------------------------------------------------
# Guarded changes
# ---------------------------------------------------------------------------


@router.post("/{task_id}/status", response_model=TaskRead)
async def change_status_endpoint(
    task_id: uuid.UUID,
    body: TaskStatusChange,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    task = await _scoped_task(session, auth, task_id)
    task = await task_service.update_task_status(session, task, body.status, auth.role, auth.user_id)
    return await _read(session, auth, task)


@router.patch("/{task_id}/assignee", response_model=TaskRead)
async def change_assignee_endpoint(
    task_id: uuid.UUID,
    body: TaskAssigneeChange,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Assign or unassign (null) a task (Manager+)."""
    task = await _scoped_task(session, auth, task_id)
    task = await task_service.update_task_assignee(
        session, task, body.assignee_user_id, auth.role, auth.user_id
    )
    return await _read(session, auth, task)


@router.patch("/{task_id}/expected-finish", response_model=TaskRead)
async def change_expected_finish_endpoint(
    task_id: uuid.UUID,
    body: ExpectedFinishChange,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    task = await _scoped_task(session, auth, task_id)
    task = await task_service.update_expected_finish(
        session, task, body.expected_finish_at, auth.role, auth.user_id
    )
    return await _read(session, auth, task)


# ---------------------------------------------------------------------------
# Progress replies
# ---------------------------------------------------------------------------


async def _reply_read(session: AsyncSession, task, reply_id: uuid.UUID) -> ReplyRead:
    replies = await task_service.list_replies(session, task)
    return next(r for r in replies if r.id == reply_id)


@router.get("/{task_id}/updates", response_model=ReplyListResponse)
async def list_replies_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    task = await _scoped_task(session, auth, task_id)
    return ReplyListResponse(data=await task_service.list_replies(session, task))


@router.post("/{task_id}/updates", response_model=ReplyRead, status_code=201)
async def create_reply_endpoint(
    task_id: uuid.UUID,
    body: ReplyCreate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Post a progress update, optionally moving the task to a new status."""
    task = await _scoped_task(session, auth, task_id)
    reply = await task_service.create_reply(
        session, task, body.message, body.new_status, auth.role, auth.user_id
    )
    return await _reply_read(session, task, reply.id)


@router.patch("/{task_id}/updates/{update_id}", response_model=ReplyRead)
async def edit_reply_endpoint(
    task_id: uuid.UUID,
    update_id: uuid.UUID,
    body: ReplyEdit,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Edit a progress update (author or Manager+)."""
    # Authorship decides, not the current assignment
    task = await task_service.get_task_or_404(session, task_id, auth.org_id)
    reply = await task_service.get_reply_or_404(session, task, update_id)
    await task_service.update_reply(
        session, task, reply, body.message, body.new_status, auth.role, auth.user_id
    )
    return await _reply_read(session, task, reply.id)


@router.delete("/{task_id}/updates/{update_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reply_endpoint(
    task_id: uuid.UUID,
    update_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    task = await task_service.get_task_or_404(session, task_id, auth.org_id)
    reply = await task_service.get_reply_or_404(session, task, update_id)
    await task_service.delete_reply(session, reply, auth.role, auth.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
