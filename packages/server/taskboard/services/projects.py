"""
Project service: CRUD so tasks and completion reports have a home.
Deleting a project removes its tasks and their replies.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskboard.core.guards import can_manage_tasks, ensure
from taskboard.models.project import Project
from taskboard.models.task import Task
from taskboard.models.task_reply import TaskReply
from taskboard_shared.schemas.common import ProjectStatus, Role
from taskboard_shared.schemas.projects import ProjectCreate, ProjectUpdate

log = structlog.get_logger()


async def get_project_or_404(
    session: AsyncSession, project_id: uuid.UUID, org_id: uuid.UUID
) -> Project:
    project = await session.get(Project, project_id)
    if not project or project.org_id != org_id:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


async def list_projects(
    session: AsyncSession,
    org_id: uuid.UUID,
    status: Optional[ProjectStatus] = None,
) -> list[Project]:
    stmt = select(Project).where(Project.org_id == org_id)
    if status:
        stmt = stmt.where(Project.status == status.value)
    result = await session.execute(stmt.order_by(Project.created_at.desc()))
    return list(result.scalars().all())


async def create_project(
    session: AsyncSession,
    project_in: ProjectCreate,
    org_id: uuid.UUID,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> Project:
    ensure(can_manage_tasks(actor_role), org_id=str(org_id), actor=str(actor_id))
    project = Project(
        org_id=org_id,
        name=project_in.name,
        description=project_in.description,
        priority=project_in.priority,
        target_due_date=project_in.target_due_date,
        status=ProjectStatus.ACTIVE.value,
    )
    session.add(project)
    await session.flush()
    log.info("project.created", project_id=str(project.id), org_id=str(org_id))
    return project


async def update_project(
    session: AsyncSession,
    project: Project,
    project_in: ProjectUpdate,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> Project:
    ensure(can_manage_tasks(actor_role), project_id=str(project.id), actor=str(actor_id))
    data = project_in.model_dump(exclude_unset=True)
    if data.get("status") is not None:
        data["status"] = ProjectStatus(data["status"]).value

    for key, value in data.items():
        setattr(project, key, value)

    project.updated_at = datetime.now(timezone.utc)
    session.add(project)
    await session.flush()
    log.info("project.updated", project_id=str(project.id), fields=sorted(data))
    return project


async def delete_project(
    session: AsyncSession,
    project: Project,
    actor_role: Optional[Role],
    actor_id: uuid.UUID,
) -> None:
    """Delete a project together with its tasks and their progress replies."""
    ensure(can_manage_tasks(actor_role), project_id=str(project.id), actor=str(actor_id))

    task_ids = select(Task.id).where(Task.project_id == project.id)
    replies = await session.execute(delete(TaskReply).where(TaskReply.task_id.in_(task_ids)))
    tasks = await session.execute(delete(Task).where(Task.project_id == project.id))
    await session.delete(project)
    await session.flush()

    log.info(
        "project.deleted",
        project_id=str(project.id),
        org_id=str(project.org_id),
        tasks=tasks.rowcount,
        replies=replies.rowcount,
        actor=str(actor_id),
    )
