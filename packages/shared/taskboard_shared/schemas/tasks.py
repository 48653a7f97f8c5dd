"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import UUID4

from .common import DueBucket, TaskStatus


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskCreate(BaseModel):
    project_id: UUID4
    description: str = Field(min_length=1)
    assignee_user_id: Optional[UUID4] = None
    expected_finish_at: Optional[datetime] = None

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class TaskRead(BaseModel):
    id: UUID4
    org_id: UUID4
    project_id: UUID4
    project_name: Optional[str] = None
    description: str
    assignee_user_id: Optional[UUID4] = None
    status: TaskStatus
    expected_finish_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    due: DueBucket = DueBucket.NONE
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Guarded mutations
# ---------------------------------------------------------------------------

class TaskStatusChange(BaseModel):
    """Request body for POST /tasks/{taskId}/status."""
    status: TaskStatus


class TaskAssigneeChange(BaseModel):
    """Request body for PATCH /tasks/{taskId}/assignee. Null unassigns."""
    assignee_user_id: Optional[UUID4] = None


class ExpectedFinishChange(BaseModel):
    """Request body for PATCH /tasks/{taskId}/expected-finish. Null clears."""
    expected_finish_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Progress replies
# ---------------------------------------------------------------------------

class ReplyCreate(BaseModel):
    message: str = Field(min_length=1)
    new_status: Optional[TaskStatus] = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class ReplyEdit(BaseModel):
    message: str = Field(min_length=1)
    new_status: Optional[TaskStatus] = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class ReplyRead(BaseModel):
    id: UUID4
    task_id: UUID4
    author_user_id: UUID4
    author_name: Optional[str] = None
    message: str
    new_status: Optional[TaskStatus] = None
    created_at: datetime
    updated_at: datetime


class ReplyListResponse(BaseModel):
    data: List[ReplyRead] = Field(default_factory=list)
