"""Dashboard and completion report schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, UUID4

from .tasks import TaskRead


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

class TaskSummaryRead(BaseModel):
    total: int = 0
    open: int = 0
    in_progress: int = 0
    completed: int = 0
    completed_today: int = 0
    overdue: int = 0
    due_today: int = 0
    due_this_week: int = 0


class ActionListsRead(BaseModel):
    overdue: List[TaskRead] = Field(default_factory=list)
    due_today: List[TaskRead] = Field(default_factory=list)
    due_this_week: List[TaskRead] = Field(default_factory=list)
    in_progress: List[TaskRead] = Field(default_factory=list)


class WorkloadRead(BaseModel):
    user_id: UUID4
    display_name: str
    open: int
    overdue: int
    in_progress: int


class DashboardRead(BaseModel):
    generated_at: datetime
    role: str
    summary: TaskSummaryRead
    action_lists: ActionListsRead
    workload: Optional[List[WorkloadRead]] = None  # supervisors only


# ---------------------------------------------------------------------------
# Completions
# ---------------------------------------------------------------------------

class TaskCompletionRead(BaseModel):
    task_id: UUID4
    project_id: UUID4
    project_name: Optional[str] = None
    task_description: str
    assignee_user_id: Optional[UUID4] = None
    assignee_name: Optional[str] = None
    expected_finish_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class ProjectCompletionRead(BaseModel):
    project_id: UUID4
    project_name: str
    status: str
    target_due_date: Optional[date] = None
    total_tasks: int
    done_tasks: int
    completion_rate_percent: int
    last_task_completed_at: Optional[datetime] = None


class CompletionRecordRead(BaseModel):
    id: UUID4
    user_id: UUID4
    log_date: date
    description: str
    priority: str
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    completed_at: datetime

    model_config = {"from_attributes": True}
