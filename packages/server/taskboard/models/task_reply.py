"""Progress reply posted on a task."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class TaskReply(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "task_updates"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    task_id: uuid.UUID = Field(foreign_key="project_tasks.id", nullable=False, index=True)
    author_user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    message: str = Field(nullable=False)
    new_status: Optional[str] = None  # status the reply moved the task to, if any
