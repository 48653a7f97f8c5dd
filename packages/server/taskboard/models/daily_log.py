"""Daily work log, its items, and the approval record."""

from datetime import date, datetime, timezone
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class DailyLog(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "daily_logs"
    __table_args__ = (sa.UniqueConstraint("org_id", "user_id", "log_date"),)

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    log_date: date = Field(nullable=False)
    status: str = Field(nullable=False, default="draft")  # draft | pending | approved | rejected
    notes: Optional[str] = None


class DailyItem(UUIDMixin, SQLModel, table=True):
    __tablename__ = "daily_items"

    daily_log_id: uuid.UUID = Field(foreign_key="daily_logs.id", nullable=False, index=True)
    description: str = Field(nullable=False)
    status: str = Field(nullable=False, default="todo")  # todo | done
    priority: str = Field(nullable=False, default="p3")  # p1 .. p4
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )


class Approval(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "approvals"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    target_type: str = Field(nullable=False, default="daily_log")
    target_id: uuid.UUID = Field(nullable=False, index=True)
    requester_user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    approver_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    status: str = Field(nullable=False, default="pending")  # pending | approved | rejected
    comments: Optional[str] = None


class CompletionRecord(UUIDMixin, SQLModel, table=True):
    """A daily item moved into the completion history after approval."""

    __tablename__ = "completion_history"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    daily_log_id: uuid.UUID = Field(nullable=False)
    log_date: date = Field(nullable=False)
    description: str = Field(nullable=False)
    priority: str = Field(nullable=False, default="p3")
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    completed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
