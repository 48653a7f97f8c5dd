"""Daily work log and approval schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, Field, UUID4

from .common import ApprovalStatus, DailyItemPriority, DailyItemStatus, DailyLogStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class DailyItemIn(BaseModel):
    """An item in a save request. Items with an id update, items without are created."""
    id: Optional[UUID4] = None
    description: str = Field(min_length=1)
    status: DailyItemStatus = DailyItemStatus.TODO
    priority: DailyItemPriority = DailyItemPriority.P3
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class DailyLogSave(BaseModel):
    """Replace the notes and item set of a day's log."""
    notes: Optional[str] = None
    items: List[DailyItemIn] = Field(default_factory=list)


class DailyLogReview(BaseModel):
    approved: bool
    comments: Optional[str] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class DailyItemRead(BaseModel):
    id: UUID4
    daily_log_id: UUID4
    description: str
    status: DailyItemStatus
    priority: DailyItemPriority
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ApprovalRead(BaseModel):
    id: UUID4
    target_type: str
    target_id: UUID4
    requester_user_id: UUID4
    approver_user_id: Optional[UUID4] = None
    status: ApprovalStatus
    comments: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DailyLogRead(BaseModel):
    id: UUID4
    org_id: UUID4
    user_id: UUID4
    log_date: date
    status: DailyLogStatus
    notes: Optional[str] = None
    items: List[DailyItemRead] = Field(default_factory=list)
    approval: Optional[ApprovalRead] = None
    created_at: datetime
    updated_at: datetime


class WeekLogsResponse(BaseModel):
    """Monday-start week; days without a log are absent."""
    week_start: date
    week_end: date
    logs: dict[date, DailyLogStatus] = Field(default_factory=dict)
