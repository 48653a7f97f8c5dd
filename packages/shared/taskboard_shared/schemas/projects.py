from typing import Optional
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import date, datetime
from .common import ProjectStatus


class ProjectBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    target_due_date: Optional[date] = None


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    status: Optional[ProjectStatus] = None
    target_due_date: Optional[date] = None


class ProjectRead(ProjectBase):
    id: UUID
    org_id: UUID
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
