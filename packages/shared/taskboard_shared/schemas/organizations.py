"""
Organization and membership schemas shared between server and clients.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import Role


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------

class OrgListItem(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    role: Role  # the requesting user's effective role in this org

    model_config = {"from_attributes": True}


class OrgListResponse(BaseModel):
    data: list[OrgListItem]


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class MemberRead(BaseModel):
    """A membership row decorated with the member's display label."""
    org_id: uuid.UUID
    user_id: uuid.UUID
    role: Role
    is_active: bool
    joined_at: Optional[datetime] = None
    display_name: str
    email: Optional[str] = None


class MemberListResponse(BaseModel):
    data: list[MemberRead]
    active_admin_count: int


class MemberRoleUpdate(BaseModel):
    role: Role


class MemberActiveUpdate(BaseModel):
    is_active: bool


class DisplayNameUpdate(BaseModel):
    display_name: str = Field(min_length=1, max_length=200)

    @field_validator("display_name")
    @classmethod
    def display_name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")
    slug: str = Field(
        ...,
        min_length=2,
        max_length=50,
        pattern=r"^[a-z0-9][a-z0-9-]*[a-z0-9]$",
        description="URL-safe org identifier",
    )


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

class InviteCreate(BaseModel):
    email: Optional[EmailStr] = None  # restrict the invite to one address


class InviteRead(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    token: str
    email: Optional[str] = None
    created_by: uuid.UUID
    created_at: datetime
    expires_at: datetime
    accepted_by: Optional[uuid.UUID] = None
    accepted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class InviteListResponse(BaseModel):
    data: list[InviteRead]
