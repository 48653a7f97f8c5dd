"""Single-use invitation to join an org as a member."""

from datetime import datetime, timezone
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class OrgInvite(UUIDMixin, SQLModel, table=True):
    __tablename__ = "org_invites"

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    token: str = Field(nullable=False, unique=True, index=True)
    email: Optional[str] = None  # when set, only this address may accept
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    accepted_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    accepted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
