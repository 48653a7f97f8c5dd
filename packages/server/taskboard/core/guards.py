"""
Guarded mutation rules.

Each guard is a small predicate that returns a ``Decision`` instead of
raising, so callers can render the reason directly. Services turn a
rejection into an HTTP error with ``ensure()``. Guards run against the
persisted membership/assignment state loaded by the service, never
against values supplied in the request.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

import structlog
from fastapi import HTTPException

from taskboard.core.due import as_utc
from taskboard.core.roles import is_supervisor
from taskboard_shared.schemas.common import DailyLogStatus, Role

log = structlog.get_logger()


class RejectionKind(str, Enum):
    AUTHORIZATION = "authorization"
    INVARIANT = "invariant"
    NOT_FOUND = "not_found"


STATUS_CODES = {
    RejectionKind.AUTHORIZATION: 403,
    RejectionKind.INVARIANT: 409,
    RejectionKind.NOT_FOUND: 404,
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    kind: Optional[RejectionKind] = None
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = Decision(allowed=True)


def reject(kind: RejectionKind, reason: str) -> Decision:
    return Decision(allowed=False, kind=kind, reason=reason)


def ensure(decision: Decision, **context) -> None:
    """Raise the HTTP error matching a rejected decision."""
    if decision.allowed:
        return
    log.info("guard.rejected", kind=decision.kind.value, reason=decision.reason, **context)
    raise HTTPException(status_code=STATUS_CODES[decision.kind], detail=decision.reason)


class MemberLike(Protocol):
    user_id: uuid.UUID
    role: str
    is_active: bool


class DailyLogLike(Protocol):
    user_id: uuid.UUID
    status: str


class InviteLike(Protocol):
    email: Optional[str]
    expires_at: datetime
    accepted_at: Optional[datetime]


def _is_sole_active_admin(target: MemberLike, active_admin_count: int) -> bool:
    return Role(target.role) == Role.ADMIN and target.is_active and active_admin_count <= 1


def _require_supervisor(actor_role: Optional[Role | str], action: str) -> Decision:
    if not is_supervisor(actor_role):
        return reject(RejectionKind.AUTHORIZATION, f"Only admins and managers can {action}")
    return ALLOWED


# ---------------------------------------------------------------------------
# Member management
# ---------------------------------------------------------------------------

def can_change_role(
    actor_role: Optional[Role | str],
    target: MemberLike,
    new_role: Role | str,
    active_admin_count: int,
) -> Decision:
    check = _require_supervisor(actor_role, "change member roles")
    if not check:
        return check
    if Role(new_role) == Role.ADMIN and Role(target.role) != Role.ADMIN:
        return reject(
            RejectionKind.AUTHORIZATION,
            "Admin elevation is not available here; use the admin grant procedure",
        )
    if Role(new_role) != Role.ADMIN and _is_sole_active_admin(target, active_admin_count):
        return reject(RejectionKind.INVARIANT, "Cannot demote the only admin of this organization")
    return ALLOWED


def can_set_display_name(actor_role: Optional[Role | str]) -> Decision:
    return _require_supervisor(actor_role, "rename other members")


def can_set_active(
    actor_role: Optional[Role | str],
    actor_id: uuid.UUID,
    target: MemberLike,
    active: bool,
    active_admin_count: int,
) -> Decision:
    check = _require_supervisor(actor_role, "activate or deactivate members")
    if not check:
        return check
    if active:
        return ALLOWED
    if target.user_id == actor_id:
        return reject(RejectionKind.INVARIANT, "Cannot deactivate yourself")
    if _is_sole_active_admin(target, active_admin_count):
        return reject(RejectionKind.INVARIANT, "Cannot deactivate the only admin of this organization")
    return ALLOWED


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

def can_invite(actor_role: Optional[Role | str]) -> Decision:
    return _require_supervisor(actor_role, "invite members")


def can_accept_invite(
    invite: InviteLike,
    user_email: Optional[str],
    now: datetime,
    membership: Optional[MemberLike],
) -> Decision:
    """Checked against the stored invite and the caller's existing membership row."""
    if invite.accepted_at is not None:
        return reject(RejectionKind.INVARIANT, "This invite has already been used")
    if as_utc(invite.expires_at) < as_utc(now):
        return reject(RejectionKind.INVARIANT, "This invite has expired")
    if invite.email and invite.email.lower() != (user_email or "").lower():
        return reject(RejectionKind.AUTHORIZATION, "This invite was issued for a different email address")
    if membership is not None:
        if membership.is_active:
            return reject(RejectionKind.INVARIANT, "You are already a member of this organization")
        return reject(
            RejectionKind.INVARIANT,
            "Your membership in this organization is deactivated; ask an admin to reactivate it",
        )
    return ALLOWED


# ---------------------------------------------------------------------------
# Tasks and replies
# ---------------------------------------------------------------------------

def can_manage_tasks(actor_role: Optional[Role | str]) -> Decision:
    return _require_supervisor(actor_role, "create projects and tasks")


def can_change_task_status(
    actor_role: Optional[Role | str],
    actor_id: uuid.UUID,
    assignee_id: Optional[uuid.UUID],
) -> Decision:
    if is_supervisor(actor_role) or (assignee_id is not None and assignee_id == actor_id):
        return ALLOWED
    return reject(RejectionKind.AUTHORIZATION, "Only the assignee or a supervisor can change this task's status")


def can_reassign_task(actor_role: Optional[Role | str]) -> Decision:
    return _require_supervisor(actor_role, "change a task's assignee or expected finish")


def can_reply(
    actor_role: Optional[Role | str],
    actor_id: uuid.UUID,
    assignee_id: Optional[uuid.UUID],
) -> Decision:
    if is_supervisor(actor_role) or (assignee_id is not None and assignee_id == actor_id):
        return ALLOWED
    return reject(RejectionKind.AUTHORIZATION, "You can only reply to tasks assigned to you")


def can_modify_reply(
    actor_role: Optional[Role | str],
    actor_id: uuid.UUID,
    author_id: uuid.UUID,
) -> Decision:
    # Supervisors may edit any reply, including another supervisor's.
    if is_supervisor(actor_role) or author_id == actor_id:
        return ALLOWED
    return reject(RejectionKind.AUTHORIZATION, "You can only edit or delete your own replies")


def task_scope(actor_role: Optional[Role | str], actor_id: uuid.UUID) -> Optional[uuid.UUID]:
    """Assignee filter for task listings; None means the full org task set."""
    if is_supervisor(actor_role):
        return None
    return actor_id


# ---------------------------------------------------------------------------
# Daily logs
# ---------------------------------------------------------------------------

EDITABLE_LOG_STATUSES = frozenset({DailyLogStatus.DRAFT, DailyLogStatus.REJECTED})


def can_edit_daily_log(actor_id: uuid.UUID, daily_log: Optional[DailyLogLike]) -> Decision:
    if daily_log is None:
        return ALLOWED
    if daily_log.user_id != actor_id:
        return reject(RejectionKind.AUTHORIZATION, "You can only edit your own daily log")
    if DailyLogStatus(daily_log.status) not in EDITABLE_LOG_STATUSES:
        return reject(
            RejectionKind.INVARIANT,
            f"A {daily_log.status} daily log cannot be edited",
        )
    return ALLOWED


def can_submit_daily_log(actor_id: uuid.UUID, daily_log: DailyLogLike, item_count: int) -> Decision:
    if daily_log.user_id != actor_id:
        return reject(RejectionKind.AUTHORIZATION, "You can only submit your own daily log")
    if DailyLogStatus(daily_log.status) != DailyLogStatus.DRAFT:
        return reject(RejectionKind.INVARIANT, "Only a draft daily log can be submitted")
    if item_count == 0:
        return reject(RejectionKind.INVARIANT, "Add at least one item before submitting")
    return ALLOWED


def can_review_daily_log(
    actor_role: Optional[Role | str],
    actor_id: uuid.UUID,
    daily_log: DailyLogLike,
) -> Decision:
    check = _require_supervisor(actor_role, "review daily logs")
    if not check:
        return check
    if daily_log.user_id == actor_id:
        return reject(RejectionKind.INVARIANT, "You cannot approve your own daily log")
    if DailyLogStatus(daily_log.status) != DailyLogStatus.PENDING:
        return reject(RejectionKind.INVARIANT, "Only a pending daily log can be reviewed")
    return ALLOWED


def can_archive_daily_item(
    actor_role: Optional[Role | str],
    actor_id: uuid.UUID,
    daily_log: DailyLogLike,
) -> Decision:
    if daily_log.user_id != actor_id and not is_supervisor(actor_role):
        return reject(RejectionKind.AUTHORIZATION, "You can only archive items from your own daily log")
    if DailyLogStatus(daily_log.status) != DailyLogStatus.APPROVED:
        return reject(RejectionKind.INVARIANT, "Items can only be archived from an approved daily log")
    return ALLOWED
