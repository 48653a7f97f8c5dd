"""
Effective role resolution.

A user holds at most one membership per organization, but callers may hand
in any number of rows (e.g. straight from a query); the effective role is
the highest-privilege role among the *active* ones.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from taskboard_shared.schemas.common import ROLE_PRIVILEGE_ORDER, SUPERVISOR_ROLES, Role


class MembershipLike(Protocol):
    role: str
    is_active: bool


def role_rank(role: Role | str) -> int:
    """Position of a role in the privilege order (member=0 ... admin=2)."""
    return ROLE_PRIVILEGE_ORDER.index(Role(role))


def effective_role(memberships: Iterable[MembershipLike]) -> Optional[Role]:
    """Highest-privilege role among active memberships.

    Returns None when there is no active membership: the user has no access
    to the organization at all, which is not the same as being a member.
    """
    best: Optional[Role] = None
    for m in memberships:
        if not m.is_active:
            continue
        role = Role(m.role)
        if best is None or role_rank(role) > role_rank(best):
            best = role
    return best


def is_supervisor(role: Optional[Role | str]) -> bool:
    if role is None:
        return False
    return Role(role) in SUPERVISOR_ROLES
