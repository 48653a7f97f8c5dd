"""
Tests for effective role resolution.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from taskboard.core.roles import effective_role, is_supervisor, role_rank
from taskboard_shared.schemas.common import ROLE_PRIVILEGE_ORDER, Role


@dataclass
class Row:
    role: str
    is_active: bool = True


class TestPrivilegeOrder:
    def test_order_is_total_and_ascending(self):
        assert ROLE_PRIVILEGE_ORDER == [Role.MEMBER, Role.MANAGER, Role.ADMIN]
        assert role_rank(Role.MEMBER) < role_rank(Role.MANAGER) < role_rank(Role.ADMIN)

    def test_rank_accepts_raw_strings(self):
        assert role_rank("admin") == 2


class TestEffectiveRole:
    def test_no_memberships_means_no_access(self):
        assert effective_role([]) is None

    def test_only_inactive_memberships_means_no_access(self):
        assert effective_role([Row("admin", is_active=False)]) is None

    def test_single_active_membership(self):
        assert effective_role([Row("manager")]) == Role.MANAGER

    def test_highest_active_role_wins(self):
        rows = [Row("member"), Row("admin"), Row("manager")]
        assert effective_role(rows) == Role.ADMIN

    def test_inactive_higher_role_is_ignored(self):
        rows = [Row("admin", is_active=False), Row("member")]
        assert effective_role(rows) == Role.MEMBER

    def test_member_is_distinct_from_no_access(self):
        assert effective_role([Row("member")]) is Role.MEMBER
        assert effective_role([Row("member", is_active=False)]) is None

    def test_unknown_role_raises(self):
        with pytest.raises(ValueError):
            effective_role([Row("owner")])


class TestIsSupervisor:
    @pytest.mark.parametrize(
        "role, expected",
        [(Role.ADMIN, True), (Role.MANAGER, True), (Role.MEMBER, False), (None, False), ("manager", True)],
    )
    def test_supervisor_roles(self, role, expected):
        assert is_supervisor(role) is expected
