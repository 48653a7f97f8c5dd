"""
Integration tests for task endpoints and services.

Tests cover:
- Scoped listing: members only see their own tasks; others are a 404
- Status changes by assignee vs. non-assignee, completed_at bookkeeping
- Supervisor-only reassignment and expected-finish changes
- Progress replies carrying a status change
- Reply edit/delete permissions
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from taskboard.core.config import get_settings
from taskboard.models.task import Task
from taskboard.services import tasks as task_service
from taskboard_shared.schemas.common import Role, TaskStatus
from taskboard_shared.schemas.tasks import TaskCreate


BASE = "/api/v1/orgs/acme/tasks"


async def _create(client, seed, headers, assignee=None, **extra):
    body = {"project_id": str(seed.project_id), "description": "Write the launch plan"}
    if assignee:
        body["assignee_user_id"] = str(assignee)
    body.update(extra)
    resp = await client.post(f"{BASE}/", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Service-level
# ---------------------------------------------------------------------------

class TestTaskService:
    async def _task(self, session, seed, assignee=None) -> Task:
        return await task_service.create_task(
            session,
            TaskCreate(project_id=seed.project_id, description="t", assignee_user_id=assignee),
            seed.org_id,
            Role.MANAGER,
            seed.manager_id,
        )

    async def test_member_cannot_create(self, session, seed):
        with pytest.raises(HTTPException) as exc_info:
            await task_service.create_task(
                session,
                TaskCreate(project_id=seed.project_id, description="t"),
                seed.org_id,
                Role.MEMBER,
                seed.member_id,
            )
        assert exc_info.value.status_code == 403

    async def test_new_task_is_todo(self, session, seed):
        task = await self._task(session, seed)
        assert task.status == "todo"
        assert task.completed_at is None

    async def test_done_sets_and_reopen_clears_completed_at(self, session, seed):
        task = await self._task(session, seed, seed.member_id)
        await task_service.update_task_status(session, task, TaskStatus.DONE, Role.MEMBER, seed.member_id)
        assert task.completed_at is not None
        stamped = task.completed_at

        # Re-marking done keeps the original completion time
        await task_service.update_task_status(session, task, TaskStatus.DONE, Role.MEMBER, seed.member_id)
        assert task.completed_at == stamped

        await task_service.update_task_status(session, task, TaskStatus.IN_PROGRESS, Role.MEMBER, seed.member_id)
        assert task.completed_at is None

    async def test_assignee_must_be_active_member(self, session, seed):
        task = await self._task(session, seed)
        with pytest.raises(HTTPException) as exc_info:
            await task_service.update_task_assignee(
                session, task, seed.outsider_id, Role.MANAGER, seed.manager_id
            )
        assert exc_info.value.status_code == 422

    async def test_out_of_scope_task_is_not_found(self, session, seed):
        task = await self._task(session, seed, seed.other_member_id)
        with pytest.raises(HTTPException) as exc_info:
            await task_service.get_task_or_404(
                session, task.id, seed.org_id, Role.MEMBER, seed.member_id
            )
        assert exc_info.value.status_code == 404

    async def test_list_scoped_to_assignee(self, session, seed):
        await self._task(session, seed, seed.member_id)
        await self._task(session, seed, seed.other_member_id)
        await self._task(session, seed)

        mine = await task_service.list_tasks(session, seed.org_id, Role.MEMBER, seed.member_id)
        assert [t.assignee_user_id for t in mine] == [seed.member_id]

        # A member's assignee filter cannot widen the scope
        widened = await task_service.list_tasks(
            session, seed.org_id, Role.MEMBER, seed.member_id, assignee_id=seed.other_member_id
        )
        assert [t.assignee_user_id for t in widened] == [seed.member_id]

        everything = await task_service.list_tasks(session, seed.org_id, Role.ADMIN, seed.admin_id)
        assert len(everything) == 3


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

class TestTaskEndpoints:
    async def test_create_and_classify(self, client, seed, auth_headers):
        finish = datetime.now(timezone.utc) - timedelta(hours=1)
        task = await _create(
            client, seed, auth_headers(seed.manager_id), seed.member_id,
            expected_finish_at=finish.isoformat(),
        )
        assert task["status"] == "todo"
        assert task["due"] == "overdue"
        assert task["project_name"] == "Launch"

    async def test_member_cannot_create(self, client, seed, auth_headers):
        resp = await client.post(
            f"{BASE}/",
            json={"project_id": str(seed.project_id), "description": "nope"},
            headers=auth_headers(seed.member_id),
        )
        assert resp.status_code == 403

    async def test_unknown_project_is_404(self, client, seed, auth_headers):
        resp = await client.post(
            f"{BASE}/",
            json={"project_id": str(seed.outsider_id), "description": "x"},
            headers=auth_headers(seed.admin_id),
        )
        assert resp.status_code == 404

    async def test_member_sees_only_own_tasks(self, client, seed, auth_headers):
        manager = auth_headers(seed.manager_id)
        mine = await _create(client, seed, manager, seed.member_id)
        theirs = await _create(client, seed, manager, seed.other_member_id)

        resp = await client.get(f"{BASE}/", headers=auth_headers(seed.member_id))
        assert [t["id"] for t in resp.json()] == [mine["id"]]

        resp = await client.get(f"{BASE}/{theirs['id']}", headers=auth_headers(seed.member_id))
        assert resp.status_code == 404

    async def test_assignee_changes_status(self, client, seed, auth_headers):
        task = await _create(client, seed, auth_headers(seed.manager_id), seed.member_id)
        resp = await client.post(
            f"{BASE}/{task['id']}/status",
            json={"status": "done"},
            headers=auth_headers(seed.member_id),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "done"
        assert body["completed_at"] is not None
        assert body["due"] == "none"

    async def test_member_cannot_reassign(self, client, seed, auth_headers):
        task = await _create(client, seed, auth_headers(seed.manager_id), seed.member_id)
        resp = await client.patch(
            f"{BASE}/{task['id']}/assignee",
            json={"assignee_user_id": str(seed.other_member_id)},
            headers=auth_headers(seed.member_id),
        )
        assert resp.status_code == 403

    async def test_supervisor_reassigns_and_unassigns(self, client, seed, auth_headers):
        manager = auth_headers(seed.manager_id)
        task = await _create(client, seed, manager, seed.member_id)

        resp = await client.patch(
            f"{BASE}/{task['id']}/assignee",
            json={"assignee_user_id": str(seed.other_member_id)},
            headers=manager,
        )
        assert resp.json()["assignee_user_id"] == str(seed.other_member_id)

        resp = await client.patch(f"{BASE}/{task['id']}/assignee", json={"assignee_user_id": None}, headers=manager)
        assert resp.json()["assignee_user_id"] is None

    async def test_expected_finish_change(self, client, seed, auth_headers):
        manager = auth_headers(seed.manager_id)
        task = await _create(client, seed, manager, seed.member_id)
        finish = datetime.now(timezone.utc) + timedelta(days=3)
        resp = await client.patch(
            f"{BASE}/{task['id']}/expected-finish",
            json={"expected_finish_at": finish.isoformat()},
            headers=manager,
        )
        assert resp.status_code == 200
        assert resp.json()["due"] == "due_this_week"

        resp = await client.patch(
            f"{BASE}/{task['id']}/expected-finish",
            json={"expected_finish_at": finish.isoformat()},
            headers=auth_headers(seed.member_id),
        )
        assert resp.status_code == 403

    async def test_blank_description_is_rejected(self, client, seed, auth_headers):
        resp = await client.post(
            f"{BASE}/",
            json={"project_id": str(seed.project_id), "description": "   "},
            headers=auth_headers(seed.manager_id),
        )
        assert resp.status_code == 422

    async def test_due_bucket_follows_configured_horizon(self, client, seed, auth_headers, monkeypatch):
        monkeypatch.setattr(get_settings(), "due_soon_days", 2)
        manager = auth_headers(seed.manager_id)
        finish = datetime.now(timezone.utc) + timedelta(days=4)
        task = await _create(client, seed, manager, seed.member_id, expected_finish_at=finish.isoformat())
        assert task["due"] == "none"

        resp = await client.get(f"{BASE}/{task['id']}", headers=manager)
        assert resp.json()["due"] == "none"

        resp = await client.get("/api/v1/orgs/acme/dashboard", headers=manager)
        assert resp.json()["summary"]["due_this_week"] == 0


class TestReplies:
    async def test_reply_with_status_change(self, client, seed, auth_headers):
        task = await _create(client, seed, auth_headers(seed.manager_id), seed.member_id)
        resp = await client.post(
            f"{BASE}/{task['id']}/updates",
            json={"message": "  Started on it  ", "new_status": "in_progress"},
            headers=auth_headers(seed.member_id),
        )
        assert resp.status_code == 201
        reply = resp.json()
        assert reply["message"] == "Started on it"
        assert reply["author_name"] == "Mia (mia@example.com)"

        resp = await client.get(f"{BASE}/{task['id']}", headers=auth_headers(seed.member_id))
        assert resp.json()["status"] == "in_progress"

    async def test_non_assignee_cannot_reply(self, client, seed, auth_headers):
        task = await _create(client, seed, auth_headers(seed.manager_id), seed.member_id)
        resp = await client.post(
            f"{BASE}/{task['id']}/updates",
            json={"message": "hi"},
            headers=auth_headers(seed.other_member_id),
        )
        # not even visible to them
        assert resp.status_code == 404

    async def test_edit_permissions(self, client, seed, auth_headers):
        task = await _create(client, seed, auth_headers(seed.manager_id), seed.member_id)
        resp = await client.post(
            f"{BASE}/{task['id']}/updates",
            json={"message": "from manager"},
            headers=auth_headers(seed.manager_id),
        )
        reply_id = resp.json()["id"]

        # The assignee can see it but not edit it
        resp = await client.patch(
            f"{BASE}/{task['id']}/updates/{reply_id}",
            json={"message": "hijack"},
            headers=auth_headers(seed.member_id),
        )
        assert resp.status_code == 403

        # Another supervisor can
        resp = await client.patch(
            f"{BASE}/{task['id']}/updates/{reply_id}",
            json={"message": "edited by admin"},
            headers=auth_headers(seed.admin_id),
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "edited by admin"

    async def test_delete_reply(self, client, seed, auth_headers):
        task = await _create(client, seed, auth_headers(seed.manager_id), seed.member_id)
        member = auth_headers(seed.member_id)
        resp = await client.post(f"{BASE}/{task['id']}/updates", json={"message": "x"}, headers=member)
        reply_id = resp.json()["id"]

        resp = await client.delete(f"{BASE}/{task['id']}/updates/{reply_id}", headers=member)
        assert resp.status_code == 204

        resp = await client.get(f"{BASE}/{task['id']}/updates", headers=member)
        assert resp.json()["data"] == []

    async def test_blank_message_is_rejected(self, client, seed, auth_headers):
        task = await _create(client, seed, auth_headers(seed.manager_id), seed.member_id)
        manager = auth_headers(seed.manager_id)
        resp = await client.post(f"{BASE}/{task['id']}/updates", json={"message": "   "}, headers=manager)
        assert resp.status_code == 422

        resp = await client.post(f"{BASE}/{task['id']}/updates", json={"message": "ok"}, headers=manager)
        reply_id = resp.json()["id"]
        resp = await client.patch(
            f"{BASE}/{task['id']}/updates/{reply_id}", json={"message": "\n\t "}, headers=manager
        )
        assert resp.status_code == 422

        resp = await client.get(f"{BASE}/{task['id']}/updates", headers=manager)
        assert [r["message"] for r in resp.json()["data"]] == ["ok"]

    async def test_author_keeps_reply_after_reassignment(self, client, seed, auth_headers):
        manager = auth_headers(seed.manager_id)
        member = auth_headers(seed.member_id)
        task = await _create(client, seed, manager, seed.member_id)
        resp = await client.post(f"{BASE}/{task['id']}/updates", json={"message": "half way"}, headers=member)
        reply_id = resp.json()["id"]

        resp = await client.patch(
            f"{BASE}/{task['id']}/assignee",
            json={"assignee_user_id": str(seed.other_member_id)},
            headers=manager,
        )
        assert resp.status_code == 200

        # The task itself is out of scope now
        resp = await client.get(f"{BASE}/{task['id']}", headers=member)
        assert resp.status_code == 404

        resp = await client.patch(
            f"{BASE}/{task['id']}/updates/{reply_id}", json={"message": "handed over"}, headers=member
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "handed over"

        # The new assignee did not write it
        resp = await client.delete(
            f"{BASE}/{task['id']}/updates/{reply_id}", headers=auth_headers(seed.other_member_id)
        )
        assert resp.status_code == 403

        resp = await client.delete(f"{BASE}/{task['id']}/updates/{reply_id}", headers=member)
        assert resp.status_code == 204


class TestEndToEnd:
    async def test_member_completes_assigned_task(self, client, seed, auth_headers):
        """Manager assigns, member finishes it via a reply, dashboard counts it."""
        manager = auth_headers(seed.manager_id)
        member = auth_headers(seed.member_id)
        task = await _create(client, seed, manager, seed.member_id)

        resp = await client.post(
            f"{BASE}/{task['id']}/updates",
            json={"message": "Done", "new_status": "done"},
            headers=member,
        )
        assert resp.status_code == 201

        resp = await client.get("/api/v1/orgs/acme/dashboard", headers=member)
        summary = resp.json()["summary"]
        assert summary["completed"] == 1
        assert summary["completed_today"] == 1
        assert resp.json()["workload"] is None

        resp = await client.get("/api/v1/orgs/acme/completions/tasks", headers=manager)
        rows = resp.json()
        assert [r["task_id"] for r in rows] == [task["id"]]
        assert rows[0]["completed_at"] is not None
        assert rows[0]["assignee_name"] == "Mia (mia@example.com)"
