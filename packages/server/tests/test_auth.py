"""
Tests for Authentication and Authorization.

Covers:
- Email/Password registration (open signup into the default org) and login
- JWT creation, decoding, revocation
- Password hashing
- CSRF middleware
- Security headers middleware
- Role-based authorization (require_member, require_supervisor)
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import jwt as pyjwt
import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from taskboard.core.auth import (
    AuthenticatedUser,
    create_jwt,
    decode_jwt,
    generate_csrf_token,
    hash_password,
    require_member,
    require_supervisor,
    verify_password,
)
from taskboard.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware, SECURITY_HEADERS
from taskboard.models.organization import Organization
from taskboard_shared.schemas.common import Role


# ---------------------------------------------------------------------------
# Unit Tests: Password hashing
# ---------------------------------------------------------------------------

class TestPasswordHashing:
    def test_hash_and_verify(self):
        password = "MySecureP@ssw0rd!"
        hashed = hash_password(password)
        assert hashed != password
        assert verify_password(password, hashed)

    def test_wrong_password_fails(self):
        hashed = hash_password("correct-password")
        assert not verify_password("wrong-password", hashed)

    def test_different_hashes_for_same_password(self):
        """bcrypt uses random salt, so hashes differ."""
        h1 = hash_password("same")
        h2 = hash_password("same")
        assert h1 != h2
        assert verify_password("same", h1)
        assert verify_password("same", h2)


# ---------------------------------------------------------------------------
# Unit Tests: JWT
# ---------------------------------------------------------------------------

class TestJWT:
    def test_create_and_decode(self):
        uid = uuid.uuid4()
        token, jti = create_jwt(uid)
        payload = decode_jwt(token)
        assert payload["sub"] == str(uid)
        assert payload["jti"] == jti

    def test_expired_jwt_raises(self):
        token, _ = create_jwt(uuid.uuid4(), expires_delta=timedelta(seconds=-1))
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_jwt(token)

    def test_tampered_jwt_raises(self):
        token, _ = create_jwt(uuid.uuid4())
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        with pytest.raises(pyjwt.PyJWTError):
            decode_jwt(tampered)


class TestCSRFToken:
    def test_generates_unique_tokens(self):
        t1 = generate_csrf_token()
        t2 = generate_csrf_token()
        assert t1 != t2
        assert len(t1) > 20


# ---------------------------------------------------------------------------
# Integration Tests: Middleware
# ---------------------------------------------------------------------------

class TestSecurityHeadersMiddleware:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        client = TestClient(app)
        resp = client.get("/test")
        assert resp.status_code == 200
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value


class TestCSRFMiddleware:
    def _make_app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(CSRFMiddleware)

        @app.get("/test")
        async def get_test():
            return {"ok": True}

        @app.post("/test")
        async def post_test():
            return {"ok": True}

        return app

    def test_get_passes_without_csrf(self):
        client = TestClient(self._make_app())
        assert client.get("/test").status_code == 200

    def test_post_with_bearer_skips_csrf(self):
        client = TestClient(self._make_app())
        resp = client.post("/test", headers={"Authorization": "Bearer some-jwt"})
        assert resp.status_code == 200

    def test_post_without_session_cookie_passes(self):
        """No session cookie = not a browser request, skip CSRF."""
        client = TestClient(self._make_app())
        assert client.post("/test").status_code == 200

    def test_post_with_session_but_no_csrf_fails(self):
        client = TestClient(self._make_app(), cookies={"tb_session": "some-jwt"})
        resp = client.post("/test")
        assert resp.status_code == 403
        assert "CSRF" in resp.json()["detail"]

    def test_post_with_matching_csrf_passes(self):
        csrf_token = "test-csrf-token"
        client = TestClient(
            self._make_app(),
            cookies={"tb_session": "some-jwt", "tb_csrf": csrf_token},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": csrf_token})
        assert resp.status_code == 200

    def test_post_with_mismatched_csrf_fails(self):
        client = TestClient(
            self._make_app(),
            cookies={"tb_session": "some-jwt", "tb_csrf": "token-a"},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": "token-b"})
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Integration Tests: Auth Endpoints
# ---------------------------------------------------------------------------

class TestAuthEndpoints:
    async def test_register_joins_default_org(self, client, session):
        session.add(Organization(id=uuid.uuid4(), name="Default", slug="default"))
        await session.commit()

        resp = await client.post(
            "/auth/register",
            json={"email": "new@example.com", "password": "longenough", "display_name": "Nina"},
        )
        assert resp.status_code == 201
        token = resp.json()["access_token"]

        resp = await client.get("/api/v1/orgs", headers={"Authorization": f"Bearer {token}"})
        assert resp.json()["data"][0]["slug"] == "default"
        assert resp.json()["data"][0]["role"] == "member"

    async def test_register_without_default_org(self, client):
        resp = await client.post(
            "/auth/register",
            json={"email": "solo@example.com", "password": "longenough", "display_name": "Sol"},
        )
        assert resp.status_code == 201
        token = resp.json()["access_token"]
        resp = await client.get("/api/v1/orgs", headers={"Authorization": f"Bearer {token}"})
        assert resp.json()["data"] == []

    async def test_register_short_password(self, client):
        resp = await client.post(
            "/auth/register",
            json={"email": "test@example.com", "password": "short", "display_name": "Test"},
        )
        assert resp.status_code == 422

    async def test_duplicate_email_conflicts(self, client):
        body = {"email": "dup@example.com", "password": "longenough", "display_name": "Dup"}
        assert (await client.post("/auth/register", json=body)).status_code == 201
        client.cookies.clear()
        assert (await client.post("/auth/register", json=body)).status_code == 409

    async def test_login_and_me(self, client):
        body = {"email": "me@example.com", "password": "longenough", "display_name": "Me"}
        await client.post("/auth/register", json=body)
        client.cookies.clear()

        resp = await client.post("/auth/login", json={"email": body["email"], "password": "wrong-pass"})
        assert resp.status_code == 401

        resp = await client.post("/auth/login", json={"email": body["email"], "password": body["password"]})
        assert resp.status_code == 200
        token = resp.json()["access_token"]

        resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.json()["display_name"] == "Me"

    async def test_update_own_display_name(self, client, seed, auth_headers):
        headers = auth_headers(seed.member_id)
        resp = await client.patch("/auth/me", json={"display_name": " Mia Chen "}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["display_name"] == "Mia Chen"

        resp = await client.get("/auth/me", headers=headers)
        assert resp.json()["display_name"] == "Mia Chen"

        resp = await client.patch("/auth/me", json={"display_name": "  "}, headers=headers)
        assert resp.status_code == 422

    async def test_garbage_token_is_401(self, client):
        resp = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    async def test_logout_revokes(self, client, monkeypatch):
        revoke = AsyncMock()
        monkeypatch.setattr("taskboard.api.v1.auth.revoke_jwt", revoke)
        token, jti = create_jwt(uuid.uuid4())

        resp = await client.post("/auth/logout", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["message"] == "Logged out"
        revoke.assert_awaited_once()
        assert revoke.await_args.args[0] == jti


# ---------------------------------------------------------------------------
# Unit Tests: Role-based auth matrix
# ---------------------------------------------------------------------------

class TestAuthorizationMatrix:
    """
    Verify that role dependencies enforce correct access levels.

    Uses mock AuthenticatedUser objects to test the dependency functions directly.
    """

    def _mock_auth(self, role: Role) -> AuthenticatedUser:
        user = MagicMock()
        user.id = uuid.uuid4()
        org = MagicMock()
        org.id = uuid.uuid4()
        return AuthenticatedUser(user=user, org=org, memberships=[], role=role)

    async def test_member_allows_all_roles(self):
        for role in Role:
            auth = self._mock_auth(role)
            assert await require_member(auth) == auth

    async def test_supervisor_allows_admin_and_manager(self):
        for role in (Role.ADMIN, Role.MANAGER):
            auth = self._mock_auth(role)
            assert await require_supervisor(auth) == auth

    async def test_supervisor_rejects_member(self):
        with pytest.raises(HTTPException) as exc_info:
            await require_supervisor(self._mock_auth(Role.MEMBER))
        assert exc_info.value.status_code == 403


# ---------------------------------------------------------------------------
# Unit Tests: JWT Revocation (mocked Redis)
# ---------------------------------------------------------------------------

class TestJWTRevocation:
    async def test_revoke_and_check(self):
        mock_redis = AsyncMock()
        mock_redis.setex = AsyncMock()
        mock_redis.exists = AsyncMock(return_value=1)

        with patch("taskboard.core.auth.get_redis", return_value=mock_redis):
            from taskboard.core.auth import is_jwt_revoked, revoke_jwt

            await revoke_jwt("test-jti-123")
            mock_redis.setex.assert_called_once_with("jwt:revoked:test-jti-123", 3600, "1")
            assert await is_jwt_revoked("test-jti-123") is True

    async def test_non_revoked_jwt(self):
        mock_redis = AsyncMock()
        mock_redis.exists = AsyncMock(return_value=0)

        with patch("taskboard.core.auth.get_redis", return_value=mock_redis):
            from taskboard.core.auth import is_jwt_revoked
            assert await is_jwt_revoked("non-existent-jti") is False
