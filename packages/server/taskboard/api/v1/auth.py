"""
Authentication endpoints.

- Email/Password registration & login
- JWT session management (cookie for browsers, token in body for API clients)
- Logout with server-side revocation
- Profile: change your own display name
"""

from __future__ import annotations

import uuid

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskboard.core.auth import (
    bearer_header,
    create_jwt,
    decode_jwt,
    generate_csrf_token,
    get_current_user,
    hash_password,
    revoke_jwt,
    verify_password,
)
from taskboard.core.config import get_settings
from taskboard.core.database import get_session
from taskboard.core.middleware import CSRF_COOKIE, SESSION_COOKIE
from taskboard.models.org_member import OrgMember
from taskboard.models.organization import Organization
from taskboard.models.user import User
from taskboard.services import members as member_service
from taskboard_shared.schemas.common import Role
from taskboard_shared.schemas.organizations import DisplayNameUpdate

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    display_name: str = Field(min_length=1, max_length=200)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    user_id: str
    email: str
    access_token: str
    message: str


class MeResponse(BaseModel):
    user_id: str
    email: str | None
    display_name: str | None


# ---------------------------------------------------------------------------
# Email/Password
# ---------------------------------------------------------------------------

@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user. Joins the default org as a member if it exists."""
    result = await session.execute(select(User).where(User.email == body.email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        id=uuid.uuid4(),
        email=body.email,
        display_name=body.display_name,
        password_hash=hash_password(body.password),
    )
    session.add(user)
    await session.flush()

    result = await session.execute(
        select(Organization).where(Organization.slug == settings.default_org_slug)
    )
    org = result.scalar_one_or_none()
    if org:
        session.add(OrgMember(org_id=org.id, user_id=user.id, role=Role.MEMBER.value))
        await session.flush()

    token, _jti = create_jwt(user.id)
    _set_session_cookies(response, token, generate_csrf_token())

    log.info("user.registered", user_id=str(user.id), joined_org=org.slug if org else None)
    return AuthResponse(
        user_id=str(user.id),
        email=body.email,
        access_token=token,
        message="Registration successful",
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a JWT session."""
    result = await session.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()

    if not user or not user.password_hash:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", email=body.email, reason="bad_password")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token, _jti = create_jwt(user.id)
    _set_session_cookies(response, token, generate_csrf_token())

    log.info("auth.login_success", user_id=str(user.id))
    return AuthResponse(
        user_id=str(user.id),
        email=body.email,
        access_token=token,
        message="Login successful",
    )


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)):
    return MeResponse(user_id=str(user.id), email=user.email, display_name=user.display_name)


@router.patch("/me", response_model=MeResponse)
async def update_me(
    body: DisplayNameUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Change the signed-in user's display name."""
    user = await member_service.update_display_name(session, user, body.display_name)
    return MeResponse(user_id=str(user.id), email=user.email, display_name=user.display_name)


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    authorization: str | None = Depends(bearer_header),
):
    """Invalidate the current session."""
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
    else:
        token = request.cookies.get(SESSION_COOKIE)

    if token:
        try:
            payload = decode_jwt(token)
        except jwt.PyJWTError:
            payload = {}  # already invalid, just clear cookies
        jti = payload.get("jti")
        if jti:
            await revoke_jwt(jti, ttl_seconds=settings.jwt_expire_minutes * 60)

    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}
