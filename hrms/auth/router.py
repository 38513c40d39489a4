"""Auth router — login, token refresh, logout, registration, current user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import _extract_bearer, get_current_user, require_permission
from hrms.auth.models import User
from hrms.auth.schemas import (
    LoginRequest,
    MeResponse,
    MenuBrief,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    TokenResponse,
    UserOut,
)
from hrms.auth.service import (
    authenticate,
    create_session,
    effective_permissions,
    refresh_access_token,
    register_user,
    revoke_session,
)
from hrms.common.audit import client_meta, create_audit_entry
from hrms.common.constants import MenuStatus
from hrms.common.rate_limit import limiter
from hrms.common.responses import success
from hrms.database import get_db

router = APIRouter(prefix="", tags=["auth"])


# ── POST /login — Email + password ──────────────────────────────────

@router.post("/login")
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate(db, body.email, body.password)

    ip, user_agent = client_meta(request)
    access_token, refresh_token, expires_in = await create_session(db, user, ip, user_agent)

    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=user.id,
        actor_id=user.id,
        new_values={"ip": ip, "user_agent": user_agent},
        ip_address=ip,
        user_agent=user_agent,
    )

    return success(
        TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            user=UserOut.model_validate(user),
        ),
        message="Login successful",
    )


# ── POST /refresh — Rotate the token pair ──────────────────────────

@router.post("/refresh")
async def refresh_token(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    ip, user_agent = client_meta(request)
    access_token, new_refresh, expires_in = await refresh_access_token(
        db, body.refresh_token, ip, user_agent,
    )
    return success(
        RefreshResponse(
            access_token=access_token,
            refresh_token=new_refresh,
            expires_in=expires_in,
        ),
    )


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await revoke_session(db, _extract_bearer(request))

    ip, user_agent = client_meta(request)
    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=user.id,
        actor_id=user.id,
        ip_address=ip,
        user_agent=user_agent,
    )
    return success(message="Logged out successfully")


# ── POST /register — Create a login account (admin) ────────────────

@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    actor: User = Depends(require_permission("users:manage")),
    db: AsyncSession = Depends(get_db),
):
    user = await register_user(db, body)

    ip, user_agent = client_meta(request)
    await create_audit_entry(
        db,
        action="create",
        entity_type="user",
        entity_id=user.id,
        actor_id=actor.id,
        new_values=body.model_dump(mode="json", exclude={"password"}),
        ip_address=ip,
        user_agent=user_agent,
    )
    return success(UserOut.model_validate(user), message="User registered")


# ── GET /me — Current user profile ─────────────────────────────────

@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    menus = []
    if user.role is not None:
        menus = sorted(
            (m for m in user.role.menus if m.status == MenuStatus.active),
            key=lambda m: (m.level, m.order, m.name),
        )

    profile = MeResponse(
        **UserOut.model_validate(user).model_dump(),
        employee_id=user.employee.id if user.employee else None,
        permissions=effective_permissions(user),
        menus=[MenuBrief.model_validate(m) for m in menus],
    )
    return success(profile)
