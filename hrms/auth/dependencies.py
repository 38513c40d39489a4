"""Auth dependencies — JWT validation, permission and role-level enforcement."""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import User, UserSession
from hrms.auth.service import effective_permissions, has_permission, load_user
from hrms.common.exceptions import ForbiddenException, NotFoundException, UnauthorizedException
from hrms.config import settings
from hrms.core_hr.models import Employee
from hrms.database import get_db


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthorizedException("Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate JWT, verify session, return the authenticated User."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise UnauthorizedException("Token has expired.")
    except JWTError:
        raise UnauthorizedException("Invalid token.")

    if payload.get("type") != "access":
        raise UnauthorizedException("Invalid token type.")

    # Session must exist, not revoked, not expired
    result = await db.execute(
        select(UserSession.id).where(
            UserSession.token_hash == _hash_token(token),
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    if result.scalar() is None:
        raise UnauthorizedException("Session invalid or expired.")

    user = await load_user(db, uuid.UUID(payload["sub"]))
    if user is None or not user.is_active:
        raise UnauthorizedException("User account is inactive or not found.")

    # Downstream handlers read these without reloading the role
    request.state.permissions = effective_permissions(user)
    request.state.role_level = user.role.level if user.role else None
    return user


# ── Permission-based dependency ─────────────────────────────────────

def require_permission(*permissions: str) -> Callable:
    """Return a dependency that passes when the user holds ANY of *permissions*."""

    async def _check(user: User = Depends(get_current_user)) -> User:
        if not any(has_permission(user, p) for p in permissions):
            raise ForbiddenException(
                detail=f"Missing permission. Required one of: {list(permissions)}.",
            )
        return user

    return _check


# ── Role-level dependency ───────────────────────────────────────────

def require_role_level(max_level: int) -> Callable:
    """Return a dependency that requires a role at depth ``<= max_level``.

    Level 0 is the root of the role tree, so smaller levels are more senior.
    """

    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role is None or user.role.level > max_level:
            raise ForbiddenException(
                detail=f"A role at level {max_level} or above is required.",
            )
        return user

    return _check


# ── Employee of the caller ──────────────────────────────────────────

async def get_current_employee(user: User = Depends(get_current_user)) -> Employee:
    """The caller's employee record; self-service endpoints need one."""
    if user.employee is None:
        raise NotFoundException("Employee", f"user:{user.id}")
    return user.employee
