"""Auth service — password login, JWT management, session lifecycle."""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.models import User, UserSession
from hrms.auth.schemas import RegisterRequest
from hrms.common.constants import PERMISSIONS, WILDCARD_PERMISSION
from hrms.common.exceptions import (
    DuplicateException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from hrms.config import settings
from hrms.roles.models import Role

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


# ── Permissions ─────────────────────────────────────────────────────

def effective_permissions(user: User) -> list[str]:
    """Union of the user's own grants and those of their role.

    A ``"*"`` grant expands to every known permission.
    """
    granted = set(user.permissions or [])
    if user.role is not None and user.role.is_active:
        granted.update(user.role.permissions or [])
    if WILDCARD_PERMISSION in granted:
        return sorted(PERMISSIONS)
    return sorted(granted)


def has_permission(user: User, permission: str) -> bool:
    granted = set(user.permissions or [])
    if user.role is not None and user.role.is_active:
        granted.update(user.role.permissions or [])
    return WILDCARD_PERMISSION in granted or permission in granted


# ── User lookup ─────────────────────────────────────────────────────

async def load_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    """Return a user with role (and its menus), department and employee loaded."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(
            selectinload(User.role).selectinload(Role.menus),
            selectinload(User.department),
            selectinload(User.employee),
        ),
    )
    return result.scalars().first()


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Validate credentials and return the active user."""
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalars().first()
    if user is None:
        raise NotFoundException(entity_type="User", entity_id=email)
    if not verify_password(password, user.password_hash):
        raise ValidationException({"password": ["Invalid email or password."]})
    if not user.is_active:
        raise ForbiddenException(detail=f"Account is {user.status.value}.")

    user.last_login = datetime.now(timezone.utc)
    await db.flush()
    return await load_user(db, user.id)


async def register_user(db: AsyncSession, data: RegisterRequest) -> User:
    """Create a login account with a bcrypt-hashed password."""
    email = data.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar() is not None:
        raise DuplicateException("email", email)

    if data.role_id is not None and await db.get(Role, data.role_id) is None:
        raise ValidationException({"role_id": [f"Role '{data.role_id}' does not exist."]})

    user = User(
        **data.model_dump(exclude={"email", "password"}),
        email=email,
        password_hash=hash_password(data.password),
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise DuplicateException("email", email)

    logger.info("Registered user %s", email)
    return await load_user(db, user.id)


# ── JWT helpers ─────────────────────────────────────────────────────

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _create_access_token(user_id: uuid.UUID, role_name: Optional[str]) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_MINUTES * 60
    payload = {
        "sub": str(user_id),
        "role": role_name,
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRY_MINUTES),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


def _create_refresh_token(user_id: uuid.UUID) -> str:
    payload = {
        "sub": str(user_id),
        "type": "refresh",
        "jti": uuid.uuid4().hex,
        "exp": datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_EXPIRY_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# ── Session management ──────────────────────────────────────────────

async def create_session(
    db: AsyncSession,
    user: User,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> tuple[str, str, int]:
    """Issue a JWT pair and persist the session.

    Returns (access_token, refresh_token, expires_in).
    """
    role_name = user.role.name if user.role else None
    access_token, expires_in = _create_access_token(user.id, role_name)
    refresh_token = _create_refresh_token(user.id)

    session = UserSession(
        user_id=user.id,
        token_hash=_hash_token(access_token),
        refresh_token_hash=_hash_token(refresh_token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_EXPIRY_DAYS),
    )
    db.add(session)
    await db.flush()

    return access_token, refresh_token, expires_in


# ── Refresh (with token rotation + reuse detection) ─────────────────

async def refresh_access_token(
    db: AsyncSession,
    refresh_token_str: str,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> tuple[str, str, int]:
    """Validate refresh token, rotate it, and issue a new token pair.

    Each refresh token can be used once. Presenting an already consumed
    token revokes every session of that user.
    """
    try:
        payload = jwt.decode(
            refresh_token_str,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        raise UnauthorizedException(detail="Invalid or expired refresh token.")

    if payload.get("type") != "refresh":
        raise UnauthorizedException(detail="Invalid token type.")

    result = await db.execute(
        select(UserSession).where(
            UserSession.refresh_token_hash == _hash_token(refresh_token_str),
        ),
    )
    session = result.scalars().first()
    if session is None:
        raise UnauthorizedException(detail="Invalid refresh token.")

    if session.is_revoked:
        logger.warning("Refresh token reuse detected for user %s", session.user_id)
        await _revoke_all_user_sessions(db, session.user_id)
        await db.commit()  # persist revocations before the error rolls back
        raise UnauthorizedException(
            detail="Refresh token reuse detected. All sessions revoked.",
        )

    # Consume the old session
    session.is_revoked = True
    await db.flush()

    user = await load_user(db, uuid.UUID(payload["sub"]))
    if user is None or not user.is_active:
        raise UnauthorizedException(detail="User account is inactive or not found.")

    return await create_session(db, user, ip, user_agent)


# ── Revoke ──────────────────────────────────────────────────────────

async def _revoke_all_user_sessions(db: AsyncSession, user_id: uuid.UUID) -> None:
    result = await db.execute(
        select(UserSession).where(
            UserSession.user_id == user_id,
            UserSession.is_revoked.is_(False),
        ),
    )
    for session in result.scalars().all():
        session.is_revoked = True
    await db.flush()


async def revoke_session(db: AsyncSession, token: str) -> None:
    """Mark the session that issued *token* as revoked."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == _hash_token(token)),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()
