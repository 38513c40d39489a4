"""Auth Pydantic schemas for request / response validation."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from hrms.common.constants import GenderType, UserStatus


# ── Requests ────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    gender: Optional[GenderType] = None
    phone: Optional[str] = Field(None, max_length=30)
    position: Optional[str] = Field(None, max_length=150)
    work_timezone: str = "UTC"
    role_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    permissions: list[str] = Field(default_factory=list)


# ── Embedded / Shared ──────────────────────────────────────────────

class RoleBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    display_name: str
    level: int


class DepartmentBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


class MenuBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    icon: str
    level: int
    order: int


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    gender: Optional[GenderType] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    work_timezone: str = "UTC"
    profile_picture: Optional[str] = None
    status: UserStatus
    role: Optional[RoleBrief] = None
    department: Optional[DepartmentBrief] = None
    last_login: Optional[datetime] = None


# ── Responses ───────────────────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


class RefreshResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(UserOut):
    employee_id: Optional[uuid.UUID] = None
    permissions: list[str] = Field(default_factory=list)
    menus: list[MenuBrief] = Field(default_factory=list)
