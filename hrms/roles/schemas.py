"""Role Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _clean_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    permissions: list[str] = Field(default_factory=list)
    is_active: bool = True

    _strip_name = field_validator("name", "display_name")(_clean_name)


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    permissions: Optional[list[str]] = None
    is_active: Optional[bool] = None


class RoleMenusUpdate(BaseModel):
    menu_ids: list[uuid.UUID]


class RoleBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    display_name: str
    level: int


class RoleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    display_name: str
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    level: int
    path: str
    permissions: list[str] = Field(default_factory=list)
    is_active: bool
    created_at: datetime
    updated_at: datetime


class RoleTreeNode(BaseModel):
    id: uuid.UUID
    name: str
    display_name: str
    level: int
    children_count: int = 0
    total_descendants: int = 0
    children: list[RoleTreeNode] = Field(default_factory=list)


class RoleContext(BaseModel):
    role: RoleOut
    ancestors: list[RoleBrief]
    children: list[RoleBrief]
    descendants_count: int
    breadcrumb: str
