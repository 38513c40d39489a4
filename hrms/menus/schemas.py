"""Menu Pydantic v2 schemas."""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hrms.common.constants import DEFAULT_MENU_ICON, MAX_MENU_PARENTS, MenuStatus

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _SLUG_STRIP.sub("-", value.lower()).strip("-")


class MenuCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    icon: str = Field(DEFAULT_MENU_ICON, max_length=60)
    status: MenuStatus = MenuStatus.active
    parent_ids: list[uuid.UUID] = Field(default_factory=list, max_length=MAX_MENU_PARENTS)
    order: int = Field(0, ge=0, le=1)

    @model_validator(mode="after")
    def _fill_slug(self) -> MenuCreate:
        self.name = self.name.strip()
        self.slug = slugify(self.slug or self.name)
        if not self.slug:
            raise ValueError("slug must contain at least one letter or digit")
        return self


class MenuUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    icon: Optional[str] = Field(None, max_length=60)
    status: Optional[MenuStatus] = None
    parent_ids: Optional[list[uuid.UUID]] = Field(None, max_length=MAX_MENU_PARENTS)
    order: Optional[int] = Field(None, ge=0, le=1)


class MenuOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    icon: str
    status: MenuStatus
    level: int
    order: int
    parent_ids: list[uuid.UUID] = Field(default_factory=list)
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class MenuTreeNode(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    icon: str
    level: int
    order: int
    children: list[MenuTreeNode] = Field(default_factory=list)


class MenuBreadcrumb(BaseModel):
    menu_id: uuid.UUID
    paths: list[str]


class MenuStats(BaseModel):
    total: int
    by_status: dict[str, int]
    by_level: dict[str, int]
