"""Holiday Pydantic v2 schemas."""

import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hrms.common.constants import HolidayType

ALL_DEPARTMENTS = "all"


def normalise_scope(names: list[str]) -> list[str]:
    """Lower-cased, de-duplicated department names; ``all`` swallows the rest."""
    scope: list[str] = []
    for name in names:
        name = name.strip().lower()
        if name and name not in scope:
            scope.append(name)
    if not scope:
        raise ValueError("applies_to needs at least one department or 'all'")
    return [ALL_DEPARTMENTS] if ALL_DEPARTMENTS in scope else scope


class HolidayCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    date: dt.date
    description: Optional[str] = None
    type: HolidayType = HolidayType.company
    is_recurring: bool = False
    applies_to: list[str] = Field(default_factory=lambda: [ALL_DEPARTMENTS])

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("applies_to")
    @classmethod
    def _check_scope(cls, v: list[str]) -> list[str]:
        return normalise_scope(v)


class HolidayUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    date: Optional[dt.date] = None
    description: Optional[str] = None
    type: Optional[HolidayType] = None
    is_recurring: Optional[bool] = None
    applies_to: Optional[list[str]] = None

    @field_validator("applies_to")
    @classmethod
    def _check_scope(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return normalise_scope(v) if v is not None else v


class HolidayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    date: dt.date
    description: Optional[str] = None
    type: HolidayType
    is_recurring: bool
    year: int
    applies_to: list[str]
    created_by: Optional[uuid.UUID] = None
    created_at: dt.datetime
    updated_at: dt.datetime
