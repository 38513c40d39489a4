"""Roster Pydantic v2 schemas."""

import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hrms.common.constants import DAYS_OF_WEEK, RosterStatus

OFF = "OFF"

_TIME_24 = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12 = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)$", re.IGNORECASE)


def time_to_minutes(value: Optional[str]) -> Optional[int]:
    """Minutes after midnight for "HH:MM", "10am" or "10:30pm"; None for OFF."""
    if not value or value.strip().upper() == OFF:
        return None
    value = value.strip()
    match = _TIME_24.match(value)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
    else:
        match = _TIME_12.match(value)
        if not match:
            raise ValueError(f"unrecognised time '{value}'")
        hours, minutes = int(match.group(1)), int(match.group(2) or 0)
        if not 1 <= hours <= 12:
            raise ValueError(f"unrecognised time '{value}'")
        meridiem = match.group(3).lower()
        if meridiem == "pm" and hours != 12:
            hours += 12
        if meridiem == "am" and hours == 12:
            hours = 0
    if hours > 23 or minutes > 59:
        raise ValueError(f"time out of range '{value}'")
    return hours * 60 + minutes


class DayShift(BaseModel):
    start_time: str = OFF
    end_time: str = OFF

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        v = v.strip()
        if v.upper() == OFF:
            return OFF
        time_to_minutes(v)
        return v

    @model_validator(mode="after")
    def _check_length(self) -> "DayShift":
        start = time_to_minutes(self.start_time)
        if start is not None and start == time_to_minutes(self.end_time):
            raise ValueError("start_time and end_time must differ")
        return self

    @property
    def is_off(self) -> bool:
        return self.start_time == OFF or self.end_time == OFF


class WeekSchedule(BaseModel):
    monday: DayShift = Field(default_factory=DayShift)
    tuesday: DayShift = Field(default_factory=DayShift)
    wednesday: DayShift = Field(default_factory=DayShift)
    thursday: DayShift = Field(default_factory=DayShift)
    friday: DayShift = Field(default_factory=DayShift)
    saturday: DayShift = Field(default_factory=DayShift)
    sunday: DayShift = Field(default_factory=DayShift)

    def as_dict(self) -> dict[str, dict[str, str]]:
        return {day: getattr(self, day).model_dump() for day in DAYS_OF_WEEK}


class RosterCreate(BaseModel):
    employee_id: uuid.UUID
    year: int = Field(..., ge=2000, le=2100)
    week_number: int = Field(..., ge=1, le=53)
    schedule: WeekSchedule = Field(default_factory=WeekSchedule)
    notes: Optional[str] = None
    status: RosterStatus = RosterStatus.draft


class RosterBulkCreate(BaseModel):
    employee_ids: list[uuid.UUID] = Field(..., min_length=1)
    year: int = Field(..., ge=2000, le=2100)
    week_number: int = Field(..., ge=1, le=53)
    default_schedule: WeekSchedule = Field(default_factory=WeekSchedule)
    individual_schedules: dict[uuid.UUID, WeekSchedule] = Field(default_factory=dict)
    notes: Optional[str] = None
    status: RosterStatus = RosterStatus.draft


class RosterCopyRequest(BaseModel):
    from_year: int = Field(..., ge=2000, le=2100)
    from_week: int = Field(..., ge=1, le=53)
    to_year: int = Field(..., ge=2000, le=2100)
    to_week: int = Field(..., ge=1, le=53)
    employee_ids: list[uuid.UUID] = Field(default_factory=list)


class RosterUpdate(BaseModel):
    schedule: Optional[WeekSchedule] = None
    notes: Optional[str] = None
    status: Optional[RosterStatus] = None


class RosterEmployee(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str


class RosterOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    employee: Optional[RosterEmployee] = None
    year: int
    week_number: int
    week_start_date: date
    week_end_date: date
    schedule: dict
    total_hours: Decimal
    notes: Optional[str] = None
    status: RosterStatus
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
