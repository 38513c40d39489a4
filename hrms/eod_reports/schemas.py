"""End-of-day report Pydantic v2 schemas."""

import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hrms.common.constants import ActivityStatus
from hrms.rosters.schemas import time_to_minutes


def _check_time(v: Optional[str]) -> Optional[str]:
    if v:
        time_to_minutes(v)
    return v


class Activity(BaseModel):
    activity: str = Field(..., min_length=1, max_length=300)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    description: Optional[str] = None
    status: ActivityStatus = ActivityStatus.pending

    _times = field_validator("start_time", "end_time")(_check_time)


class BreakEntry(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: Optional[str] = None

    _times = field_validator("start_time", "end_time")(_check_time)


class EODReportCreate(BaseModel):
    # Filled from the caller's employee profile when omitted
    employee_id: Optional[uuid.UUID] = None
    employee_name: Optional[str] = Field(None, min_length=1, max_length=200)
    position: Optional[str] = Field(None, max_length=150)
    department: Optional[str] = Field(None, max_length=150)
    date: dt.date
    activities: list[Activity] = Field(default_factory=list)
    breaks: list[BreakEntry] = Field(default_factory=list)
    plans: Optional[str] = None
    issues: Optional[str] = None
    comments: Optional[str] = None


class EODReportUpdate(BaseModel):
    employee_name: Optional[str] = Field(None, min_length=1, max_length=200)
    position: Optional[str] = Field(None, max_length=150)
    department: Optional[str] = Field(None, max_length=150)
    date: Optional[dt.date] = None
    activities: Optional[list[Activity]] = None
    breaks: Optional[list[BreakEntry]] = None
    plans: Optional[str] = None
    issues: Optional[str] = None
    comments: Optional[str] = None


class EODReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: Optional[uuid.UUID] = None
    employee_name: str
    position: Optional[str] = None
    department: Optional[str] = None
    date: dt.date
    activities: list[dict] = Field(default_factory=list)
    breaks: list[dict] = Field(default_factory=list)
    plans: Optional[str] = None
    issues: Optional[str] = None
    comments: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime
