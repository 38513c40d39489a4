"""Country / State Pydantic v2 schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StateIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=10)
    name: str = Field(..., min_length=1, max_length=150)
    subdivision: Optional[str] = Field(None, max_length=100)

    @field_validator("code", "name")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class StateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    name: str
    subdivision: Optional[str] = None


class CountryCreate(BaseModel):
    code2: str = Field(..., min_length=2, max_length=2, pattern=r"^[A-Za-z]{2}$")
    code3: str = Field(..., min_length=3, max_length=3, pattern=r"^[A-Za-z]{3}$")
    name: str = Field(..., min_length=1, max_length=150)
    capital: Optional[str] = Field(None, max_length=150)
    region: Optional[str] = Field(None, max_length=100)
    subregion: Optional[str] = Field(None, max_length=100)
    states: list[StateIn] = Field(default_factory=list)

    @field_validator("code2", "code3")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()


class CountryUpdate(BaseModel):
    code2: Optional[str] = Field(None, pattern=r"^[A-Za-z]{2}$")
    code3: Optional[str] = Field(None, pattern=r"^[A-Za-z]{3}$")
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    capital: Optional[str] = Field(None, max_length=150)
    region: Optional[str] = Field(None, max_length=100)
    subregion: Optional[str] = Field(None, max_length=100)

    @field_validator("code2", "code3")
    @classmethod
    def _upper(cls, v):
        return v.upper() if v else v


class CountryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code2: str
    code3: str
    name: str
    capital: Optional[str] = None
    region: Optional[str] = None
    subregion: Optional[str] = None
    states: list[StateOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class BulkUpsertResult(BaseModel):
    created: int = 0
    updated: int = 0
