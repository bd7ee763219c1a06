"""Branch request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class BranchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    code: str = Field(..., min_length=1, max_length=30)
    address: Optional[str] = Field(default=None, max_length=1000)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    geo_radius: int = Field(default=100, ge=1, le=100_000)
    geo_restriction_enabled: bool = False

    @field_validator("code")
    @classmethod
    def normalise_code(cls, v: str) -> str:
        return v.strip().upper()


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    code: Optional[str] = Field(default=None, min_length=1, max_length=30)
    address: Optional[str] = Field(default=None, max_length=1000)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    geo_radius: Optional[int] = Field(default=None, ge=1, le=100_000)
    geo_restriction_enabled: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def normalise_code(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v is not None else v


class BranchAssignRequest(BaseModel):
    user_ids: list[uuid.UUID] = Field(min_length=1)


class BranchOut(BaseModel):
    id: uuid.UUID
    name: str
    code: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    geo_radius: int
    geo_restriction_enabled: bool
    created_at: datetime

    model_config = {"from_attributes": True}
