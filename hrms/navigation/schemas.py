"""Navigation log schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from hrms.common.timeutils import as_utc


class NavigationLogCreate(BaseModel):
    path: str = Field(..., min_length=1, max_length=500)

    @field_validator("path")
    @classmethod
    def require_absolute_path(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith("/"):
            raise ValueError("path must start with '/'")
        return v


class NavigationLogOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    path: str
    visited_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("visited_at", mode="after")
    @classmethod
    def _normalize_tz(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)
