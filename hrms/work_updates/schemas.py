"""Work update schemas."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

from pydantic import BaseModel, Field

from hrms.users.schemas import UserBrief


class WorkUpdateCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    date: Optional[dt.date] = None
    hours_spent: Optional[float] = Field(default=None, ge=0, le=24)


class WorkUpdateEdit(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1, max_length=5000)
    hours_spent: Optional[float] = Field(default=None, ge=0, le=24)


class WorkUpdateOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    date: dt.date
    title: Optional[str] = None
    description: str
    hours_spent: Optional[float] = None
    created_at: dt.datetime
    updated_at: dt.datetime
    user: Optional[UserBrief] = None

    model_config = {"from_attributes": True}
