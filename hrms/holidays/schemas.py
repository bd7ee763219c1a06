"""Holiday request/response schemas."""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class HolidayCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    holiday_date: date
    description: Optional[str] = Field(default=None, max_length=1000)


class HolidayUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    holiday_date: Optional[date] = None
    description: Optional[str] = Field(default=None, max_length=1000)


class HolidayOut(BaseModel):
    id: uuid.UUID
    name: str
    holiday_date: date
    description: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}
