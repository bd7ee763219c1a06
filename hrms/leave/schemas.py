"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hrms.common.constants import LeaveStatus, LeaveType
from hrms.users.schemas import UserBrief

MAX_LEAVE_SPAN_DAYS = 90


# ═════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(min_length=1, max_length=2000)

    @model_validator(mode="after")
    def validate_dates(self) -> "LeaveRequestCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date.")
        if (self.end_date - self.start_date).days > MAX_LEAVE_SPAN_DAYS:
            raise ValueError(
                f"Leave request cannot span more than {MAX_LEAVE_SPAN_DAYS} days."
            )
        return self


class LeaveDecision(BaseModel):
    remarks: Optional[str] = Field(default=None, max_length=1000)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: int
    reason: str
    status: LeaveStatus
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    remarks: Optional[str] = None
    created_at: datetime
    user: Optional[UserBrief] = None


class LeaveBalanceOut(BaseModel):
    """Per-type balance for one calendar year. Unpaid leave has no allowance."""

    leave_type: LeaveType
    year: int
    allowance: Optional[int] = None
    used: int
    pending: int
    remaining: Optional[int] = None
