"""Attendance Pydantic schemas: check-in/out, records, stats, shifts."""


import uuid
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from hrms.common.constants import AttendanceStatus
from hrms.common.pagination import PaginationMeta
from hrms.common.timeutils import as_utc
from hrms.users.schemas import UserBrief


# ── Requests ────────────────────────────────────────────────────────

class CheckInRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=1000)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class CheckOutRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=1000)


class AttendanceUpdate(BaseModel):
    """Admin correction of a record; work minutes are recomputed."""

    status: Optional[AttendanceStatus] = None
    login_time: Optional[datetime] = None
    logout_time: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class ShiftCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_time: time
    end_time: time
    grace_minutes: int = Field(default=15, ge=0, le=180)


class ShiftUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    grace_minutes: Optional[int] = Field(default=None, ge=0, le=180)
    is_active: Optional[bool] = None


class ShiftAssignRequest(BaseModel):
    user_ids: list[uuid.UUID] = Field(min_length=1)


# ── Responses ───────────────────────────────────────────────────────

class AttendanceOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    date: date
    login_time: datetime
    logout_time: Optional[datetime] = None
    status: AttendanceStatus
    work_minutes: Optional[int] = None
    notes: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = {"from_attributes": True}

    @field_validator("login_time", "logout_time", mode="after")
    @classmethod
    def _normalize_tz(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @computed_field
    @property
    def work_hours(self) -> Optional[float]:
        if self.work_minutes is None:
            return None
        return round(self.work_minutes / 60, 2)


class AttendanceWithUser(AttendanceOut):
    user: UserBrief


class AttendanceListResponse(BaseModel):
    data: list[AttendanceWithUser]
    meta: PaginationMeta


class AttendanceStats(BaseModel):
    user_id: uuid.UUID
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    total_days: int
    present_days: int
    late_days: int
    half_days: int
    absent_days: int
    attendance_rate: float


class ShiftOut(BaseModel):
    id: uuid.UUID
    name: str
    start_time: time
    end_time: time
    grace_minutes: int
    is_active: bool

    model_config = {"from_attributes": True}
