"""Attendance ORM models: ShiftPolicy, AttendanceRecord.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
"""

from __future__ import annotations

import uuid
import datetime as dt
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import INET, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import AttendanceStatus
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.users.models import User


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# ═════════════════════════════════════════════════════════════════════
# ShiftPolicy
# ═════════════════════════════════════════════════════════════════════


class ShiftPolicy(Base):
    """Working-hours template; users without one fall back to office hours."""

    __tablename__ = "shift_policies"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(100), unique=True, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(sa.Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(sa.Time, nullable=False)
    grace_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=15)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<ShiftPolicy {self.name!r} {self.start_time}-{self.end_time}>"


# ═════════════════════════════════════════════════════════════════════
# AttendanceRecord
# ═════════════════════════════════════════════════════════════════════


class AttendanceRecord(Base):
    """One row per user per office-local day."""

    __tablename__ = "attendance_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    login_time: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False,
    )
    logout_time: Mapped[Optional[dt.datetime]] = mapped_column(sa.DateTime(timezone=True))
    status: Mapped[AttendanceStatus] = mapped_column(
        sa.Enum(AttendanceStatus, name="attendance_status"),
        nullable=False,
        default=AttendanceStatus.present,
    )
    work_minutes: Mapped[Optional[int]] = mapped_column(sa.Integer)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    latitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    longitude: Mapped[Optional[float]] = mapped_column(sa.Float)
    ip_address: Mapped[Optional[str]] = mapped_column(INET)
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    # Relationships
    user: Mapped[User] = relationship(foreign_keys=[user_id])

    __table_args__ = (
        sa.UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
        sa.Index("ix_attendance_records_date", "date"),
    )
