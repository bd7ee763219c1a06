"""User ORM model: login identity, profile and approval state.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
Column names match the PostgreSQL schema defined in 001_initial_schema.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.common.constants import UserRole, UserStatus
from hrms.database import Base

if TYPE_CHECKING:
    from hrms.attendance.models import ShiftPolicy
    from hrms.auth.models import UserSession


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """An account. Self-registered users start ``pending`` until approved."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    username: Mapped[Optional[str]] = mapped_column(sa.String(100), unique=True)
    full_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(sa.String(20))
    bio: Mapped[Optional[str]] = mapped_column(sa.Text)
    profile_photo_url: Mapped[Optional[str]] = mapped_column(sa.Text)

    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.employee,
    )
    status: Mapped[UserStatus] = mapped_column(
        sa.Enum(UserStatus, name="user_status"),
        nullable=False,
        default=UserStatus.pending,
    )
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    shift_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("shift_policies.id", ondelete="SET NULL"),
    )
    branch_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("branches.id", ondelete="SET NULL"),
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    # ── Relationships ───────────────────────────────────────────────
    shift: Mapped[Optional[ShiftPolicy]] = relationship()
    sessions: Mapped[list[UserSession]] = relationship(
        back_populates="user", passive_deletes=True,
    )

    __table_args__ = (
        sa.Index("ix_users_status", "status"),
        sa.Index("ix_users_role", "role"),
        sa.Index("ix_users_branch_id", "branch_id"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active

    @property
    def is_blocked(self) -> bool:
        return self.status == UserStatus.blocked

    def __repr__(self) -> str:
        return f"<User {self.email!r} {self.role.value}/{self.status.value}>"
