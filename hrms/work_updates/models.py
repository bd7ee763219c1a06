"""Work update ORM model — one daily log entry per user."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms.database import Base

if TYPE_CHECKING:
    from hrms.users.models import User


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class WorkUpdate(Base):
    __tablename__ = "work_updates"

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
    title: Mapped[Optional[str]] = mapped_column(sa.String(200))
    description: Mapped[str] = mapped_column(sa.Text, nullable=False)
    hours_spent: Mapped[Optional[float]] = mapped_column(sa.Float)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    # Relationships
    user: Mapped[User] = relationship()

    __table_args__ = (
        sa.UniqueConstraint("user_id", "date", name="uq_work_update_user_date"),
        sa.Index("ix_work_updates_date", "date"),
    )
