"""Navigation log ORM model — one row per page visit."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from hrms.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NavigationLog(Base):
    __tablename__ = "navigation_logs"

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
    path: Mapped[str] = mapped_column(sa.String(500), nullable=False)
    visited_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    __table_args__ = (
        sa.Index("ix_navigation_logs_user_visited", "user_id", "visited_at"),
    )
