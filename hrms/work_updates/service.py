"""Work update service — daily logs written by employees, read by supervisors."""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import extract, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.dependencies import has_role
from hrms.common.constants import UserRole
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hrms.common.timeutils import local_today
from hrms.users.models import User
from hrms.work_updates.models import WorkUpdate
from hrms.work_updates.schemas import WorkUpdateCreate, WorkUpdateEdit

logger = logging.getLogger(__name__)


class WorkUpdateService:

    @staticmethod
    async def _get(db: AsyncSession, update_id: uuid.UUID) -> WorkUpdate:
        result = await db.execute(
            select(WorkUpdate)
            .where(WorkUpdate.id == update_id)
            .options(selectinload(WorkUpdate.user))
        )
        update = result.scalars().first()
        if update is None:
            raise NotFoundException("WorkUpdate", update_id)
        return update

    @staticmethod
    async def create(db: AsyncSession, user: User, data: WorkUpdateCreate) -> WorkUpdate:
        """Submit the caller's update for a day (today by default)."""
        if user.role == UserRole.admin:
            raise ForbiddenException("Admins do not submit work updates.")

        today = local_today()
        on_date = data.date or today
        if on_date > today:
            raise ValidationException({"date": ["Work updates cannot be dated in the future."]})

        existing = await db.execute(
            select(WorkUpdate.id).where(
                WorkUpdate.user_id == user.id,
                WorkUpdate.date == on_date,
            )
        )
        if existing.scalars().first() is not None:
            raise ConflictError(
                "date",
                on_date.isoformat(),
                detail=f"You already submitted a work update for {on_date.isoformat()}.",
            )

        update = WorkUpdate(
            user_id=user.id,
            date=on_date,
            title=data.title,
            description=data.description,
            hours_spent=data.hours_spent,
        )
        update.user = user
        db.add(update)
        await db.flush()
        logger.info("Work update for %s submitted by %s", on_date, user.email)
        return update

    @staticmethod
    async def list_updates(
        db: AsyncSession,
        viewer: User,
        *,
        on_date: Optional[dt.date] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
        role: Optional[UserRole] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> Sequence[WorkUpdate]:
        """Newest first. Non-supervisors are always scoped to their own updates."""
        query = (
            select(WorkUpdate)
            .join(User, User.id == WorkUpdate.user_id)
            .options(selectinload(WorkUpdate.user))
            .order_by(WorkUpdate.date.desc(), WorkUpdate.created_at.desc())
        )

        if not has_role(viewer, UserRole.manager):
            query = query.where(WorkUpdate.user_id == viewer.id)
        elif user_id is not None:
            query = query.where(WorkUpdate.user_id == user_id)

        if role is not None:
            query = query.where(User.role == role)
        if on_date is not None:
            query = query.where(WorkUpdate.date == on_date)
        if month is not None:
            query = query.where(extract("month", WorkUpdate.date) == month)
        if year is not None:
            query = query.where(extract("year", WorkUpdate.date) == year)

        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def for_user(
        db: AsyncSession,
        user: User,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> Sequence[WorkUpdate]:
        query = (
            select(WorkUpdate)
            .where(WorkUpdate.user_id == user.id)
            .options(selectinload(WorkUpdate.user))
            .order_by(WorkUpdate.date.desc())
        )
        if month is not None:
            query = query.where(extract("month", WorkUpdate.date) == month)
        if year is not None:
            query = query.where(extract("year", WorkUpdate.date) == year)
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def today_for_user(db: AsyncSession, user: User) -> Optional[WorkUpdate]:
        result = await db.execute(
            select(WorkUpdate)
            .where(WorkUpdate.user_id == user.id, WorkUpdate.date == local_today())
            .options(selectinload(WorkUpdate.user))
        )
        return result.scalars().first()

    @staticmethod
    async def edit(
        db: AsyncSession,
        update_id: uuid.UUID,
        user: User,
        data: WorkUpdateEdit,
    ) -> WorkUpdate:
        update = await WorkUpdateService._get(db, update_id)
        if update.user_id != user.id:
            raise ForbiddenException("You can only edit your own work updates.")

        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "description" and value is None:
                continue
            setattr(update, field, value)
        await db.flush()
        return update

    @staticmethod
    async def delete(db: AsyncSession, update_id: uuid.UUID, user: User) -> None:
        update = await WorkUpdateService._get(db, update_id)
        if update.user_id != user.id and user.role != UserRole.admin:
            raise ForbiddenException("You can only delete your own work updates.")
        await db.delete(update)
        await db.flush()
