"""Holiday service — company calendar CRUD."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import extract, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import ConflictError, NotFoundException
from hrms.common.timeutils import local_today
from hrms.holidays.models import Holiday
from hrms.holidays.schemas import HolidayCreate, HolidayUpdate

logger = logging.getLogger(__name__)


class HolidayService:

    @staticmethod
    async def _get(db: AsyncSession, holiday_id: uuid.UUID) -> Holiday:
        holiday = await db.get(Holiday, holiday_id)
        if holiday is None:
            raise NotFoundException("Holiday", holiday_id)
        return holiday

    @staticmethod
    async def _ensure_date_free(
        db: AsyncSession,
        holiday_date: date,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Holiday.id).where(Holiday.holiday_date == holiday_date)
        if exclude_id is not None:
            query = query.where(Holiday.id != exclude_id)
        if (await db.execute(query)).scalars().first() is not None:
            raise ConflictError(
                "holiday_date",
                holiday_date.isoformat(),
                detail=f"A holiday already exists on {holiday_date.isoformat()}.",
            )

    @staticmethod
    async def list_holidays(db: AsyncSession, year: Optional[int] = None) -> Sequence[Holiday]:
        query = select(Holiday).order_by(Holiday.holiday_date)
        if year is not None:
            query = query.where(extract("year", Holiday.holiday_date) == year)
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def upcoming(db: AsyncSession, limit: int = 5) -> Sequence[Holiday]:
        """Holidays from today (office time zone) onward."""
        result = await db.execute(
            select(Holiday)
            .where(Holiday.holiday_date >= local_today())
            .order_by(Holiday.holiday_date)
            .limit(limit)
        )
        return result.scalars().all()

    @staticmethod
    async def create_holiday(
        db: AsyncSession,
        data: HolidayCreate,
        actor_id: uuid.UUID,
    ) -> Holiday:
        await HolidayService._ensure_date_free(db, data.holiday_date)
        holiday = Holiday(
            name=data.name,
            holiday_date=data.holiday_date,
            description=data.description,
            created_by=actor_id,
        )
        db.add(holiday)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            new_values={"name": holiday.name, "holiday_date": holiday.holiday_date.isoformat()},
        )
        logger.info("Holiday %r added on %s", holiday.name, holiday.holiday_date)
        return holiday

    @staticmethod
    async def update_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        data: HolidayUpdate,
        actor_id: uuid.UUID,
    ) -> Holiday:
        holiday = await HolidayService._get(db, holiday_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("holiday_date") is not None:
            await HolidayService._ensure_date_free(db, changes["holiday_date"], exclude_id=holiday.id)

        for field, value in changes.items():
            if value is None and field != "description":
                continue
            setattr(holiday, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            new_values={k: str(v) if v is not None else None for k, v in changes.items()},
        )
        return holiday

    @staticmethod
    async def delete_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        holiday = await HolidayService._get(db, holiday_id)
        await db.delete(holiday)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="holiday",
            entity_id=holiday_id,
            actor_id=actor_id,
            old_values={"name": holiday.name, "holiday_date": holiday.holiday_date.isoformat()},
        )
