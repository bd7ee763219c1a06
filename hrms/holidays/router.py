"""Holiday router — calendar reads for everyone, writes for managers and above."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import require_permission
from hrms.database import get_db
from hrms.holidays.schemas import HolidayCreate, HolidayOut, HolidayUpdate
from hrms.holidays.service import HolidayService
from hrms.users.models import User

router = APIRouter(prefix="", tags=["holidays"])

_reader = require_permission("holiday:read")
_manager = require_permission("holiday:manage")


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[HolidayOut])
async def list_holidays(
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    _user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    """List holidays ordered by date, optionally for one year."""
    return await HolidayService.list_holidays(db, year)


# ── GET /upcoming ───────────────────────────────────────────────────

@router.get("/upcoming", response_model=list[HolidayOut])
async def upcoming_holidays(
    limit: int = Query(default=5, ge=1, le=50),
    _user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    return await HolidayService.upcoming(db, limit)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=HolidayOut, status_code=201)
async def create_holiday(
    body: HolidayCreate,
    user: User = Depends(_manager),
    db: AsyncSession = Depends(get_db),
):
    return await HolidayService.create_holiday(db, body, user.id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{holiday_id}", response_model=HolidayOut)
async def update_holiday(
    holiday_id: uuid.UUID,
    body: HolidayUpdate,
    user: User = Depends(_manager),
    db: AsyncSession = Depends(get_db),
):
    return await HolidayService.update_holiday(db, holiday_id, body, user.id)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{holiday_id}", status_code=204)
async def delete_holiday(
    holiday_id: uuid.UUID,
    user: User = Depends(_manager),
    db: AsyncSession = Depends(get_db),
):
    await HolidayService.delete_holiday(db, holiday_id, user.id)
