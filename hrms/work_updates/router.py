"""Work updates router."""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.common.constants import UserRole
from hrms.database import get_db
from hrms.users.models import User
from hrms.work_updates.schemas import WorkUpdateCreate, WorkUpdateEdit, WorkUpdateOut
from hrms.work_updates.service import WorkUpdateService

router = APIRouter(prefix="", tags=["work-updates"])


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=WorkUpdateOut, status_code=201)
async def submit_update(
    body: WorkUpdateCreate,
    user: User = Depends(require_permission("work_update:submit")),
    db: AsyncSession = Depends(get_db),
):
    return await WorkUpdateService.create(db, user, body)


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=list[WorkUpdateOut])
async def my_updates(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await WorkUpdateService.for_user(db, user, month=month, year=year)


# ── GET /me/today ───────────────────────────────────────────────────

@router.get("/me/today", response_model=Optional[WorkUpdateOut])
async def my_update_today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Today's update, or ``null`` if none was submitted yet."""
    return await WorkUpdateService.today_for_user(db, user)


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[WorkUpdateOut])
async def list_updates(
    on_date: Optional[date] = Query(None, alias="date"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    role: Optional[UserRole] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await WorkUpdateService.list_updates(
        db, user, on_date=on_date, month=month, year=year, role=role, user_id=user_id,
    )


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{update_id}", response_model=WorkUpdateOut)
async def edit_update(
    update_id: uuid.UUID,
    body: WorkUpdateEdit,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await WorkUpdateService.edit(db, update_id, user, body)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{update_id}", status_code=204)
async def delete_update(
    update_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await WorkUpdateService.delete(db, update_id, user)
