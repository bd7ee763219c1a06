"""Attendance router — check in/out, history, stats, admin views, shifts.

All endpoints require authentication. Manager/HR-specific endpoints enforce role checks.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.schemas import (
    AttendanceListResponse,
    AttendanceOut,
    AttendanceStats,
    AttendanceUpdate,
    AttendanceWithUser,
    CheckInRequest,
    CheckOutRequest,
    ShiftAssignRequest,
    ShiftCreate,
    ShiftOut,
    ShiftUpdate,
)
from hrms.attendance.service import AttendanceService, ShiftService
from hrms.auth.dependencies import get_current_user, has_role, require_permission, require_role
from hrms.common.constants import AttendanceStatus, UserRole
from hrms.common.exceptions import ForbiddenException
from hrms.common.pagination import PaginationParams
from hrms.database import get_db
from hrms.users.models import User

router = APIRouter(prefix="", tags=["attendance"])


def _ensure_can_view(viewer: User, user_id: uuid.UUID) -> None:
    if viewer.id != user_id and not has_role(viewer, UserRole.manager):
        raise ForbiddenException("You can only view your own attendance.")


# ── POST /check-in ──────────────────────────────────────────────────

@router.post("/check-in", response_model=AttendanceOut, status_code=201)
async def check_in(
    body: CheckInRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record today's check-in for the current user."""
    ip = request.client.host if request.client else None
    return await AttendanceService.check_in(db, user, body, ip_address=ip)


# ── POST /{id}/check-out ────────────────────────────────────────────

@router.post("/{record_id}/check-out", response_model=AttendanceOut)
async def check_out(
    record_id: uuid.UUID,
    request: Request,
    body: Optional[CheckOutRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Close an open attendance record owned by the current user."""
    ip = request.client.host if request.client else None
    return await AttendanceService.check_out(
        db, user, record_id, notes=body.notes if body else None, ip_address=ip,
    )


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=list[AttendanceOut])
async def my_attendance(
    from_date: Optional[date] = Query(None, description="Start date (inclusive)"),
    to_date: Optional[date] = Query(None, description="End date (inclusive)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.get_history(
        db, user.id, from_date=from_date, to_date=to_date,
    )


# ── GET /me/today ───────────────────────────────────────────────────

@router.get("/me/today", response_model=Optional[AttendanceOut])
async def my_today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Today's record, or null when the user has not checked in."""
    return await AttendanceService.get_today(db, user.id)


# ── GET /history/{user_id} ──────────────────────────────────────────

@router.get("/history/{user_id}", response_model=list[AttendanceOut])
async def user_history(
    user_id: uuid.UUID,
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    viewer: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _ensure_can_view(viewer, user_id)
    return await AttendanceService.get_history(
        db, user_id, from_date=from_date, to_date=to_date,
    )


# ── GET /stats/{user_id} ────────────────────────────────────────────

@router.get("/stats/{user_id}", response_model=AttendanceStats)
async def user_stats(
    user_id: uuid.UUID,
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    viewer: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _ensure_can_view(viewer, user_id)
    return await AttendanceService.get_stats(
        db, user_id, from_date=from_date, to_date=to_date,
    )


# ── GET /all — every user's records (admin/HR) ──────────────────────

@router.get("/all", response_model=AttendanceListResponse)
async def all_attendance(
    on_date: Optional[date] = Query(None, alias="date"),
    user_id: Optional[uuid.UUID] = Query(None),
    status: Optional[AttendanceStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    viewer: User = Depends(require_permission("attendance:read_all")),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.list_all(
        db, pagination, on_date=on_date, user_id=user_id, status=status,
    )


# ── GET /date/{date} ────────────────────────────────────────────────

@router.get("/date/{on_date}", response_model=list[AttendanceWithUser])
async def attendance_by_date(
    on_date: date,
    viewer: User = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.list_by_date(db, on_date)


# ── GET /present-today ──────────────────────────────────────────────

@router.get("/present-today", response_model=list[AttendanceWithUser])
async def present_today(
    viewer: User = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    """Everyone who has checked in on today's office-local date."""
    return await AttendanceService.present_today(db)


# ── Shifts ──────────────────────────────────────────────────────────

@router.get("/shifts", response_model=list[ShiftOut])
async def list_shifts(
    include_inactive: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ShiftService.list_shifts(db, include_inactive=include_inactive)


@router.post("/shifts", response_model=ShiftOut, status_code=201)
async def create_shift(
    body: ShiftCreate,
    actor: User = Depends(require_permission("attendance:configure")),
    db: AsyncSession = Depends(get_db),
):
    return await ShiftService.create_shift(db, body, actor)


@router.put("/shifts/{shift_id}", response_model=ShiftOut)
async def update_shift(
    shift_id: uuid.UUID,
    body: ShiftUpdate,
    actor: User = Depends(require_permission("attendance:configure")),
    db: AsyncSession = Depends(get_db),
):
    return await ShiftService.update_shift(db, shift_id, body, actor)


@router.delete("/shifts/{shift_id}", status_code=204)
async def delete_shift(
    shift_id: uuid.UUID,
    actor: User = Depends(require_permission("attendance:configure")),
    db: AsyncSession = Depends(get_db),
):
    await ShiftService.delete_shift(db, shift_id, actor)


@router.post("/shifts/{shift_id}/assign")
async def assign_shift(
    shift_id: uuid.UUID,
    body: ShiftAssignRequest,
    actor: User = Depends(require_permission("attendance:configure")),
    db: AsyncSession = Depends(get_db),
):
    count = await ShiftService.assign_shift(db, shift_id, body.user_ids, actor)
    return {"message": "Shift assigned", "data": {"count": count}}


# ── PUT /{id} — admin correction ────────────────────────────────────

@router.put("/{record_id}", response_model=AttendanceOut)
async def update_attendance(
    record_id: uuid.UUID,
    body: AttendanceUpdate,
    actor: User = Depends(require_permission("attendance:update")),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.update_record(db, record_id, body, actor)
