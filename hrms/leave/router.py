"""Leave router — apply, review, combined views and balances."""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.common.constants import LeaveStatus
from hrms.common.timeutils import local_today
from hrms.database import get_db
from hrms.leave.schemas import (
    LeaveBalanceOut,
    LeaveDecision,
    LeaveRequestCreate,
    LeaveRequestOut,
)
from hrms.leave.service import LeaveService
from hrms.users.models import User

router = APIRouter(prefix="", tags=["leave"])


# ── POST /request ───────────────────────────────────────────────────

@router.post("/request", response_model=LeaveRequestOut, status_code=201)
async def request_leave(
    body: LeaveRequestCreate,
    user: User = Depends(require_permission("leave:request")),
    db: AsyncSession = Depends(get_db),
):
    """File a leave request; reviewers are notified."""
    return await LeaveService.request_leave(db, user, body)


# ── GET /my-requests ────────────────────────────────────────────────

@router.get("/my-requests", response_model=list[LeaveRequestOut])
async def my_requests(
    status: Optional[LeaveStatus] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_for_user(db, user.id, status=status)


# ── GET /pending ────────────────────────────────────────────────────

@router.get("/pending", response_model=list[LeaveRequestOut])
async def pending_requests(
    _user: User = Depends(require_permission("leave:read_all")),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_by_status(db, LeaveStatus.pending)


# ── GET /approved ───────────────────────────────────────────────────

@router.get("/approved", response_model=list[LeaveRequestOut])
async def approved_requests(
    from_date: Optional[date] = Query(None, description="Only leave ending on/after"),
    to_date: Optional[date] = Query(None, description="Only leave starting on/before"),
    _user: User = Depends(require_permission("leave:read_all")),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_by_status(
        db, LeaveStatus.approved, from_date=from_date, to_date=to_date,
    )


# ── GET /balance ────────────────────────────────────────────────────

@router.get("/balance", response_model=list[LeaveBalanceOut])
async def leave_balance(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Allowance, used, pending and remaining days per leave type."""
    return await LeaveService.get_balance(db, user.id, year or local_today().year)


# ── GET / (combined) ────────────────────────────────────────────────

@router.get("", response_model=list[LeaveRequestOut])
async def combined_leave(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Pending, approved and own requests de-duplicated, latest start first."""
    return await LeaveService.combined_view(db, user)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{request_id}", response_model=LeaveRequestOut)
async def get_leave(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_request(db, request_id, user)


# ── POST /{id}/approve ──────────────────────────────────────────────

@router.post("/{request_id}/approve", response_model=LeaveRequestOut)
async def approve_leave(
    request_id: uuid.UUID,
    body: Optional[LeaveDecision] = None,
    user: User = Depends(require_permission("leave:approve")),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.approve_leave(
        db, request_id, user, remarks=body.remarks if body else None,
    )


# ── POST /{id}/reject ───────────────────────────────────────────────

@router.post("/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_leave(
    request_id: uuid.UUID,
    body: Optional[LeaveDecision] = None,
    user: User = Depends(require_permission("leave:reject")),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.reject_leave(
        db, request_id, user, remarks=body.remarks if body else None,
    )


# ── POST /{id}/cancel ───────────────────────────────────────────────

@router.post("/{request_id}/cancel", response_model=LeaveRequestOut)
async def cancel_leave(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.cancel_leave(db, request_id, user)
