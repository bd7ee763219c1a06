"""Leave service layer — requests, approvals, combined views and yearly balances.

Business rules:
  - Leave days are working days: weekends and company holidays are excluded
  - Requests may not overlap the user's own pending or approved leave
  - Paid leave types are capped by a yearly allowance (approved + pending)
  - Approvers cannot decide their own requests
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.dependencies import has_role
from hrms.common.audit import create_audit_entry
from hrms.common.constants import LeaveStatus, LeaveType, UserRole, UserStatus
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hrms.common.merge import merge_by_id, sort_by_field
from hrms.config import settings
from hrms.holidays.models import Holiday
from hrms.leave.models import LeaveRequest
from hrms.leave.schemas import LeaveBalanceOut, LeaveRequestCreate
from hrms.notifications.service import notify_leave_decided, notify_leave_requested
from hrms.teams.models import Team, TeamMember
from hrms.users.models import User

logger = logging.getLogger(__name__)

WEEKEND_DAYS = {5, 6}  # Saturday, Sunday

_ACTIVE_STATUSES = (LeaveStatus.pending, LeaveStatus.approved)


def leave_allowance(leave_type: LeaveType) -> Optional[int]:
    """Yearly allowance in days, or ``None`` for uncapped (unpaid) leave."""
    return {
        LeaveType.sick: settings.LEAVE_ALLOWANCE_SICK,
        LeaveType.casual: settings.LEAVE_ALLOWANCE_CASUAL,
        LeaveType.vacation: settings.LEAVE_ALLOWANCE_VACATION,
    }.get(leave_type)


def count_working_days(start: date, end: date, holidays: set[date]) -> int:
    """Days in [start, end] that are neither weekend days nor holidays."""
    days = 0
    current = start
    while current <= end:
        if current.weekday() not in WEEKEND_DAYS and current not in holidays:
            days += 1
        current += timedelta(days=1)
    return days


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: apply, review, list, balances."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _get_holiday_dates(db: AsyncSession, start: date, end: date) -> set[date]:
        result = await db.execute(
            select(Holiday.holiday_date).where(
                Holiday.holiday_date >= start,
                Holiday.holiday_date <= end,
            )
        )
        return set(result.scalars().all())

    @staticmethod
    async def _get_request(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .options(selectinload(LeaveRequest.user))
        )
        leave = result.scalars().first()
        if leave is None:
            raise NotFoundException("LeaveRequest", request_id)
        return leave

    @staticmethod
    async def _days_by_status(
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
    ) -> dict[tuple[LeaveType, LeaveStatus], int]:
        """Sum of working days per (type, status), attributed to the start year."""
        result = await db.execute(
            select(
                LeaveRequest.leave_type,
                LeaveRequest.status,
                func.coalesce(func.sum(LeaveRequest.total_days), 0),
            )
            .where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status.in_(_ACTIVE_STATUSES),
                LeaveRequest.start_date >= date(year, 1, 1),
                LeaveRequest.start_date <= date(year, 12, 31),
            )
            .group_by(LeaveRequest.leave_type, LeaveRequest.status)
        )
        return {(row[0], row[1]): int(row[2]) for row in result.all()}

    @staticmethod
    async def _approver_ids(db: AsyncSession, user_id: uuid.UUID) -> list[uuid.UUID]:
        """Active admins and HR plus the leaders of every team the user belongs to."""
        reviewers = await db.execute(
            select(User.id).where(
                User.role.in_((UserRole.admin, UserRole.hr)),
                User.status == UserStatus.active,
            )
        )
        leaders = await db.execute(
            select(Team.leader_id)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .where(TeamMember.user_id == user_id, Team.leader_id.is_not(None))
        )
        return list(reviewers.scalars().all()) + list(leaders.scalars().all())

    # ── Apply ───────────────────────────────────────────────────────

    @staticmethod
    async def request_leave(
        db: AsyncSession,
        user: User,
        body: LeaveRequestCreate,
    ) -> LeaveRequest:
        """Validate working days, overlap and balance, then file a pending request."""

        holidays = await LeaveService._get_holiday_dates(db, body.start_date, body.end_date)
        total_days = count_working_days(body.start_date, body.end_date, holidays)
        if total_days == 0:
            raise ValidationException(
                {"date_range": ["The selected dates contain no working days."]}
            )

        overlap = await db.execute(
            select(LeaveRequest.id).where(
                LeaveRequest.user_id == user.id,
                LeaveRequest.status.in_(_ACTIVE_STATUSES),
                LeaveRequest.start_date <= body.end_date,
                LeaveRequest.end_date >= body.start_date,
            )
        )
        if overlap.scalars().first() is not None:
            raise ConflictError(
                "date_range",
                f"{body.start_date}..{body.end_date}",
                detail="You already have leave requested for these dates.",
            )

        allowance = leave_allowance(body.leave_type)
        if allowance is not None:
            committed = await LeaveService._days_by_status(db, user.id, body.start_date.year)
            taken = committed.get((body.leave_type, LeaveStatus.approved), 0) + committed.get(
                (body.leave_type, LeaveStatus.pending), 0
            )
            available = allowance - taken
            if total_days > available:
                raise ValidationException(
                    {
                        "leave_type": [
                            f"Insufficient {body.leave_type.value} leave balance: "
                            f"requested {total_days}, available {max(available, 0)}."
                        ]
                    }
                )

        leave = LeaveRequest(
            user_id=user.id,
            leave_type=body.leave_type,
            start_date=body.start_date,
            end_date=body.end_date,
            total_days=total_days,
            reason=body.reason,
            status=LeaveStatus.pending,
        )
        leave.user = user
        db.add(leave)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=user.id,
            new_values={
                "leave_type": body.leave_type.value,
                "start_date": body.start_date.isoformat(),
                "end_date": body.end_date.isoformat(),
                "total_days": total_days,
            },
        )
        await notify_leave_requested(db, leave, await LeaveService._approver_ids(db, user.id))
        logger.info(
            "%s requested %d day(s) of %s leave", user.email, total_days, body.leave_type.value,
        )
        return leave

    # ── Review ──────────────────────────────────────────────────────

    @staticmethod
    async def _decide(
        db: AsyncSession,
        request_id: uuid.UUID,
        reviewer: User,
        status: LeaveStatus,
        remarks: Optional[str],
    ) -> LeaveRequest:
        leave = await LeaveService._get_request(db, request_id)
        if leave.user_id == reviewer.id:
            raise ForbiddenException("You cannot review your own leave request.")
        if leave.status != LeaveStatus.pending:
            raise ConflictError(
                "status",
                leave.status.value,
                detail=f"Only pending requests can be reviewed (current: {leave.status.value}).",
            )

        leave.status = status
        leave.reviewed_by = reviewer.id
        leave.reviewed_at = datetime.now(timezone.utc)
        leave.remarks = remarks
        await db.flush()

        await create_audit_entry(
            db,
            action=status.value,
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=reviewer.id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={"status": status.value, "remarks": remarks},
        )
        await notify_leave_decided(db, leave)
        logger.info("Leave %s %s by %s", leave.id, status.value, reviewer.email)
        return leave

    @staticmethod
    async def approve_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        reviewer: User,
        remarks: Optional[str] = None,
    ) -> LeaveRequest:
        return await LeaveService._decide(db, request_id, reviewer, LeaveStatus.approved, remarks)

    @staticmethod
    async def reject_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        reviewer: User,
        remarks: Optional[str] = None,
    ) -> LeaveRequest:
        return await LeaveService._decide(db, request_id, reviewer, LeaveStatus.rejected, remarks)

    @staticmethod
    async def cancel_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        user: User,
    ) -> LeaveRequest:
        """Withdraw one's own pending request."""
        leave = await LeaveService._get_request(db, request_id)
        if leave.user_id != user.id:
            raise ForbiddenException("You can only cancel your own leave requests.")
        if leave.status != LeaveStatus.pending:
            raise ConflictError(
                "status", leave.status.value, detail="Only pending requests can be cancelled.",
            )
        leave.status = LeaveStatus.cancelled
        await db.flush()
        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=user.id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={"status": LeaveStatus.cancelled.value},
        )
        return leave

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        status: Optional[LeaveStatus] = None,
    ) -> Sequence[LeaveRequest]:
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.user_id == user_id)
            .options(selectinload(LeaveRequest.user))
            .order_by(LeaveRequest.start_date.desc())
        )
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def list_by_status(
        db: AsyncSession,
        status: LeaveStatus,
        *,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> Sequence[LeaveRequest]:
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.status == status)
            .options(selectinload(LeaveRequest.user))
            .order_by(LeaveRequest.start_date.desc())
        )
        if from_date is not None:
            query = query.where(LeaveRequest.end_date >= from_date)
        if to_date is not None:
            query = query.where(LeaveRequest.start_date <= to_date)
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def combined_view(db: AsyncSession, viewer: User) -> list[LeaveRequest]:
        """Pending + approved + own requests, one entry per id, latest start first.

        Viewers below manager only ever see their own requests.
        """
        own = await LeaveService.list_for_user(db, viewer.id)
        if not has_role(viewer, UserRole.manager):
            return list(own)

        pending = await LeaveService.list_by_status(db, LeaveStatus.pending)
        approved = await LeaveService.list_by_status(db, LeaveStatus.approved)
        return sort_by_field(merge_by_id(pending, approved, own), "start_date", descending=True)

    @staticmethod
    async def get_balance(
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
    ) -> list[LeaveBalanceOut]:
        committed = await LeaveService._days_by_status(db, user_id, year)
        balances = []
        for leave_type in LeaveType:
            allowance = leave_allowance(leave_type)
            used = committed.get((leave_type, LeaveStatus.approved), 0)
            pending = committed.get((leave_type, LeaveStatus.pending), 0)
            balances.append(
                LeaveBalanceOut(
                    leave_type=leave_type,
                    year=year,
                    allowance=allowance,
                    used=used,
                    pending=pending,
                    remaining=None if allowance is None else max(allowance - used, 0),
                )
            )
        return balances

    @staticmethod
    def ensure_visible(leave: LeaveRequest, viewer: User) -> None:
        if leave.user_id != viewer.id and not has_role(viewer, UserRole.manager):
            raise ForbiddenException("You can only view your own leave requests.")

    @staticmethod
    async def get_request(db: AsyncSession, request_id: uuid.UUID, viewer: User) -> LeaveRequest:
        leave = await LeaveService._get_request(db, request_id)
        LeaveService.ensure_visible(leave, viewer)
        return leave
