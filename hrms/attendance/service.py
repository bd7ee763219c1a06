"""Attendance service — check-in/out, history, stats, admin corrections and shifts.

One AttendanceRecord exists per user per office-local date. Lateness is
decided at check-in against the user's shift (or the office default), and
short days become half days at check-out.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.attendance.models import AttendanceRecord, ShiftPolicy
from hrms.attendance.schemas import (
    AttendanceListResponse,
    AttendanceStats,
    AttendanceUpdate,
    AttendanceWithUser,
    CheckInRequest,
    ShiftCreate,
    ShiftUpdate,
)
from hrms.branches.service import BranchService
from hrms.common.audit import create_audit_entry
from hrms.common.constants import AttendanceStatus
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hrms.common.filters import apply_filters
from hrms.common.pagination import PaginationMeta, PaginationParams
from hrms.common.timeutils import as_utc, local_today, parse_clock, to_local, utc_now
from hrms.config import settings
from hrms.users.models import User

logger = logging.getLogger(__name__)

MAX_DATE_RANGE_DAYS = 366


# ═════════════════════════════════════════════════════════════════════
# AttendanceService
# ═════════════════════════════════════════════════════════════════════


class AttendanceService:
    """Async attendance operations: check in/out, read, correct."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _shift_window(db: AsyncSession, user: User) -> tuple[time, int]:
        """Return (start_time, grace_minutes) for the user's shift or office hours."""
        if user.shift_id is not None:
            shift = await db.get(ShiftPolicy, user.shift_id)
            if shift is not None and shift.is_active:
                return shift.start_time, shift.grace_minutes
        return parse_clock(settings.OFFICE_START_TIME), settings.LATE_GRACE_MINUTES

    @staticmethod
    def determine_arrival_status(
        local_login: datetime,
        start: time,
        grace_minutes: int,
    ) -> AttendanceStatus:
        """``late`` once the local clock passes shift start + grace."""
        shift_start = datetime.combine(local_login.date(), start, tzinfo=local_login.tzinfo)
        if local_login > shift_start + timedelta(minutes=grace_minutes):
            return AttendanceStatus.late
        return AttendanceStatus.present

    @staticmethod
    def work_minutes(login: datetime, logout: datetime) -> int:
        return max(0, int((as_utc(logout) - as_utc(login)).total_seconds() // 60))

    @staticmethod
    def status_after_checkout(status: AttendanceStatus, minutes: int) -> AttendanceStatus:
        if status == AttendanceStatus.absent:
            return status
        if minutes < settings.HALF_DAY_MINUTES:
            return AttendanceStatus.half_day
        return status

    @staticmethod
    def _validate_date_range(from_date: Optional[date], to_date: Optional[date]) -> None:
        """Ensure date range is ordered and within MAX_DATE_RANGE_DAYS."""

        if from_date is None or to_date is None:
            return
        if from_date > to_date:
            raise ValidationException(
                {"date_range": ["from_date must be before or equal to to_date."]}
            )
        if (to_date - from_date).days > MAX_DATE_RANGE_DAYS:
            raise ValidationException(
                {"date_range": [f"Date range cannot exceed {MAX_DATE_RANGE_DAYS} days."]}
            )

    @staticmethod
    async def _get_record(db: AsyncSession, record_id: uuid.UUID) -> AttendanceRecord:
        record = await db.get(AttendanceRecord, record_id)
        if record is None:
            raise NotFoundException("AttendanceRecord", record_id)
        return record

    # ── Check in ────────────────────────────────────────────────────

    @staticmethod
    async def check_in(
        db: AsyncSession,
        user: User,
        body: CheckInRequest,
        *,
        ip_address: Optional[str] = None,
    ) -> AttendanceRecord:
        """Open today's record. A second check-in on the same local day is a conflict."""

        now = utc_now()
        local = to_local(now)
        today = local.date()

        existing = await db.execute(
            select(AttendanceRecord.id).where(
                AttendanceRecord.user_id == user.id,
                AttendanceRecord.date == today,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("date", today, detail="You have already checked in today.")

        await BranchService.check_location(db, user, body.latitude, body.longitude)

        start, grace = await AttendanceService._shift_window(db, user)
        status = AttendanceService.determine_arrival_status(local, start, grace)

        record = AttendanceRecord(
            user_id=user.id,
            date=today,
            login_time=now,
            status=status,
            notes=body.notes,
            latitude=body.latitude,
            longitude=body.longitude,
            ip_address=ip_address,
        )
        db.add(record)
        await db.flush()

        await create_audit_entry(
            db,
            action="check_in",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=user.id,
            new_values={"timestamp": now.isoformat(), "status": status.value},
            ip_address=ip_address,
        )
        logger.info("%s checked in at %s (%s)", user.email, local.strftime("%H:%M"), status.value)
        return record

    # ── Check out ───────────────────────────────────────────────────

    @staticmethod
    async def check_out(
        db: AsyncSession,
        user: User,
        record_id: uuid.UUID,
        *,
        notes: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AttendanceRecord:
        """Close an open record, storing worked minutes and the final status."""

        record = await AttendanceService._get_record(db, record_id)
        if record.user_id != user.id:
            raise ForbiddenException("You can only check out of your own attendance.")
        if record.logout_time is not None:
            raise ConflictError("logout_time", record.logout_time, detail="Already checked out.")

        now = utc_now()
        minutes = AttendanceService.work_minutes(record.login_time, now)
        record.logout_time = now
        record.work_minutes = minutes
        record.status = AttendanceService.status_after_checkout(record.status, minutes)
        if notes:
            record.notes = f"{record.notes}\n{notes}" if record.notes else notes
        await db.flush()

        await create_audit_entry(
            db,
            action="check_out",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=user.id,
            new_values={
                "timestamp": now.isoformat(),
                "work_minutes": minutes,
                "status": record.status.value,
            },
            ip_address=ip_address,
        )
        logger.info("%s checked out after %d minutes", user.email, minutes)
        return record

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def get_today(db: AsyncSession, user_id: uuid.UUID) -> Optional[AttendanceRecord]:
        result = await db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.date == local_today(),
            )
        )
        return result.scalars().first()

    @staticmethod
    async def get_history(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        """Records for one user, newest first."""
        AttendanceService._validate_date_range(from_date, to_date)
        query = select(AttendanceRecord).where(AttendanceRecord.user_id == user_id)
        query = apply_filters(
            query, AttendanceRecord, {"date__from": from_date, "date__to": to_date},
        )
        result = await db.execute(query.order_by(AttendanceRecord.date.desc()))
        return result.scalars().all()

    @staticmethod
    def build_stats(
        user_id: uuid.UUID,
        records: Sequence[AttendanceRecord],
        *,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> AttendanceStats:
        """Aggregate status counts; the rate counts on-time days only."""

        counts = {status: 0 for status in AttendanceStatus}
        for r in records:
            counts[r.status] += 1

        total = len(records)
        present = counts[AttendanceStatus.present]
        rate = round(present / total * 100, 1) if total else 0.0

        return AttendanceStats(
            user_id=user_id,
            from_date=from_date,
            to_date=to_date,
            total_days=total,
            present_days=present,
            late_days=counts[AttendanceStatus.late],
            half_days=counts[AttendanceStatus.half_day],
            absent_days=counts[AttendanceStatus.absent],
            attendance_rate=rate,
        )

    @staticmethod
    async def get_stats(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> AttendanceStats:
        records = await AttendanceService.get_history(
            db, user_id, from_date=from_date, to_date=to_date,
        )
        return AttendanceService.build_stats(
            user_id, records, from_date=from_date, to_date=to_date,
        )

    @staticmethod
    async def list_all(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        on_date: Optional[date] = None,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> AttendanceListResponse:
        """Every user's records, newest first (admin/HR view)."""
        query = apply_filters(
            select(AttendanceRecord),
            AttendanceRecord,
            {"date": on_date, "user_id": user_id, "status": status},
        )

        count_q = query.with_only_columns(func.count(), maintain_column_froms=True)
        total: int = (await db.execute(count_q)).scalar_one()

        rows = (
            await db.execute(
                query.options(selectinload(AttendanceRecord.user))
                .order_by(AttendanceRecord.date.desc(), AttendanceRecord.login_time.desc())
                .offset(pagination.offset)
                .limit(pagination.page_size)
            )
        ).scalars().all()

        return AttendanceListResponse(
            data=[AttendanceWithUser.model_validate(r) for r in rows],
            meta=PaginationMeta.build(pagination, total),
        )

    @staticmethod
    async def list_by_date(db: AsyncSession, on_date: date) -> Sequence[AttendanceRecord]:
        result = await db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.date == on_date)
            .options(selectinload(AttendanceRecord.user))
            .order_by(AttendanceRecord.login_time.asc())
        )
        return result.scalars().all()

    @staticmethod
    async def present_today(db: AsyncSession) -> Sequence[AttendanceRecord]:
        """Records opened today; each carries the user who checked in."""
        return await AttendanceService.list_by_date(db, local_today())

    # ── Admin correction ────────────────────────────────────────────

    @staticmethod
    async def update_record(
        db: AsyncSession,
        record_id: uuid.UUID,
        body: AttendanceUpdate,
        actor: User,
    ) -> AttendanceRecord:
        record = await AttendanceService._get_record(db, record_id)
        changes = body.model_dump(exclude_unset=True)
        if not changes:
            return record

        # logout_time may be cleared; login_time and status may not
        nulled = [f for f in ("status", "login_time") if f in changes and changes[f] is None]
        if nulled:
            raise ValidationException({f: [f"{f} cannot be null."] for f in nulled})

        login = as_utc(changes.get("login_time", record.login_time))
        logout = as_utc(changes.get("logout_time", record.logout_time))
        if logout is not None and logout < login:
            raise ValidationException(
                {"logout_time": ["logout_time must not be before login_time."]}
            )

        old_values = {
            "status": record.status.value,
            "login_time": as_utc(record.login_time).isoformat(),
            "logout_time": as_utc(record.logout_time).isoformat() if record.logout_time else None,
            "notes": record.notes,
        }
        for field, value in changes.items():
            setattr(record, field, value)
        record.work_minutes = (
            AttendanceService.work_minutes(login, logout) if logout is not None else None
        )
        record.updated_by = actor.id
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values={k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in changes.items()},
        )
        return record


# ═════════════════════════════════════════════════════════════════════
# ShiftService
# ═════════════════════════════════════════════════════════════════════


class ShiftService:
    """CRUD for shift policies and assignment to users."""

    @staticmethod
    async def list_shifts(db: AsyncSession, *, include_inactive: bool = False) -> Sequence[ShiftPolicy]:
        query = select(ShiftPolicy).order_by(ShiftPolicy.start_time.asc())
        if not include_inactive:
            query = query.where(ShiftPolicy.is_active.is_(True))
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def _get_shift(db: AsyncSession, shift_id: uuid.UUID) -> ShiftPolicy:
        shift = await db.get(ShiftPolicy, shift_id)
        if shift is None:
            raise NotFoundException("ShiftPolicy", shift_id)
        return shift

    @staticmethod
    async def _ensure_unique_name(
        db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(ShiftPolicy.id).where(ShiftPolicy.name == name)
        if exclude_id is not None:
            query = query.where(ShiftPolicy.id != exclude_id)
        if (await db.execute(query)).scalar_one_or_none() is not None:
            raise ConflictError("name", name)

    @staticmethod
    async def create_shift(db: AsyncSession, body: ShiftCreate, actor: User) -> ShiftPolicy:
        await ShiftService._ensure_unique_name(db, body.name)
        shift = ShiftPolicy(**body.model_dump())
        db.add(shift)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="shift_policy",
            entity_id=shift.id,
            actor_id=actor.id,
            new_values=body.model_dump(mode="json"),
        )
        return shift

    @staticmethod
    async def update_shift(
        db: AsyncSession, shift_id: uuid.UUID, body: ShiftUpdate, actor: User,
    ) -> ShiftPolicy:
        shift = await ShiftService._get_shift(db, shift_id)
        changes = body.model_dump(exclude_unset=True)
        if "name" in changes:
            await ShiftService._ensure_unique_name(db, changes["name"], exclude_id=shift.id)
        for field, value in changes.items():
            setattr(shift, field, value)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="shift_policy",
            entity_id=shift.id,
            actor_id=actor.id,
            new_values=body.model_dump(mode="json", exclude_unset=True),
        )
        return shift

    @staticmethod
    async def delete_shift(db: AsyncSession, shift_id: uuid.UUID, actor: User) -> None:
        """Delete a shift; users on it fall back to office hours."""
        shift = await ShiftService._get_shift(db, shift_id)
        await db.execute(update(User).where(User.shift_id == shift.id).values(shift_id=None))
        await db.delete(shift)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="shift_policy",
            entity_id=shift_id,
            actor_id=actor.id,
            old_values={"name": shift.name},
        )

    @staticmethod
    async def assign_shift(
        db: AsyncSession, shift_id: uuid.UUID, user_ids: list[uuid.UUID], actor: User,
    ) -> int:
        shift = await ShiftService._get_shift(db, shift_id)
        if not shift.is_active:
            raise ValidationException({"shift_id": ["Cannot assign an inactive shift."]})

        ids = list(dict.fromkeys(user_ids))
        found = set((await db.execute(select(User.id).where(User.id.in_(ids)))).scalars().all())
        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundException("User", missing[0])

        await db.execute(update(User).where(User.id.in_(ids)).values(shift_id=shift.id))
        await db.flush()
        await create_audit_entry(
            db,
            action="assign",
            entity_type="shift_policy",
            entity_id=shift.id,
            actor_id=actor.id,
            new_values={"user_ids": [str(i) for i in ids]},
        )
        return len(ids)
