"""Dashboard service — read-only headline counts across modules.

Counts are computed with COUNT at DB level, one round-trip each.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord
from hrms.common.constants import AttendanceStatus, LeaveStatus, UserStatus
from hrms.common.timeutils import local_today
from hrms.dashboard.schemas import DashboardStats
from hrms.leave.models import LeaveRequest
from hrms.teams.models import Team
from hrms.users.models import User


class DashboardService:

    @staticmethod
    async def get_stats(db: AsyncSession) -> DashboardStats:
        today = local_today()

        total_q = select(func.count(User.id)).where(User.status == UserStatus.active)

        present_q = select(func.count(AttendanceRecord.id)).where(
            AttendanceRecord.date == today,
            AttendanceRecord.status != AttendanceStatus.absent,
        )

        # Approved leave covering today
        on_leave_q = select(func.count(func.distinct(LeaveRequest.user_id))).where(
            LeaveRequest.status == LeaveStatus.approved,
            LeaveRequest.start_date <= today,
            LeaveRequest.end_date >= today,
        )

        pending_leave_q = select(func.count(LeaveRequest.id)).where(
            LeaveRequest.status == LeaveStatus.pending,
        )

        teams_q = select(func.count(Team.id))

        pending_accounts_q = select(func.count(User.id)).where(
            User.status == UserStatus.pending,
        )

        results = await _multi_scalar(
            db, total_q, present_q, on_leave_q, pending_leave_q, teams_q, pending_accounts_q,
        )

        return DashboardStats(
            date=today,
            total_employees=results[0] or 0,
            present_today=results[1] or 0,
            on_leave=results[2] or 0,
            pending_leaves=results[3] or 0,
            total_teams=results[4] or 0,
            pending_approvals=results[5] or 0,
        )


async def _multi_scalar(db: AsyncSession, *stmts) -> list:
    """Execute multiple scalar queries and return their results in order."""
    results = []
    for stmt in stmts:
        result = await db.execute(stmt)
        results.append(result.scalar())
    return results
