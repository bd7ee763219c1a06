"""Dashboard router — headline counts for managers and above."""


from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import require_permission
from hrms.dashboard.schemas import DashboardStats
from hrms.dashboard.service import DashboardService
from hrms.database import get_db
from hrms.users.models import User

router = APIRouter(prefix="", tags=["dashboard"])


# ── GET /stats ──────────────────────────────────────────────────────

@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    _user: User = Depends(require_permission("dashboard:read")),
    db: AsyncSession = Depends(get_db),
):
    """Active headcount, today's presence and leave, and pending approvals."""
    return await DashboardService.get_stats(db)
