"""Navigation router."""


import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.database import get_db
from hrms.navigation.schemas import NavigationLogCreate, NavigationLogOut
from hrms.navigation.service import (
    DEFAULT_HISTORY_LIMIT,
    MAX_HISTORY_LIMIT,
    NavigationService,
)
from hrms.users.models import User

router = APIRouter(prefix="", tags=["navigation"])


# ── POST /log ───────────────────────────────────────────────────────

@router.post("/log", response_model=NavigationLogOut, status_code=201)
async def log_visit(
    body: NavigationLogCreate,
    user: User = Depends(require_permission("navigation:log")),
    db: AsyncSession = Depends(get_db),
):
    return await NavigationService.log_visit(db, user, body.path)


# ── GET /history/{user_id} ──────────────────────────────────────────

@router.get("/history/{user_id}", response_model=list[NavigationLogOut])
async def visit_history(
    user_id: uuid.UUID,
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_HISTORY_LIMIT),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NavigationService.history(db, user_id, user, limit)
