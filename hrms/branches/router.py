"""Branch router — office locations, user assignment and geofence settings."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import require_permission, require_role
from hrms.branches.schemas import BranchAssignRequest, BranchCreate, BranchOut, BranchUpdate
from hrms.branches.service import BranchService
from hrms.common.constants import UserRole
from hrms.database import get_db
from hrms.users.models import User
from hrms.users.schemas import UserOut

router = APIRouter(prefix="", tags=["branches"])

_reader = require_permission("branch:read")
_manager = require_permission("branch:manage")


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[BranchOut])
async def list_branches(
    _user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    return await BranchService.list_branches(db)


# ── POST /unassign ──────────────────────────────────────────────────

@router.post("/unassign")
async def unassign_users(
    body: BranchAssignRequest,
    actor: User = Depends(_manager),
    db: AsyncSession = Depends(get_db),
):
    count = await BranchService.unassign_users(db, body.user_ids, actor)
    return {"message": "Users unassigned", "data": {"count": count}}


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{branch_id}", response_model=BranchOut)
async def get_branch(
    branch_id: uuid.UUID,
    _user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    return await BranchService.get_branch(db, branch_id)


# ── GET /{id}/users ─────────────────────────────────────────────────

@router.get("/{branch_id}/users", response_model=list[UserOut])
async def branch_users(
    branch_id: uuid.UUID,
    _user: User = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    return await BranchService.list_users(db, branch_id)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=BranchOut, status_code=201)
async def create_branch(
    body: BranchCreate,
    actor: User = Depends(_manager),
    db: AsyncSession = Depends(get_db),
):
    return await BranchService.create_branch(db, body, actor)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{branch_id}", response_model=BranchOut)
async def update_branch(
    branch_id: uuid.UUID,
    body: BranchUpdate,
    actor: User = Depends(_manager),
    db: AsyncSession = Depends(get_db),
):
    return await BranchService.update_branch(db, branch_id, body, actor)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{branch_id}", status_code=204)
async def delete_branch(
    branch_id: uuid.UUID,
    actor: User = Depends(_manager),
    db: AsyncSession = Depends(get_db),
):
    await BranchService.delete_branch(db, branch_id, actor)


# ── POST /{id}/assign ───────────────────────────────────────────────

@router.post("/{branch_id}/assign")
async def assign_users(
    branch_id: uuid.UUID,
    body: BranchAssignRequest,
    actor: User = Depends(_manager),
    db: AsyncSession = Depends(get_db),
):
    count = await BranchService.assign_users(db, branch_id, body.user_ids, actor)
    return {"message": "Users assigned", "data": {"count": count}}
