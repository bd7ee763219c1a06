"""User endpoints — directory, profile, approval, block/unblock, role, delete."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission, require_role
from hrms.common.constants import PERMISSIONS, UserRole, UserStatus
from hrms.common.exceptions import ForbiddenException
from hrms.common.pagination import PaginationParams
from hrms.database import get_db
from hrms.users.models import User
from hrms.users.schemas import ProfileUpdate, RoleUpdate, UserListResponse, UserOut
from hrms.users.service import UserService

router = APIRouter(prefix="", tags=["users"])


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def get_me(user: User = Depends(get_current_user)):
    return user


# ── PUT /profile — update own profile ───────────────────────────────

@router.put("/profile", response_model=UserOut)
async def update_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.update_profile(db, user, body)


# ── GET / — directory ───────────────────────────────────────────────

@router.get("", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None),
    status: Optional[UserStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(),
    user: User = Depends(require_permission("profile:read_all")),
    db: AsyncSession = Depends(get_db),
):
    """List users (manager and above). Filter by role, status or free text."""
    return await UserService.list_users(
        db, pagination, role=role, status=status, search=search,
    )


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Users may read their own record; manager and above may read anyone's."""
    if user_id == user.id:
        return user
    if "profile:read_all" not in PERMISSIONS.get(user.role, []):
        raise ForbiddenException("You can only view your own profile.")
    return await UserService.get_user(db, user_id)


# ── POST /{id}/approve ──────────────────────────────────────────────

@router.post("/{user_id}/approve", response_model=UserOut)
async def approve_user(
    user_id: uuid.UUID,
    role: UserRole = Query(UserRole.employee),
    approver: User = Depends(require_permission("user:approve")),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.approve_user(db, user_id, approver, role)


# ── POST /{id}/block ────────────────────────────────────────────────

@router.post("/{user_id}/block", response_model=UserOut)
async def block_user(
    user_id: uuid.UUID,
    actor: User = Depends(require_permission("user:block")),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.block_user(db, user_id, actor)


# ── POST /{id}/unblock ──────────────────────────────────────────────

@router.post("/{user_id}/unblock", response_model=UserOut)
async def unblock_user(
    user_id: uuid.UUID,
    actor: User = Depends(require_permission("user:block")),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.unblock_user(db, user_id, actor)


# ── PUT /{id}/role ──────────────────────────────────────────────────

@router.put("/{user_id}/role", response_model=UserOut)
async def change_role(
    user_id: uuid.UUID,
    body: RoleUpdate,
    actor: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.change_role(db, user_id, body.role, actor)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    actor: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await UserService.delete_user(db, user_id, actor)
