"""User Pydantic schemas for request / response validation."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from hrms.common.constants import UserRole, UserStatus
from hrms.common.pagination import PaginationMeta


# ── Requests ────────────────────────────────────────────────────────

class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    username: Optional[str] = Field(
        default=None, min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$",
    )
    bio: Optional[str] = Field(default=None, max_length=2000)
    phone: Optional[str] = Field(default=None, max_length=20)
    profile_photo_url: Optional[str] = None


class RoleUpdate(BaseModel):
    role: UserRole


# ── Responses ───────────────────────────────────────────────────────

class UserBrief(BaseModel):
    """Compact user shape embedded in team, leave and work-update responses."""

    id: uuid.UUID
    full_name: str
    email: str
    role: UserRole
    profile_photo_url: Optional[str] = None

    model_config = {"from_attributes": True}


class UserOut(BaseModel):
    id: uuid.UUID
    email: str
    username: Optional[str] = None
    full_name: str
    phone: Optional[str] = None
    bio: Optional[str] = None
    profile_photo_url: Optional[str] = None
    role: UserRole
    status: UserStatus
    is_blocked: bool
    shift_id: Optional[uuid.UUID] = None
    branch_id: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    data: list[UserOut]
    meta: PaginationMeta
