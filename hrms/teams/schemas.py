"""Team request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ── Requests ────────────────────────────────────────────────────────

class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(default=None, max_length=2000)
    leader_id: Optional[uuid.UUID] = None
    member_ids: list[uuid.UUID] = Field(default_factory=list)


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    description: Optional[str] = Field(default=None, max_length=2000)


class TeamMemberAdd(BaseModel):
    user_id: uuid.UUID


class TeamLeaderAssign(BaseModel):
    user_id: uuid.UUID


# ── Responses ───────────────────────────────────────────────────────

class TeamOut(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    leader_id: Optional[uuid.UUID] = None
    member_ids: list[uuid.UUID]
    created_by: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}
