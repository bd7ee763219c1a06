"""Note schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class NoteCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=20000)
    team_id: Optional[uuid.UUID] = None
    is_pinned: bool = False


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1, max_length=20000)
    team_id: Optional[uuid.UUID] = None
    is_pinned: Optional[bool] = None


class NoteOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    team_id: Optional[uuid.UUID] = None
    title: str
    content: str
    is_pinned: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
