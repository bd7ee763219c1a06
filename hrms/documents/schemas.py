"""Document request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from hrms.common.constants import DocumentCategory
from hrms.common.timeutils import as_utc


class DocumentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    category: DocumentCategory = DocumentCategory.other
    file_url: str = Field(..., min_length=1, max_length=2000)
    user_id: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None

    @field_validator("file_url")
    @classmethod
    def require_http_url(cls, v: str) -> str:
        v = v.strip()
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError("file_url must be an http(s) URL")
        return v


class DocumentOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    category: DocumentCategory
    file_url: str
    uploaded_by: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("expires_at", "created_at", mode="after")
    @classmethod
    def _normalize_tz(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)
