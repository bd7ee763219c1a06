"""Notification Pydantic schemas for request / response validation."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from hrms.common.constants import NotificationType
from hrms.common.pagination import PaginationMeta


# ── Requests ────────────────────────────────────────────────────────

class NotificationContent(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)
    type: NotificationType = NotificationType.info


class SendNotificationRequest(NotificationContent):
    user_id: uuid.UUID


class SendBatchRequest(NotificationContent):
    user_ids: list[uuid.UUID] = Field(min_length=1)


class SendTeamRequest(NotificationContent):
    team_id: uuid.UUID


class BroadcastRequest(NotificationContent):
    pass


# ── Responses ───────────────────────────────────────────────────────

class NotificationResponse(BaseModel):
    """Single notification in API responses."""

    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    sender_id: Optional[uuid.UUID] = None
    action_url: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[uuid.UUID] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListMeta(PaginationMeta):
    """Extends standard pagination meta with unread count."""

    unread: int


class NotificationListResponse(BaseModel):
    """Paginated list of notifications with unread count in meta."""

    data: list[NotificationResponse]
    meta: NotificationListMeta


class SendResult(BaseModel):
    count: int
