"""Notification endpoints — inbox, mark read, and sends (single, batch, team, broadcast)."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.common.constants import NotificationType
from hrms.common.pagination import PaginationParams
from hrms.database import get_db
from hrms.notifications.schemas import (
    BroadcastRequest,
    NotificationListResponse,
    NotificationResponse,
    SendBatchRequest,
    SendNotificationRequest,
    SendResult,
    SendTeamRequest,
)
from hrms.notifications.service import NotificationService
from hrms.users.models import User

router = APIRouter(prefix="", tags=["notifications"])


# ── GET / — list current user's notifications ───────────────────────

@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    is_read: Optional[bool] = Query(default=None, description="Filter by read status"),
    type: Optional[NotificationType] = Query(
        default=None, alias="type", description="Filter by notification type"
    ),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List notifications for the authenticated user (paginated)."""
    return await NotificationService.get_notifications(
        db,
        user_id=user.id,
        pagination=pagination,
        is_read=is_read,
        notification_type=type,
    )


# ── GET /unread-count — badge count ─────────────────────────────────
# NOTE: static paths are registered before /{notification_id}/... routes.

@router.get("/unread-count")
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return the number of unread notifications (for header badge)."""
    count = await NotificationService.get_unread_count(db, user.id)
    return {"data": {"count": count}}


# ── PUT /read-all — bulk mark all as read ───────────────────────────

@router.put("/read-all")
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark all unread notifications as read for the authenticated user."""
    count = await NotificationService.mark_all_read(db, user.id)
    return {"message": "All notifications marked as read", "data": {"count": count}}


# ── POST /send — single recipient ───────────────────────────────────

@router.post("/send", response_model=SendResult, status_code=201)
async def send_notification(
    body: SendNotificationRequest,
    sender: User = Depends(require_permission("notification:send")),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService.send_to_users(
        db, [body.user_id],
        title=body.title, message=body.message, type=body.type, sender_id=sender.id,
    )
    return SendResult(count=count)


# ── POST /send-batch — explicit recipient list ──────────────────────

@router.post("/send-batch", response_model=SendResult, status_code=201)
async def send_batch(
    body: SendBatchRequest,
    sender: User = Depends(require_permission("notification:send")),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService.send_to_users(
        db, body.user_ids,
        title=body.title, message=body.message, type=body.type, sender_id=sender.id,
    )
    return SendResult(count=count)


# ── POST /send-team — team members + leader ─────────────────────────

@router.post("/send-team", response_model=SendResult, status_code=201)
async def send_team(
    body: SendTeamRequest,
    sender: User = Depends(require_permission("notification:send")),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService.send_to_team(
        db, body.team_id,
        title=body.title, message=body.message, type=body.type, sender_id=sender.id,
    )
    return SendResult(count=count)


# ── POST /broadcast — every active user ─────────────────────────────

@router.post("/broadcast", response_model=SendResult, status_code=201)
async def broadcast(
    body: BroadcastRequest,
    sender: User = Depends(require_permission("notification:broadcast")),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService.broadcast(
        db, title=body.title, message=body.message, type=body.type, sender_id=sender.id,
    )
    return SendResult(count=count)


# ── PUT /{notification_id}/read — mark single as read ───────────────

@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a single notification as read."""
    notification = await NotificationService.mark_read(db, notification_id, user.id)
    return {
        "message": "Notification marked as read",
        "data": NotificationResponse.model_validate(notification),
    }


# ── DELETE /{notification_id} ───────────────────────────────────────

@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService.delete_notification(db, notification_id, user.id)
