"""Notification service — inbox operations, fan-out sends and cross-module dispatchers."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.common.constants import NotificationType, UserRole, UserStatus
from hrms.common.exceptions import ForbiddenException, NotFoundException
from hrms.common.pagination import PaginationMeta, PaginationParams
from hrms.notifications.models import Notification
from hrms.notifications.schemas import (
    NotificationListMeta,
    NotificationListResponse,
    NotificationResponse,
)
from hrms.teams.models import Team
from hrms.users.models import User

logger = logging.getLogger(__name__)


def _unique(ids: Iterable[uuid.UUID]) -> list[uuid.UUID]:
    return list(dict.fromkeys(ids))


# ── Core service ────────────────────────────────────────────────────


class NotificationService:
    """Async notification operations."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        type: NotificationType = NotificationType.info,
        title: str,
        message: str,
        sender_id: Optional[uuid.UUID] = None,
        action_url: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        """Create a new notification and flush to DB."""
        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def get_notifications(
        db: AsyncSession,
        user_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        is_read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
    ) -> NotificationListResponse:
        """Return paginated notifications for a user, newest first."""
        query = (
            select(Notification)
            .where(Notification.recipient_id == user_id)
            .order_by(Notification.created_at.desc())
        )

        if is_read is not None:
            query = query.where(Notification.is_read == is_read)
        if notification_type is not None:
            query = query.where(Notification.type == notification_type)

        # Total count (with filters applied)
        count_q = query.with_only_columns(func.count(), maintain_column_froms=True).order_by(None)
        total: int = (await db.execute(count_q)).scalar_one()

        # Paginated rows
        rows = (
            await db.execute(
                query.offset(pagination.offset).limit(pagination.page_size)
            )
        ).scalars().all()

        # Unread count (always unfiltered — for the badge)
        unread = await NotificationService.get_unread_count(db, user_id)

        meta = PaginationMeta.build(pagination, total)
        return NotificationListResponse(
            data=[NotificationResponse.model_validate(n) for n in rows],
            meta=NotificationListMeta(**meta.model_dump(), unread=unread),
        )

    @staticmethod
    async def _get_owned(
        db: AsyncSession,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Notification:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException("Notification", notification_id)
        if notification.recipient_id != user_id:
            raise ForbiddenException("You can only manage your own notifications.")
        return notification

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Notification:
        """Mark a single notification as read. Verifies ownership."""
        notification = await NotificationService._get_owned(db, notification_id, user_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(
        db: AsyncSession,
        user_id: uuid.UUID,
    ) -> int:
        """Bulk-mark all unread notifications as read. Returns count updated."""
        now = datetime.now(timezone.utc)
        result = await db.execute(
            update(Notification)
            .where(
                Notification.recipient_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=now)
        )
        await db.flush()
        return result.rowcount  # type: ignore[return-value]

    @staticmethod
    async def delete_notification(
        db: AsyncSession,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> None:
        notification = await NotificationService._get_owned(db, notification_id, user_id)
        await db.delete(notification)
        await db.flush()

    @staticmethod
    async def get_unread_count(
        db: AsyncSession,
        user_id: uuid.UUID,
    ) -> int:
        """Return the number of unread notifications for a user."""
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.recipient_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    # ── Fan-out sends ───────────────────────────────────────────────

    @staticmethod
    async def send_to_users(
        db: AsyncSession,
        recipient_ids: Iterable[uuid.UUID],
        *,
        title: str,
        message: str,
        type: NotificationType = NotificationType.info,
        sender_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Deliver one notification to each distinct recipient.

        Every recipient must exist; an unknown id fails the whole batch.
        """
        ids = _unique(recipient_ids)
        if not ids:
            return 0

        found = set(
            (await db.execute(select(User.id).where(User.id.in_(ids)))).scalars().all()
        )
        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundException("User", missing[0])

        db.add_all(
            Notification(
                recipient_id=recipient_id,
                sender_id=sender_id,
                type=type,
                title=title,
                message=message,
            )
            for recipient_id in ids
        )
        await db.flush()
        return len(ids)

    @staticmethod
    async def send_to_team(
        db: AsyncSession,
        team_id: uuid.UUID,
        *,
        title: str,
        message: str,
        type: NotificationType = NotificationType.info,
        sender_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Notify every member of a team plus its leader."""
        result = await db.execute(
            select(Team).where(Team.id == team_id).options(selectinload(Team.members))
        )
        team = result.scalars().first()
        if team is None:
            raise NotFoundException("Team", team_id)

        recipients = list(team.member_ids)
        if team.leader_id is not None:
            recipients.append(team.leader_id)
        return await NotificationService.send_to_users(
            db, recipients, title=title, message=message, type=type, sender_id=sender_id,
        )

    @staticmethod
    async def broadcast(
        db: AsyncSession,
        *,
        title: str,
        message: str,
        type: NotificationType = NotificationType.info,
        sender_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Notify every active user except the sender."""
        query = select(User.id).where(User.status == UserStatus.active)
        if sender_id is not None:
            query = query.where(User.id != sender_id)
        recipients = (await db.execute(query)).scalars().all()
        count = await NotificationService.send_to_users(
            db, recipients, title=title, message=message, type=type, sender_id=sender_id,
        )
        logger.info("Broadcast %r delivered to %d users", title, count)
        return count


# ── Cross-module helper dispatchers ─────────────────────────────────
# Imported by auth / users / leave / teams services. They accept the ORM
# object directly to avoid tight schema coupling.


async def _active_ids_with_roles(db: AsyncSession, *roles: UserRole) -> list[uuid.UUID]:
    result = await db.execute(
        select(User.id).where(User.role.in_(roles), User.status == UserStatus.active)
    )
    return list(result.scalars().all())


async def notify_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    title: str,
    message: str,
    *,
    type: NotificationType = NotificationType.info,
    sender_id: Optional[uuid.UUID] = None,
    action_url: Optional[str] = None,
) -> Notification:
    return await NotificationService.create_notification(
        db,
        recipient_id=user_id,
        sender_id=sender_id,
        type=type,
        title=title,
        message=message,
        action_url=action_url,
    )


async def notify_users(
    db: AsyncSession,
    user_ids: Iterable[uuid.UUID],
    title: str,
    message: str,
    *,
    type: NotificationType = NotificationType.info,
    sender_id: Optional[uuid.UUID] = None,
) -> int:
    """Send the same notification to every distinct id; returns the count."""
    ids = _unique(user_ids)
    for user_id in ids:
        await notify_user(db, user_id, title, message, type=type, sender_id=sender_id)
    return len(ids)


async def notify_pending_registration(db: AsyncSession, user) -> int:
    """Tell admins and HR that a new account is waiting for approval."""
    reviewers = await _active_ids_with_roles(db, UserRole.admin, UserRole.hr)
    for reviewer_id in reviewers:
        await NotificationService.create_notification(
            db,
            recipient_id=reviewer_id,
            type=NotificationType.info,
            title="New Registration",
            message=f"{user.full_name} ({user.email}) is waiting for account approval.",
            action_url="/admin/users",
            entity_type="user",
            entity_id=user.id,
        )
    return len(reviewers)


async def notify_account_approved(db: AsyncSession, user, approver_id: uuid.UUID) -> Notification:
    return await NotificationService.create_notification(
        db,
        recipient_id=user.id,
        sender_id=approver_id,
        type=NotificationType.success,
        title="Account Approved",
        message=f"Your account has been approved with the role '{user.role.value}'.",
        entity_type="user",
        entity_id=user.id,
    )


async def notify_leave_requested(
    db: AsyncSession,
    leave_request,  # hrms.leave.models.LeaveRequest
    approver_ids: Iterable[uuid.UUID],
) -> int:
    """Notify approvers that a new leave request needs review."""
    ids = [i for i in _unique(approver_ids) if i != leave_request.user_id]
    for approver_id in ids:
        await NotificationService.create_notification(
            db,
            recipient_id=approver_id,
            sender_id=leave_request.user_id,
            type=NotificationType.info,
            title="New Leave Request",
            message=(
                f"A {leave_request.leave_type.value} leave request from "
                f"{leave_request.start_date} to {leave_request.end_date} "
                f"({leave_request.total_days} day(s)) requires your approval."
            ),
            action_url=f"/leave/{leave_request.id}",
            entity_type="leave_request",
            entity_id=leave_request.id,
        )
    return len(ids)


async def notify_leave_decided(
    db: AsyncSession,
    leave_request,  # hrms.leave.models.LeaveRequest
) -> Notification:
    """Notify the requester that their leave was approved or rejected."""
    approved = leave_request.status.value == "approved"
    message = (
        f"Your leave request from {leave_request.start_date} to "
        f"{leave_request.end_date} has been {leave_request.status.value}."
    )
    if leave_request.remarks:
        message += f" Remarks: {leave_request.remarks}"
    return await NotificationService.create_notification(
        db,
        recipient_id=leave_request.user_id,
        sender_id=leave_request.reviewed_by,
        type=NotificationType.success if approved else NotificationType.warning,
        title="Leave Request Approved" if approved else "Leave Request Rejected",
        message=message,
        action_url=f"/leave/{leave_request.id}",
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_team_change(
    db: AsyncSession,
    team,  # hrms.teams.models.Team
    user_id: uuid.UUID,
    message: str,
    *,
    sender_id: Optional[uuid.UUID] = None,
) -> Notification:
    return await NotificationService.create_notification(
        db,
        recipient_id=user_id,
        sender_id=sender_id,
        type=NotificationType.info,
        title=f"Team: {team.name}",
        message=message,
        action_url=f"/teams/{team.id}",
        entity_type="team",
        entity_id=team.id,
    )
