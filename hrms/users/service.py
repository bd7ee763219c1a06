"""User service — directory listing, profile edits and the approve/block lifecycle."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord
from hrms.auth.models import PasswordResetToken, UserSession
from hrms.auth.service import revoke_all_user_sessions
from hrms.common.audit import create_audit_entry
from hrms.common.constants import UserRole, UserStatus
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
)
from hrms.common.filters import apply_filters, apply_search
from hrms.common.pagination import PaginatedResponse, PaginationParams, paginate
from hrms.documents.models import Document
from hrms.leave.models import LeaveRequest
from hrms.navigation.models import NavigationLog
from hrms.notes.models import Note
from hrms.notifications.models import Notification
from hrms.notifications.service import notify_account_approved
from hrms.teams.models import Team, TeamMember
from hrms.users.models import User
from hrms.users.schemas import ProfileUpdate, UserOut
from hrms.work_updates.models import WorkUpdate

logger = logging.getLogger(__name__)

# Profile fields a user may blank out; the rest ignore an explicit null
_CLEARABLE_PROFILE_FIELDS = frozenset({"username", "bio", "phone", "profile_photo_url"})


class UserService:
    """Async user-directory and account-lifecycle operations."""

    # ── Lookups ─────────────────────────────────────────────────────

    @staticmethod
    async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundException("User", user_id)
        return user

    @staticmethod
    async def list_users(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse:
        query = select(User).order_by(User.full_name.asc())
        query = apply_filters(query, User, {"role": role, "status": status})
        query = apply_search(query, User, search, ["full_name", "email", "username"])
        page = await paginate(db, query, pagination, model=User)
        return PaginatedResponse(
            data=[UserOut.model_validate(u) for u in page.data],
            meta=page.meta,
        )

    # ── Profile ─────────────────────────────────────────────────────

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        user: User,
        body: ProfileUpdate,
    ) -> User:
        changes = {
            field: value
            for field, value in body.model_dump(exclude_unset=True).items()
            if value is not None or field in _CLEARABLE_PROFILE_FIELDS
        }
        if not changes:
            return user

        if changes.get("username") and changes["username"] != user.username:
            taken = await db.execute(
                select(User.id).where(
                    User.username == changes["username"], User.id != user.id,
                )
            )
            if taken.scalar_one_or_none() is not None:
                raise ConflictError("username", changes["username"])

        old_values = {field: getattr(user, field) for field in changes}
        for field, value in changes.items():
            setattr(user, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="user",
            entity_id=user.id,
            actor_id=user.id,
            old_values=old_values,
            new_values=changes,
        )
        return user

    # ── Approval ────────────────────────────────────────────────────

    @staticmethod
    async def approve_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        approver: User,
        role: UserRole = UserRole.employee,
    ) -> User:
        """Activate a pending account with the given role."""
        user = await UserService.get_user(db, user_id)
        if user.status != UserStatus.pending:
            raise ConflictError(
                "status", user.status.value,
                detail=f"Only pending accounts can be approved (current: {user.status.value}).",
            )
        if role == UserRole.admin and approver.role != UserRole.admin:
            raise ForbiddenException("Only an admin can grant the admin role.")

        user.role = role
        user.status = UserStatus.active
        user.approved_by = approver.id
        user.approved_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="approve",
            entity_type="user",
            entity_id=user.id,
            actor_id=approver.id,
            old_values={"status": UserStatus.pending.value},
            new_values={"status": UserStatus.active.value, "role": role.value},
        )
        await notify_account_approved(db, user, approver.id)
        logger.info("User %s approved as %s by %s", user.email, role.value, approver.email)
        return user

    # ── Block / unblock ─────────────────────────────────────────────

    @staticmethod
    def _guard_target(actor: User, target: User, action: str) -> None:
        if actor.id == target.id:
            raise ForbiddenException(f"You cannot {action} your own account.")
        if target.role == UserRole.admin and actor.role != UserRole.admin:
            raise ForbiddenException(f"Only an admin can {action} an admin account.")

    @staticmethod
    async def block_user(db: AsyncSession, user_id: uuid.UUID, actor: User) -> User:
        user = await UserService.get_user(db, user_id)
        UserService._guard_target(actor, user, "block")
        if user.status == UserStatus.blocked:
            return user

        previous = user.status
        user.status = UserStatus.blocked
        revoked = await revoke_all_user_sessions(db, user.id)
        await create_audit_entry(
            db,
            action="block",
            entity_type="user",
            entity_id=user.id,
            actor_id=actor.id,
            old_values={"status": previous.value},
            new_values={"status": UserStatus.blocked.value, "sessions_revoked": revoked},
        )
        logger.info("User %s blocked by %s (%d sessions revoked)", user.email, actor.email, revoked)
        return user

    @staticmethod
    async def unblock_user(db: AsyncSession, user_id: uuid.UUID, actor: User) -> User:
        user = await UserService.get_user(db, user_id)
        UserService._guard_target(actor, user, "unblock")
        if user.status != UserStatus.blocked:
            raise ConflictError(
                "status", user.status.value, detail="Only blocked accounts can be unblocked.",
            )

        # Accounts blocked before approval go back to active: unblocking is a decision
        user.status = UserStatus.active
        if user.approved_at is None:
            user.approved_at = datetime.now(timezone.utc)
            user.approved_by = actor.id
        await db.flush()
        await create_audit_entry(
            db,
            action="unblock",
            entity_type="user",
            entity_id=user.id,
            actor_id=actor.id,
            old_values={"status": UserStatus.blocked.value},
            new_values={"status": UserStatus.active.value},
        )
        logger.info("User %s unblocked by %s", user.email, actor.email)
        return user

    # ── Role change ─────────────────────────────────────────────────

    @staticmethod
    async def change_role(
        db: AsyncSession,
        user_id: uuid.UUID,
        role: UserRole,
        actor: User,
    ) -> User:
        user = await UserService.get_user(db, user_id)
        if user.id == actor.id:
            raise ForbiddenException("You cannot change your own role.")
        previous = user.role
        user.role = role
        # Existing tokens carry the old role claim
        await revoke_all_user_sessions(db, user.id)
        await create_audit_entry(
            db,
            action="change_role",
            entity_type="user",
            entity_id=user.id,
            actor_id=actor.id,
            old_values={"role": previous.value},
            new_values={"role": role.value},
        )
        return user

    # ── Delete ──────────────────────────────────────────────────────

    @staticmethod
    async def delete_user(db: AsyncSession, user_id: uuid.UUID, actor: User) -> None:
        """Remove a user and every row that belongs to them."""
        user = await UserService.get_user(db, user_id)
        if user.id == actor.id:
            raise ForbiddenException("You cannot delete your own account.")

        snapshot = {"email": user.email, "full_name": user.full_name, "role": user.role.value}

        for model, column in (
            (UserSession, UserSession.user_id),
            (PasswordResetToken, PasswordResetToken.user_id),
            (AttendanceRecord, AttendanceRecord.user_id),
            (LeaveRequest, LeaveRequest.user_id),
            (WorkUpdate, WorkUpdate.user_id),
            (TeamMember, TeamMember.user_id),
            (Notification, Notification.recipient_id),
            (Note, Note.user_id),
            (Document, Document.user_id),
            (NavigationLog, NavigationLog.user_id),
        ):
            await db.execute(delete(model).where(column == user.id))
        await db.execute(update(Team).where(Team.leader_id == user.id).values(leader_id=None))
        await db.execute(
            update(User).where(User.approved_by == user.id).values(approved_by=None)
        )
        await db.execute(
            update(Document).where(Document.uploaded_by == user.id).values(uploaded_by=None)
        )

        await db.delete(user)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="user",
            entity_id=user_id,
            actor_id=actor.id,
            old_values=snapshot,
        )
        logger.info("User %s deleted by %s", snapshot["email"], actor.email)

