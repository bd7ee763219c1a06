"""Auth service — registration, password login, JWT sessions, password reset."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import PasswordResetToken, UserSession
from hrms.auth.schemas import RegisterRequest
from hrms.auth.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
)
from hrms.common.audit import create_audit_entry
from hrms.common.constants import SELF_REGISTER_ROLES, UserRole, UserStatus
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from hrms.config import settings
from hrms.notifications.service import notify_pending_registration
from hrms.users.models import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def ensure_can_sign_in(user: User) -> None:
    """Reject pending and blocked accounts with a 403 the client can route on."""
    if user.status == UserStatus.blocked:
        raise ForbiddenException(detail="Your account has been blocked.")
    if user.status == UserStatus.pending:
        raise ForbiddenException(detail="Your account is pending approval.")


# ── Registration ────────────────────────────────────────────────────

async def register_user(
    db: AsyncSession,
    body: RegisterRequest,
    *,
    ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> User:
    """Create an account.

    The very first account becomes an active admin so the system can be
    bootstrapped. Later accounts are pending until approved, unless
    REQUIRE_ADMIN_APPROVAL is off. Privileged roles (admin, hr) can never
    be self-assigned.
    """
    email = normalize_email(body.email)
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("email", email)

    user_count = (await db.execute(select(func.count()).select_from(User))).scalar_one()
    if user_count == 0:
        role, status = UserRole.admin, UserStatus.active
    else:
        role = body.role if body.role in SELF_REGISTER_ROLES else UserRole.employee
        status = UserStatus.pending if settings.REQUIRE_ADMIN_APPROVAL else UserStatus.active

    user = User(
        email=email,
        full_name=body.full_name.strip(),
        phone=body.phone,
        password_hash=hash_password(body.password),
        role=role,
        status=status,
    )
    if status == UserStatus.active:
        user.approved_at = datetime.now(timezone.utc)
    db.add(user)
    await db.flush()

    await create_audit_entry(
        db,
        action="register",
        entity_type="user",
        entity_id=user.id,
        actor_id=user.id,
        new_values={"email": email, "role": role.value, "status": status.value},
        ip_address=ip,
        user_agent=user_agent,
    )

    if status == UserStatus.pending:
        await notify_pending_registration(db, user)

    logger.info("Registered %s as %s (%s)", email, role.value, status.value)
    return user


# ── Login ───────────────────────────────────────────────────────────

async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Return the user for valid credentials, or raise 401/403."""
    email = normalize_email(email)
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalars().first()
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise UnauthorizedException("Invalid email or password.")
    ensure_can_sign_in(user)
    return user


# ── Session management ──────────────────────────────────────────────

async def create_session(
    db: AsyncSession,
    user: User,
    ip: Optional[str],
    user_agent: Optional[str],
) -> tuple[str, str]:
    """Create JWT pair and persist session.  Returns (access_token, refresh_token)."""
    access_token = create_access_token(user.id, user.role)
    refresh_token = create_refresh_token(user.id)
    now = datetime.now(timezone.utc)

    session = UserSession(
        user_id=user.id,
        token_hash=hash_token(access_token),
        refresh_token_hash=hash_token(refresh_token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRY_MINUTES),
        refresh_expires_at=now + timedelta(days=settings.REFRESH_TOKEN_EXPIRY_DAYS),
    )
    db.add(session)
    user.last_login_at = now
    await db.flush()

    return access_token, refresh_token


# ── Refresh (with token rotation + reuse detection) ─────────────────

async def refresh_access_token(
    db: AsyncSession,
    refresh_token_str: str,
) -> tuple[str, str, int]:
    """Validate refresh token, rotate it, and issue new token pair.

    Returns (new_access_token, new_refresh_token, expires_in).

    Each refresh token can only be used once. If a previously used
    (revoked) refresh token is presented, ALL sessions for that user
    are revoked.
    """
    payload = decode_token(refresh_token_str, "refresh")

    result = await db.execute(
        select(UserSession).where(
            UserSession.refresh_token_hash == hash_token(refresh_token_str),
        ),
    )
    session = result.scalars().first()
    if session is None:
        raise UnauthorizedException("Invalid refresh token.")

    if session.is_revoked:
        # A consumed refresh token was replayed
        logger.warning("Refresh token reuse for user %s; revoking all sessions", session.user_id)
        await revoke_all_user_sessions(db, session.user_id)
        await db.commit()  # Persist revocations BEFORE raising (avoid rollback)
        raise UnauthorizedException(
            "Refresh token reuse detected. All sessions revoked for security.",
        )

    user = await db.get(User, uuid.UUID(payload["sub"]))
    if user is None or user.id != session.user_id:
        raise UnauthorizedException("Invalid refresh token.")
    ensure_can_sign_in(user)

    # Consume the old session, then issue a fresh pair
    session.is_revoked = True
    await db.flush()
    access_token, new_refresh_token = await create_session(
        db, user, session.ip_address, session.user_agent,
    )
    return access_token, new_refresh_token, settings.access_token_expiry_seconds


# ── Revoke ──────────────────────────────────────────────────────────

async def revoke_all_user_sessions(
    db: AsyncSession,
    user_id: uuid.UUID,
) -> int:
    """Revoke every active session for a user. Returns the number revoked."""
    result = await db.execute(
        update(UserSession)
        .where(
            UserSession.user_id == user_id,
            UserSession.is_revoked.is_(False),
        )
        .values(is_revoked=True)
    )
    await db.flush()
    return result.rowcount  # type: ignore[return-value]


async def revoke_session(db: AsyncSession, token_hash: str) -> None:
    """Mark a session as revoked by its access-token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()


async def list_active_sessions(
    db: AsyncSession,
    user_id: uuid.UUID,
) -> list[UserSession]:
    """Sessions whose refresh window is still open, newest first."""
    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(UserSession)
        .where(
            UserSession.user_id == user_id,
            UserSession.is_revoked.is_(False),
            UserSession.refresh_expires_at > now,
        )
        .order_by(UserSession.created_at.desc())
    )
    return list(result.scalars().all())


async def revoke_user_session(
    db: AsyncSession,
    user_id: uuid.UUID,
    session_id: uuid.UUID,
) -> UserSession:
    """Revoke one of the caller's own sessions."""
    session = await db.get(UserSession, session_id)
    if session is None or session.user_id != user_id:
        raise NotFoundException("Session", session_id)
    session.is_revoked = True
    await db.flush()
    return session


# ── Passwords ───────────────────────────────────────────────────────

async def request_password_reset(db: AsyncSession, email: str) -> Optional[str]:
    """Create a reset token for an existing account.

    Returns the raw token (``None`` for unknown emails). Callers must not
    reveal which case happened.
    """
    email = normalize_email(email)
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalars().first()
    if user is None:
        logger.info("Password reset requested for unknown email %s", email)
        return None

    token = generate_reset_token()
    db.add(
        PasswordResetToken(
            user_id=user.id,
            token_hash=hash_token(token),
            expires_at=datetime.now(timezone.utc)
            + timedelta(minutes=settings.PASSWORD_RESET_EXPIRY_MINUTES),
        )
    )
    await db.flush()
    # TODO: hand the token to an email sender once SMTP settings exist
    logger.info("Password reset token issued for %s", email)
    return token


async def reset_password(db: AsyncSession, token: str, new_password: str) -> User:
    """Consume a reset token, set the new password and sign out everywhere."""
    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(PasswordResetToken).where(
            PasswordResetToken.token_hash == hash_token(token),
            PasswordResetToken.used_at.is_(None),
            PasswordResetToken.expires_at > now,
        )
    )
    reset = result.scalars().first()
    if reset is None:
        raise ValidationException({"token": ["Reset token is invalid or has expired."]})

    user = await db.get(User, reset.user_id)
    reset.used_at = now
    user.password_hash = hash_password(new_password)
    await revoke_all_user_sessions(db, user.id)
    await create_audit_entry(
        db,
        action="password_reset",
        entity_type="user",
        entity_id=user.id,
        actor_id=user.id,
    )
    logger.info("Password reset completed for %s", user.email)
    return user


async def change_password(
    db: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    if not verify_password(current_password, user.password_hash):
        raise ValidationException({"current_password": ["Current password is incorrect."]})
    if current_password == new_password:
        raise ValidationException({"new_password": ["New password must differ from the current one."]})
    user.password_hash = hash_password(new_password)
    await db.flush()
    await create_audit_entry(
        db,
        action="password_change",
        entity_type="user",
        entity_id=user.id,
        actor_id=user.id,
    )
