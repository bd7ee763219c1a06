"""Auth dependencies — JWT validation, RBAC enforcement."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.models import UserSession
from hrms.auth.security import decode_token, hash_token
from hrms.common.constants import PERMISSIONS, UserRole, UserStatus
from hrms.common.exceptions import ForbiddenException, UnauthorizedException
from hrms.database import get_db
from hrms.users.models import User

# Role hierarchy — each role implicitly includes lower roles
ROLE_HIERARCHY: dict[UserRole, set[UserRole]] = {
    UserRole.admin: {UserRole.admin, UserRole.hr, UserRole.manager, UserRole.employee},
    UserRole.hr: {UserRole.hr, UserRole.manager, UserRole.employee},
    UserRole.manager: {UserRole.manager, UserRole.employee},
    UserRole.marketing: {UserRole.marketing, UserRole.employee},
    UserRole.employee: {UserRole.employee},
}


def has_role(user: User, *roles: UserRole) -> bool:
    """True when *user*'s role (expanded via hierarchy) covers any of *roles*."""
    effective = ROLE_HIERARCHY.get(user.role, {user.role})
    return bool(effective.intersection(roles))


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthorizedException("Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate JWT, verify session, return the authenticated User."""
    token = _extract_bearer(request)
    payload = decode_token(token, "access")

    # Verify session exists, not revoked, not expired
    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == hash_token(token),
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    session = result.scalars().first()
    if session is None:
        raise UnauthorizedException("Session invalid or expired.")

    user = await db.get(User, uuid.UUID(payload["sub"]))
    if user is None:
        raise UnauthorizedException("User account not found.")
    if user.status == UserStatus.blocked:
        raise ForbiddenException("Your account has been blocked.")
    if user.status == UserStatus.pending:
        raise ForbiddenException("Your account is pending approval.")

    # Attach role + session to request state for downstream use
    request.state.user_role = user.role
    request.state.session_id = session.id

    return user


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership.

    Respects hierarchy — e.g. admin can access manager endpoints.
    """

    async def _check(user: User = Depends(get_current_user)) -> User:
        if not has_role(user, *allowed_roles):
            raise ForbiddenException(
                detail=f"Role '{user.role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}.",
            )
        return user

    return _check


# ── Permission-based dependency ─────────────────────────────────────

def require_permission(permission: str) -> Callable:
    """Return a FastAPI dependency that enforces a specific permission string."""

    async def _check(user: User = Depends(get_current_user)) -> User:
        if permission not in PERMISSIONS.get(user.role, []):
            raise ForbiddenException(
                detail=f"Permission '{permission}' is not granted to role '{user.role.value}'.",
            )
        return user

    return _check
