"""Auth router — register, password login, token refresh, logout, sessions, password reset."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth import service as auth_service
from hrms.auth.dependencies import get_current_user
from hrms.auth.schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MeResponse,
    MessageResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    SessionOut,
    TokenResponse,
)
from hrms.auth.security import hash_token
from hrms.common.audit import create_audit_entry
from hrms.common.constants import PERMISSIONS, UserStatus
from hrms.common.rate_limit import limiter
from hrms.config import settings
from hrms.database import get_db
from hrms.users.models import User
from hrms.users.schemas import UserOut

router = APIRouter(prefix="", tags=["auth"])


def _client_info(request: Request) -> tuple[Optional[str], Optional[str]]:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


# ── POST /register ──────────────────────────────────────────────────

@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create an account. Pending accounts get no tokens until approved."""
    ip, user_agent = _client_info(request)
    user = await auth_service.register_user(db, body, ip=ip, user_agent=user_agent)

    if user.status != UserStatus.active:
        return RegisterResponse(
            message="Registration successful. Your account is awaiting admin approval.",
            requires_approval=True,
            user=UserOut.model_validate(user),
        )

    access_token, refresh_token = await auth_service.create_session(db, user, ip, user_agent)
    return RegisterResponse(
        message="Registration successful.",
        requires_approval=False,
        user=UserOut.model_validate(user),
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.access_token_expiry_seconds,
    )


# ── POST /login ─────────────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.authenticate(db, body.email, body.password)

    ip, user_agent = _client_info(request)
    access_token, refresh_token = await auth_service.create_session(db, user, ip, user_agent)

    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=user.id,
        actor_id=user.id,
        new_values={"ip": ip, "user_agent": user_agent},
        ip_address=ip,
        user_agent=user_agent,
    )

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.access_token_expiry_seconds,
        user=UserOut.model_validate(user),
    )


# ── POST /refresh — Rotate the token pair ───────────────────────────

@router.post("/refresh", response_model=RefreshResponse)
async def refresh_token(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    access_token, new_refresh, expires_in = await auth_service.refresh_access_token(
        db, body.refresh_token,
    )
    return RefreshResponse(
        access_token=access_token,
        refresh_token=new_refresh,
        expires_in=expires_in,
    )


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    token = request.headers.get("Authorization", "").removeprefix("Bearer ")
    await auth_service.revoke_session(db, hash_token(token))

    ip, user_agent = _client_info(request)
    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=user.id,
        actor_id=user.id,
        ip_address=ip,
        user_agent=user_agent,
    )
    return MessageResponse(message="Logged out successfully")


# ── GET /me — Current user + permissions ────────────────────────────

@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)):
    return MeResponse(
        **UserOut.model_validate(user).model_dump(),
        permissions=PERMISSIONS.get(user.role, []),
    )


# ── GET /sessions — Active sessions for the caller ──────────────────

@router.get("/sessions", response_model=list[SessionOut])
async def list_sessions(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    current_id = getattr(request.state, "session_id", None)
    sessions = await auth_service.list_active_sessions(db, user.id)
    return [
        SessionOut.model_validate(s).model_copy(update={"is_current": s.id == current_id})
        for s in sessions
    ]


# ── DELETE /sessions/{id} ───────────────────────────────────────────

@router.delete("/sessions/{session_id}", response_model=MessageResponse)
async def revoke_session(
    session_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.revoke_user_session(db, user.id, session_id)
    return MessageResponse(message="Session revoked")


# ── POST /forgot-password ───────────────────────────────────────────

@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await auth_service.request_password_reset(db, body.email)
    return MessageResponse(
        message="If an account exists for that email, a reset link has been sent.",
    )


# ── POST /reset-password ────────────────────────────────────────────

@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await auth_service.reset_password(db, body.token, body.new_password)
    return MessageResponse(message="Password has been reset. Please sign in again.")


# ── POST /change-password ───────────────────────────────────────────

@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(db, user, body.current_password, body.new_password)
    return MessageResponse(message="Password changed")
