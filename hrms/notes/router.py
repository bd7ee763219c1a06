"""Notes router."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.database import get_db
from hrms.notes.schemas import NoteCreate, NoteOut, NoteUpdate
from hrms.notes.service import NoteService
from hrms.users.models import User

router = APIRouter(prefix="", tags=["notes"])

_writer = require_permission("note:write")


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=NoteOut, status_code=201)
async def create_note(
    body: NoteCreate,
    user: User = Depends(_writer),
    db: AsyncSession = Depends(get_db),
):
    return await NoteService.create(db, user, body)


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=list[NoteOut])
async def my_notes(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's notes, pinned first."""
    return await NoteService.for_user(db, user.id, user)


# ── GET /user/{id} ──────────────────────────────────────────────────

@router.get("/user/{user_id}", response_model=list[NoteOut])
async def user_notes(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NoteService.for_user(db, user_id, user)


# ── GET /team/{id} ──────────────────────────────────────────────────

@router.get("/team/{team_id}", response_model=list[NoteOut])
async def team_notes(
    team_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NoteService.for_team(db, team_id, user)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{note_id}", response_model=NoteOut)
async def edit_note(
    note_id: uuid.UUID,
    body: NoteUpdate,
    user: User = Depends(_writer),
    db: AsyncSession = Depends(get_db),
):
    return await NoteService.update(db, note_id, user, body)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{note_id}", status_code=204)
async def delete_note(
    note_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await NoteService.delete(db, note_id, user)
