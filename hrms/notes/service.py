"""Note service — personal notes, pinned first, optionally attached to a team."""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import has_role
from hrms.common.constants import PERMISSIONS, UserRole
from hrms.common.exceptions import ForbiddenException, NotFoundException
from hrms.notes.models import Note
from hrms.notes.schemas import NoteCreate, NoteUpdate
from hrms.teams.models import Team, TeamMember
from hrms.users.models import User

logger = logging.getLogger(__name__)


class NoteService:

    @staticmethod
    async def _get(db: AsyncSession, note_id: uuid.UUID) -> Note:
        note = await db.get(Note, note_id)
        if note is None:
            raise NotFoundException("Note", note_id)
        return note

    @staticmethod
    async def _ensure_team_access(db: AsyncSession, team_id: uuid.UUID, user: User) -> Team:
        """The team's leader, its members and HR and above may use a team's notes."""
        team = await db.get(Team, team_id)
        if team is None:
            raise NotFoundException("Team", team_id)
        if has_role(user, UserRole.hr) or team.leader_id == user.id:
            return team
        member = await db.execute(
            select(TeamMember.id).where(
                TeamMember.team_id == team_id, TeamMember.user_id == user.id,
            )
        )
        if member.scalars().first() is None:
            raise ForbiddenException("You are not part of this team.")
        return team

    @staticmethod
    def _ordered(query):
        return query.order_by(Note.is_pinned.desc(), Note.updated_at.desc())

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def for_user(db: AsyncSession, user_id: uuid.UUID, viewer: User) -> Sequence[Note]:
        if user_id != viewer.id and "note:read_all" not in PERMISSIONS.get(viewer.role, []):
            raise ForbiddenException("You can only view your own notes.")
        query = NoteService._ordered(select(Note).where(Note.user_id == user_id))
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def for_team(db: AsyncSession, team_id: uuid.UUID, viewer: User) -> Sequence[Note]:
        await NoteService._ensure_team_access(db, team_id, viewer)
        query = NoteService._ordered(select(Note).where(Note.team_id == team_id))
        return (await db.execute(query)).scalars().all()

    # ── Writes ──────────────────────────────────────────────────────

    @staticmethod
    async def create(db: AsyncSession, user: User, data: NoteCreate) -> Note:
        if data.team_id is not None:
            await NoteService._ensure_team_access(db, data.team_id, user)
        note = Note(user_id=user.id, **data.model_dump())
        db.add(note)
        await db.flush()
        logger.info("Note %s created by %s", note.id, user.email)
        return note

    @staticmethod
    async def update(
        db: AsyncSession,
        note_id: uuid.UUID,
        user: User,
        data: NoteUpdate,
    ) -> Note:
        note = await NoteService._get(db, note_id)
        if note.user_id != user.id:
            raise ForbiddenException("You can only edit your own notes.")

        changes = data.model_dump(exclude_unset=True)
        # A null team detaches the note; other nulls leave the field alone
        for field in ("title", "content", "is_pinned"):
            if field in changes and changes[field] is None:
                del changes[field]
        team_id: Optional[uuid.UUID] = changes.get("team_id")
        if team_id is not None and team_id != note.team_id:
            await NoteService._ensure_team_access(db, team_id, user)

        for field, value in changes.items():
            setattr(note, field, value)
        await db.flush()
        return note

    @staticmethod
    async def delete(db: AsyncSession, note_id: uuid.UUID, user: User) -> None:
        note = await NoteService._get(db, note_id)
        if note.user_id != user.id and user.role != UserRole.admin:
            raise ForbiddenException("You can only delete your own notes.")
        await db.delete(note)
        await db.flush()
