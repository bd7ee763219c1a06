"""Team service — teams, membership and leadership.

A team's leader is tracked on ``Team.leader_id`` and never appears as a
``TeamMember`` row. Mutations are open to admin/HR and to the team's
current leader; deletion is limited to admins and the team's creator.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hrms.auth.dependencies import has_role
from hrms.common.audit import create_audit_entry
from hrms.common.constants import UserRole, UserStatus
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from hrms.notes.models import Note
from hrms.notifications.service import notify_team_change
from hrms.teams.models import Team, TeamMember
from hrms.teams.schemas import TeamCreate, TeamUpdate
from hrms.users.models import User

logger = logging.getLogger(__name__)


class TeamService:

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _get_team(db: AsyncSession, team_id: uuid.UUID) -> Team:
        result = await db.execute(
            select(Team).where(Team.id == team_id).options(selectinload(Team.members))
        )
        team = result.scalars().first()
        if team is None:
            raise NotFoundException("Team", team_id)
        return team

    @staticmethod
    async def _get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundException("User", user_id)
        return user

    @staticmethod
    def _ensure_can_manage(team: Team, actor: User) -> None:
        if has_role(actor, UserRole.hr) or team.leader_id == actor.id:
            return
        raise ForbiddenException("Only admins, HR or the team leader can modify this team.")

    @staticmethod
    async def _ensure_name_free(
        db: AsyncSession,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Team.id).where(Team.name == name)
        if exclude_id is not None:
            query = query.where(Team.id != exclude_id)
        if (await db.execute(query)).scalars().first() is not None:
            raise ConflictError("name", name)

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def list_teams(db: AsyncSession) -> Sequence[Team]:
        result = await db.execute(
            select(Team).options(selectinload(Team.members)).order_by(Team.name)
        )
        return result.scalars().all()

    @staticmethod
    async def get_team(db: AsyncSession, team_id: uuid.UUID) -> Team:
        return await TeamService._get_team(db, team_id)

    @staticmethod
    async def list_members(db: AsyncSession, team_id: uuid.UUID) -> Sequence[User]:
        await TeamService._get_team(db, team_id)
        result = await db.execute(
            select(User)
            .join(TeamMember, TeamMember.user_id == User.id)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.added_at)
        )
        return result.scalars().all()

    @staticmethod
    async def available_users(db: AsyncSession, team_id: uuid.UUID) -> Sequence[User]:
        """Active users who are neither members nor the leader."""
        team = await TeamService._get_team(db, team_id)
        excluded = set(team.member_ids)
        if team.leader_id is not None:
            excluded.add(team.leader_id)

        query = select(User).where(User.status == UserStatus.active).order_by(User.full_name)
        if excluded:
            query = query.where(User.id.not_in(excluded))
        return (await db.execute(query)).scalars().all()

    # ── Writes ──────────────────────────────────────────────────────

    @staticmethod
    async def create_team(db: AsyncSession, data: TeamCreate, actor: User) -> Team:
        await TeamService._ensure_name_free(db, data.name)

        leader_id = data.leader_id or actor.id
        if data.leader_id is not None:
            await TeamService._get_user(db, data.leader_id)

        member_ids = list(dict.fromkeys(data.member_ids))
        if leader_id in member_ids:
            raise ValidationException(
                {"member_ids": ["The team leader cannot also be listed as a member."]}
            )
        for member_id in member_ids:
            await TeamService._get_user(db, member_id)

        team = Team(
            name=data.name,
            description=data.description,
            leader_id=leader_id,
            created_by=actor.id,
            members=[TeamMember(user_id=member_id) for member_id in member_ids],
        )
        db.add(team)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="team",
            entity_id=team.id,
            actor_id=actor.id,
            new_values={
                "name": team.name,
                "leader_id": str(leader_id),
                "member_ids": [str(m) for m in member_ids],
            },
        )
        for member_id in member_ids:
            await notify_team_change(
                db, team, member_id, f"You were added to the team '{team.name}'.",
                sender_id=actor.id,
            )
        if leader_id != actor.id:
            await notify_team_change(
                db, team, leader_id, f"You are now the leader of '{team.name}'.",
                sender_id=actor.id,
            )
        logger.info("Team %r created by %s", team.name, actor.email)
        return team

    @staticmethod
    async def update_team(
        db: AsyncSession,
        team_id: uuid.UUID,
        data: TeamUpdate,
        actor: User,
    ) -> Team:
        team = await TeamService._get_team(db, team_id)
        TeamService._ensure_can_manage(team, actor)

        changes = data.model_dump(exclude_unset=True)
        if changes.get("name") is not None and changes["name"] != team.name:
            await TeamService._ensure_name_free(db, changes["name"], exclude_id=team.id)
        for field, value in changes.items():
            if field == "name" and value is None:
                continue
            setattr(team, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="team",
            entity_id=team.id,
            actor_id=actor.id,
            new_values=changes,
        )
        return team

    @staticmethod
    async def delete_team(db: AsyncSession, team_id: uuid.UUID, actor: User) -> None:
        team = await TeamService._get_team(db, team_id)
        if not has_role(actor, UserRole.admin) and team.created_by != actor.id:
            raise ForbiddenException("Only admins or the team's creator can delete it.")

        name = team.name
        # Shared notes stay with their authors
        await db.execute(update(Note).where(Note.team_id == team.id).values(team_id=None))
        await db.delete(team)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="team",
            entity_id=team_id,
            actor_id=actor.id,
            old_values={"name": name},
        )
        logger.info("Team %r deleted by %s", name, actor.email)

    @staticmethod
    async def add_member(
        db: AsyncSession,
        team_id: uuid.UUID,
        user_id: uuid.UUID,
        actor: User,
    ) -> Team:
        team = await TeamService._get_team(db, team_id)
        TeamService._ensure_can_manage(team, actor)
        await TeamService._get_user(db, user_id)

        if user_id == team.leader_id:
            raise ValidationException({"user_id": ["The team leader cannot also be a member."]})
        if user_id in team.member_ids:
            raise ConflictError("user_id", str(user_id), detail="User is already a team member.")

        team.members.append(TeamMember(user_id=user_id))
        await db.flush()

        await notify_team_change(
            db, team, user_id, f"You were added to the team '{team.name}'.",
            sender_id=actor.id,
        )
        return team

    @staticmethod
    async def remove_member(
        db: AsyncSession,
        team_id: uuid.UUID,
        user_id: uuid.UUID,
        actor: User,
    ) -> Team:
        team = await TeamService._get_team(db, team_id)
        TeamService._ensure_can_manage(team, actor)

        membership = next((m for m in team.members if m.user_id == user_id), None)
        if membership is None:
            raise NotFoundException("TeamMember", user_id)

        team.members.remove(membership)
        await db.flush()

        await notify_team_change(
            db, team, user_id, f"You were removed from the team '{team.name}'.",
            sender_id=actor.id,
        )
        return team

    @staticmethod
    async def assign_leader(
        db: AsyncSession,
        team_id: uuid.UUID,
        user_id: uuid.UUID,
        actor: User,
    ) -> Team:
        """Make *user_id* the leader, dropping their membership row if any."""
        team = await TeamService._get_team(db, team_id)
        TeamService._ensure_can_manage(team, actor)
        await TeamService._get_user(db, user_id)

        membership = next((m for m in team.members if m.user_id == user_id), None)
        if membership is not None:
            team.members.remove(membership)

        old_leader = team.leader_id
        team.leader_id = user_id
        await db.flush()

        await create_audit_entry(
            db,
            action="assign_leader",
            entity_type="team",
            entity_id=team.id,
            actor_id=actor.id,
            old_values={"leader_id": str(old_leader) if old_leader else None},
            new_values={"leader_id": str(user_id)},
        )
        await notify_team_change(
            db, team, user_id, f"You are now the leader of '{team.name}'.",
            sender_id=actor.id,
        )
        return team
