"""Teams router — team CRUD, membership and leadership."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.database import get_db
from hrms.teams.schemas import TeamCreate, TeamLeaderAssign, TeamMemberAdd, TeamOut, TeamUpdate
from hrms.teams.service import TeamService
from hrms.users.models import User
from hrms.users.schemas import UserBrief

router = APIRouter(prefix="", tags=["teams"])

_reader = require_permission("team:read")


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[TeamOut])
async def list_teams(
    _user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    return await TeamService.list_teams(db)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=TeamOut, status_code=201)
async def create_team(
    body: TeamCreate,
    user: User = Depends(require_permission("team:manage")),
    db: AsyncSession = Depends(get_db),
):
    """Create a team; the creator leads it unless ``leader_id`` is given."""
    return await TeamService.create_team(db, body, user)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{team_id}", response_model=TeamOut)
async def get_team(
    team_id: uuid.UUID,
    _user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    return await TeamService.get_team(db, team_id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{team_id}", response_model=TeamOut)
async def update_team(
    team_id: uuid.UUID,
    body: TeamUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TeamService.update_team(db, team_id, body, user)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{team_id}", status_code=204)
async def delete_team(
    team_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await TeamService.delete_team(db, team_id, user)


# ── Members ─────────────────────────────────────────────────────────

@router.get("/{team_id}/members", response_model=list[UserBrief])
async def list_members(
    team_id: uuid.UUID,
    _user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    return await TeamService.list_members(db, team_id)


@router.get("/{team_id}/available-users", response_model=list[UserBrief])
async def available_users(
    team_id: uuid.UUID,
    _user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    """Active users that could still be added to the team."""
    return await TeamService.available_users(db, team_id)


@router.post("/{team_id}/members", response_model=TeamOut, status_code=201)
async def add_member(
    team_id: uuid.UUID,
    body: TeamMemberAdd,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TeamService.add_member(db, team_id, body.user_id, user)


@router.delete("/{team_id}/members/{user_id}", response_model=TeamOut)
async def remove_member(
    team_id: uuid.UUID,
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TeamService.remove_member(db, team_id, user_id, user)


# ── PUT /{id}/leader ────────────────────────────────────────────────

@router.put("/{team_id}/leader", response_model=TeamOut)
async def assign_leader(
    team_id: uuid.UUID,
    body: TeamLeaderAssign,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TeamService.assign_leader(db, team_id, body.user_id, user)
