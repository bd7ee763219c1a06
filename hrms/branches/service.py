"""Branch service — office locations, user assignment and the check-in geofence."""

from __future__ import annotations

import logging
import math
import uuid
from typing import Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.branches.models import Branch
from hrms.branches.schemas import BranchCreate, BranchUpdate
from hrms.common.audit import create_audit_entry
from hrms.common.exceptions import ConflictError, NotFoundException, ValidationException
from hrms.users.models import User

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371000.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in metres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


class BranchService:

    @staticmethod
    async def _get(db: AsyncSession, branch_id: uuid.UUID) -> Branch:
        branch = await db.get(Branch, branch_id)
        if branch is None:
            raise NotFoundException("Branch", branch_id)
        return branch

    @staticmethod
    async def _ensure_unique(
        db: AsyncSession,
        name: Optional[str],
        code: Optional[str],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        clauses = []
        if name is not None:
            clauses.append(Branch.name == name)
        if code is not None:
            clauses.append(Branch.code == code)
        if not clauses:
            return
        query = select(Branch).where(or_(*clauses))
        if exclude_id is not None:
            query = query.where(Branch.id != exclude_id)
        clash = (await db.execute(query)).scalars().first()
        if clash is None:
            return
        if name is not None and clash.name == name:
            raise ConflictError("name", name)
        raise ConflictError("code", code)

    @staticmethod
    def _check_geofence_config(branch: Branch) -> None:
        if branch.geo_restriction_enabled and not branch.has_coordinates:
            raise ValidationException({
                "geo_restriction_enabled": [
                    "Latitude and longitude are required to enable geo-restriction.",
                ],
            })

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def list_branches(db: AsyncSession) -> Sequence[Branch]:
        result = await db.execute(select(Branch).order_by(Branch.name))
        return result.scalars().all()

    @staticmethod
    async def get_branch(db: AsyncSession, branch_id: uuid.UUID) -> Branch:
        return await BranchService._get(db, branch_id)

    @staticmethod
    async def list_users(db: AsyncSession, branch_id: uuid.UUID) -> Sequence[User]:
        await BranchService._get(db, branch_id)
        result = await db.execute(
            select(User).where(User.branch_id == branch_id).order_by(User.full_name)
        )
        return result.scalars().all()

    # ── Writes ──────────────────────────────────────────────────────

    @staticmethod
    async def create_branch(db: AsyncSession, data: BranchCreate, actor: User) -> Branch:
        await BranchService._ensure_unique(db, data.name, data.code)
        branch = Branch(**data.model_dump())
        BranchService._check_geofence_config(branch)
        db.add(branch)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="branch",
            entity_id=branch.id,
            actor_id=actor.id,
            new_values=data.model_dump(mode="json"),
        )
        logger.info("Branch %s created by %s", branch.code, actor.email)
        return branch

    @staticmethod
    async def update_branch(
        db: AsyncSession,
        branch_id: uuid.UUID,
        data: BranchUpdate,
        actor: User,
    ) -> Branch:
        branch = await BranchService._get(db, branch_id)
        changes = data.model_dump(exclude_unset=True)
        # name, code, radius and the flag are required columns
        for field in ("name", "code", "geo_radius", "geo_restriction_enabled"):
            if field in changes and changes[field] is None:
                del changes[field]
        if not changes:
            return branch

        await BranchService._ensure_unique(
            db, changes.get("name"), changes.get("code"), exclude_id=branch.id,
        )
        old_values = {field: getattr(branch, field) for field in changes}
        for field, value in changes.items():
            setattr(branch, field, value)
        BranchService._check_geofence_config(branch)
        await db.flush()
        await create_audit_entry(
            db,
            action="update",
            entity_type="branch",
            entity_id=branch.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=changes,
        )
        return branch

    @staticmethod
    async def delete_branch(db: AsyncSession, branch_id: uuid.UUID, actor: User) -> None:
        """Delete a branch; its users become unassigned."""
        branch = await BranchService._get(db, branch_id)
        await db.execute(update(User).where(User.branch_id == branch.id).values(branch_id=None))
        await db.delete(branch)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="branch",
            entity_id=branch_id,
            actor_id=actor.id,
            old_values={"name": branch.name, "code": branch.code},
        )

    @staticmethod
    async def assign_users(
        db: AsyncSession, branch_id: uuid.UUID, user_ids: list[uuid.UUID], actor: User,
    ) -> int:
        branch = await BranchService._get(db, branch_id)

        ids = list(dict.fromkeys(user_ids))
        found = set((await db.execute(select(User.id).where(User.id.in_(ids)))).scalars().all())
        missing = [i for i in ids if i not in found]
        if missing:
            raise NotFoundException("User", missing[0])

        await db.execute(update(User).where(User.id.in_(ids)).values(branch_id=branch.id))
        await db.flush()
        await create_audit_entry(
            db,
            action="assign",
            entity_type="branch",
            entity_id=branch.id,
            actor_id=actor.id,
            new_values={"user_ids": [str(i) for i in ids]},
        )
        return len(ids)

    @staticmethod
    async def unassign_users(db: AsyncSession, user_ids: list[uuid.UUID], actor: User) -> int:
        ids = list(dict.fromkeys(user_ids))
        result = await db.execute(
            select(User.id, User.branch_id).where(
                User.id.in_(ids), User.branch_id.is_not(None),
            )
        )
        previous = {user_id: branch_id for user_id, branch_id in result.all()}
        if not previous:
            return 0

        await db.execute(
            update(User).where(User.id.in_(list(previous))).values(branch_id=None)
        )
        await db.flush()
        for branch_id in set(previous.values()):
            await create_audit_entry(
                db,
                action="unassign",
                entity_type="branch",
                entity_id=branch_id,
                actor_id=actor.id,
                old_values={
                    "user_ids": [str(u) for u, b in previous.items() if b == branch_id],
                },
            )
        return len(previous)

    # ── Geofence ────────────────────────────────────────────────────

    @staticmethod
    async def check_location(
        db: AsyncSession,
        user: User,
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> None:
        """Reject a check-in made outside the user's branch geofence."""
        if user.branch_id is None:
            return
        branch = await db.get(Branch, user.branch_id)
        if branch is None or not branch.geo_restriction_enabled or not branch.has_coordinates:
            return

        if latitude is None or longitude is None:
            raise ValidationException({
                "location": [f"Location is required to check in at {branch.name}."],
            })
        distance = haversine_meters(latitude, longitude, branch.latitude, branch.longitude)
        if distance > branch.geo_radius:
            logger.info(
                "Check-in by %s rejected: %.0fm from %s (radius %dm)",
                user.email, distance, branch.code, branch.geo_radius,
            )
            raise ValidationException({
                "location": [
                    f"You are {distance:.0f}m from {branch.name}; "
                    f"check-in is allowed within {branch.geo_radius}m.",
                ],
            })
