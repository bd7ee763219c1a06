"""Navigation service — page-visit logging and per-user history."""

from __future__ import annotations

import logging
import uuid
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import PERMISSIONS
from hrms.common.exceptions import ForbiddenException
from hrms.navigation.models import NavigationLog
from hrms.users.models import User

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 500


class NavigationService:

    @staticmethod
    async def log_visit(db: AsyncSession, user: User, path: str) -> NavigationLog:
        entry = NavigationLog(user_id=user.id, path=path)
        db.add(entry)
        await db.flush()
        logger.debug("Navigation %s -> %s", user.email, path)
        return entry

    @staticmethod
    async def history(
        db: AsyncSession,
        user_id: uuid.UUID,
        viewer: User,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[NavigationLog]:
        """Most recent visits first."""
        if user_id != viewer.id and "navigation:read_all" not in PERMISSIONS.get(viewer.role, []):
            raise ForbiddenException("You can only view your own navigation history.")
        result = await db.execute(
            select(NavigationLog)
            .where(NavigationLog.user_id == user_id)
            .order_by(NavigationLog.visited_at.desc())
            .limit(limit)
        )
        return result.scalars().all()
