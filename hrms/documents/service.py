"""Document service — employee document records and who may see them."""

from __future__ import annotations

import logging
import uuid
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.audit import create_audit_entry
from hrms.common.constants import PERMISSIONS, NotificationType
from hrms.common.exceptions import ForbiddenException, NotFoundException
from hrms.common.timeutils import utc_now
from hrms.documents.models import Document
from hrms.documents.schemas import DocumentCreate
from hrms.notifications.service import NotificationService
from hrms.users.models import User

logger = logging.getLogger(__name__)


def _can_manage(user: User) -> bool:
    return "document:manage" in PERMISSIONS.get(user.role, [])


class DocumentService:

    @staticmethod
    async def _get(db: AsyncSession, document_id: uuid.UUID) -> Document:
        document = await db.get(Document, document_id)
        if document is None:
            raise NotFoundException("Document", document_id)
        return document

    @staticmethod
    async def create(db: AsyncSession, actor: User, data: DocumentCreate) -> Document:
        """File a document for the caller, or for anyone when HR files it."""
        owner_id = data.user_id or actor.id
        if owner_id != actor.id:
            if not _can_manage(actor):
                raise ForbiddenException("You can only add documents to your own profile.")
            if await db.get(User, owner_id) is None:
                raise NotFoundException("User", owner_id)

        document = Document(
            user_id=owner_id,
            title=data.title,
            category=data.category,
            file_url=data.file_url,
            uploaded_by=actor.id,
            expires_at=data.expires_at,
        )
        db.add(document)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="document",
            entity_id=document.id,
            actor_id=actor.id,
            new_values={
                "user_id": str(owner_id),
                "title": data.title,
                "category": data.category.value,
            },
        )
        if owner_id != actor.id:
            await NotificationService.create_notification(
                db,
                recipient_id=owner_id,
                sender_id=actor.id,
                type=NotificationType.info,
                title="New Document",
                message=f"{actor.full_name} added '{data.title}' to your documents.",
                action_url="/documents",
                entity_type="document",
                entity_id=document.id,
            )
        logger.info("Document %s filed for %s by %s", document.id, owner_id, actor.email)
        return document

    @staticmethod
    async def for_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        viewer: User,
        *,
        include_expired: bool = True,
    ) -> Sequence[Document]:
        if user_id != viewer.id and not _can_manage(viewer):
            raise ForbiddenException("You can only view your own documents.")
        query = (
            select(Document)
            .where(Document.user_id == user_id)
            .order_by(Document.created_at.desc())
        )
        if not include_expired:
            query = query.where(
                or_(Document.expires_at.is_(None), Document.expires_at > utc_now())
            )
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def delete(db: AsyncSession, document_id: uuid.UUID, actor: User) -> None:
        document = await DocumentService._get(db, document_id)
        if actor.id not in (document.user_id, document.uploaded_by) and not _can_manage(actor):
            raise ForbiddenException("You cannot delete this document.")
        snapshot = {"user_id": str(document.user_id), "title": document.title}
        await db.delete(document)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="document",
            entity_id=document_id,
            actor_id=actor.id,
            old_values=snapshot,
        )
