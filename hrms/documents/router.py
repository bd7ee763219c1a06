"""Documents router — employee document records; HR files on anyone's behalf."""


import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.auth.dependencies import get_current_user, require_permission
from hrms.database import get_db
from hrms.documents.schemas import DocumentCreate, DocumentOut
from hrms.documents.service import DocumentService
from hrms.users.models import User

router = APIRouter(prefix="", tags=["documents"])

_reader = require_permission("document:read_own")


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=DocumentOut, status_code=201)
async def create_document(
    body: DocumentCreate,
    user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    return await DocumentService.create(db, user, body)


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=list[DocumentOut])
async def my_documents(
    include_expired: bool = Query(True),
    user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    return await DocumentService.for_user(db, user.id, user, include_expired=include_expired)


# ── GET /user/{id} ──────────────────────────────────────────────────

@router.get("/user/{user_id}", response_model=list[DocumentOut])
async def user_documents(
    user_id: uuid.UUID,
    include_expired: bool = Query(True),
    user: User = Depends(_reader),
    db: AsyncSession = Depends(get_db),
):
    return await DocumentService.for_user(db, user_id, user, include_expired=include_expired)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await DocumentService.delete(db, document_id, user)
