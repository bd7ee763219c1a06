"""Document tests — self-service records, HR filing on behalf, expiry filter."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from hrms.common.audit import AuditTrail
from hrms.common.constants import DocumentCategory
from hrms.documents.models import Document
from hrms.notifications.models import Notification
from tests.conftest import TestSessionFactory

CONTRACT = {
    "title": "Employment contract",
    "category": "contract",
    "file_url": "https://files.example.com/contracts/eve.pdf",
}


async def test_employee_files_own_document(client, employee, employee_headers):
    resp = await client.post("/api/v1/documents", json=CONTRACT, headers=employee_headers)
    assert resp.status_code == 201
    data = resp.json()
    assert data["user_id"] == str(employee.id)
    assert data["uploaded_by"] == str(employee.id)
    assert data["category"] == "contract"

    resp = await client.get("/api/v1/documents/me", headers=employee_headers)
    assert [d["title"] for d in resp.json()] == ["Employment contract"]


async def test_file_url_must_be_http(client, employee_headers):
    resp = await client.post(
        "/api/v1/documents",
        json={**CONTRACT, "file_url": "file:///etc/passwd"},
        headers=employee_headers,
    )
    assert resp.status_code == 422
    assert "file_url" in resp.json()["errors"]


async def test_hr_files_for_employee_and_notifies(client, employee, hr_user, hr_headers):
    resp = await client.post(
        "/api/v1/documents",
        json={**CONTRACT, "user_id": str(employee.id), "category": "tax"},
        headers=hr_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["uploaded_by"] == str(hr_user.id)

    async with TestSessionFactory() as session:
        notes = (
            await session.execute(
                select(Notification).where(Notification.recipient_id == employee.id)
            )
        ).scalars().all()
        audit = (
            await session.execute(
                select(AuditTrail).where(AuditTrail.entity_type == "document")
            )
        ).scalars().first()
    assert [n.title for n in notes] == ["New Document"]
    assert audit.actor_id == hr_user.id


async def test_employee_cannot_file_for_others(client, manager, employee_headers):
    resp = await client.post(
        "/api/v1/documents",
        json={**CONTRACT, "user_id": str(manager.id)},
        headers=employee_headers,
    )
    assert resp.status_code == 403


async def test_filing_for_unknown_user_is_404(client, hr_headers):
    resp = await client.post(
        "/api/v1/documents",
        json={**CONTRACT, "user_id": str(uuid.uuid4())},
        headers=hr_headers,
    )
    assert resp.status_code == 404


async def test_reading_other_users_documents(client, employee, manager_headers, hr_headers):
    resp = await client.get(f"/api/v1/documents/user/{employee.id}", headers=manager_headers)
    assert resp.status_code == 403
    resp = await client.get(f"/api/v1/documents/user/{employee.id}", headers=hr_headers)
    assert resp.status_code == 200


async def test_expired_documents_can_be_hidden(client, db, employee, employee_headers):
    now = datetime.now(timezone.utc)
    db.add_all([
        Document(
            user_id=employee.id, title="Old visa", category=DocumentCategory.id_proof,
            file_url="https://x/visa-old", expires_at=now - timedelta(days=1),
            created_at=now - timedelta(days=400),
        ),
        Document(
            user_id=employee.id, title="Passport", category=DocumentCategory.id_proof,
            file_url="https://x/passport", expires_at=now + timedelta(days=900),
            created_at=now - timedelta(days=10),
        ),
    ])
    await db.commit()

    resp = await client.get("/api/v1/documents/me", headers=employee_headers)
    assert [d["title"] for d in resp.json()] == ["Passport", "Old visa"]

    resp = await client.get(
        "/api/v1/documents/me", params={"include_expired": "false"}, headers=employee_headers,
    )
    assert [d["title"] for d in resp.json()] == ["Passport"]


async def test_delete_by_owner_or_hr_only(
    client, employee_headers, manager_headers, hr_headers,
):
    doc = (await client.post("/api/v1/documents", json=CONTRACT, headers=employee_headers)).json()

    resp = await client.delete(f"/api/v1/documents/{doc['id']}", headers=manager_headers)
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/documents/{doc['id']}", headers=hr_headers)
    assert resp.status_code == 204
    assert (await client.get("/api/v1/documents/me", headers=employee_headers)).json() == []
