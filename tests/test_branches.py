"""Branch tests — CRUD, user assignment and the haversine distance helper."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from hrms.branches.service import haversine_meters
from hrms.common.audit import AuditTrail
from hrms.users.models import User
from tests.conftest import TestSessionFactory

HQ = {"name": "Bengaluru HQ", "code": "blr", "latitude": 12.9716, "longitude": 77.5946}


async def _create_branch(client, headers, **overrides) -> dict:
    resp = await client.post("/api/v1/branches", json={**HQ, **overrides}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Distance ────────────────────────────────────────────────────────


def test_haversine_same_point_is_zero():
    assert haversine_meters(12.9716, 77.5946, 12.9716, 77.5946) == 0


def test_haversine_known_distance():
    # One thousandth of a degree of latitude is about 111 m
    assert haversine_meters(12.9716, 77.5946, 12.9726, 77.5946) == pytest.approx(111.2, abs=0.5)


# ── CRUD ────────────────────────────────────────────────────────────


async def test_hr_creates_branch_with_defaults(client, hr_headers, employee_headers):
    branch = await _create_branch(client, hr_headers)
    assert branch["code"] == "BLR"
    assert branch["geo_radius"] == 100
    assert branch["geo_restriction_enabled"] is False

    resp = await client.get("/api/v1/branches", headers=employee_headers)
    assert resp.status_code == 200
    assert [b["name"] for b in resp.json()] == ["Bengaluru HQ"]


async def test_employee_cannot_create_branch(client, employee_headers):
    resp = await client.post("/api/v1/branches", json=HQ, headers=employee_headers)
    assert resp.status_code == 403


@pytest.mark.parametrize("field", ["name", "code"])
async def test_duplicate_name_or_code_conflicts(client, hr_headers, field):
    await _create_branch(client, hr_headers)
    other = {"name": "Pune", "code": "PNQ", field: HQ[field]}
    resp = await client.post("/api/v1/branches", json=other, headers=hr_headers)
    assert resp.status_code == 409
    assert field in resp.json()["errors"]


async def test_geo_restriction_needs_coordinates(client, hr_headers):
    resp = await client.post(
        "/api/v1/branches",
        json={"name": "Remote", "code": "RMT", "geo_restriction_enabled": True},
        headers=hr_headers,
    )
    assert resp.status_code == 422
    assert "geo_restriction_enabled" in resp.json()["errors"]


async def test_update_branch_ignores_null_required_fields(client, hr_headers):
    branch = await _create_branch(client, hr_headers)
    resp = await client.put(
        f"/api/v1/branches/{branch['id']}",
        json={"name": None, "geo_radius": 250, "geo_restriction_enabled": True},
        headers=hr_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Bengaluru HQ"
    assert data["geo_radius"] == 250
    assert data["geo_restriction_enabled"] is True


async def test_clearing_coordinates_of_restricted_branch_is_rejected(client, hr_headers):
    branch = await _create_branch(client, hr_headers, geo_restriction_enabled=True)
    resp = await client.put(
        f"/api/v1/branches/{branch['id']}", json={"latitude": None}, headers=hr_headers,
    )
    assert resp.status_code == 422


async def test_unknown_branch_is_404(client, employee_headers):
    resp = await client.get(f"/api/v1/branches/{uuid.uuid4()}", headers=employee_headers)
    assert resp.status_code == 404


# ── Assignment ──────────────────────────────────────────────────────


async def test_assign_list_and_unassign(client, employee, manager, hr_headers, manager_headers):
    branch = await _create_branch(client, hr_headers)

    resp = await client.post(
        f"/api/v1/branches/{branch['id']}/assign",
        json={"user_ids": [str(employee.id), str(manager.id), str(employee.id)]},
        headers=hr_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["count"] == 2

    resp = await client.get(f"/api/v1/branches/{branch['id']}/users", headers=manager_headers)
    assert [u["full_name"] for u in resp.json()] == ["Eve Employee", "Max Manager"]
    assert resp.json()[0]["branch_id"] == branch["id"]

    resp = await client.post(
        "/api/v1/branches/unassign",
        json={"user_ids": [str(employee.id), str(uuid.uuid4())]},
        headers=hr_headers,
    )
    assert resp.json()["data"]["count"] == 1

    async with TestSessionFactory() as session:
        assert (await session.get(User, employee.id)).branch_id is None
        assert (await session.get(User, manager.id)).branch_id is not None
        actions = (
            await session.execute(
                select(AuditTrail.action).where(AuditTrail.entity_type == "branch")
            )
        ).scalars().all()
    assert set(actions) == {"create", "assign", "unassign"}


async def test_assign_unknown_user_assigns_nobody(client, employee, hr_headers):
    branch = await _create_branch(client, hr_headers)
    resp = await client.post(
        f"/api/v1/branches/{branch['id']}/assign",
        json={"user_ids": [str(employee.id), str(uuid.uuid4())]},
        headers=hr_headers,
    )
    assert resp.status_code == 404

    async with TestSessionFactory() as session:
        assert (await session.get(User, employee.id)).branch_id is None


async def test_employee_cannot_list_branch_users(client, hr_headers, employee_headers):
    branch = await _create_branch(client, hr_headers)
    resp = await client.get(f"/api/v1/branches/{branch['id']}/users", headers=employee_headers)
    assert resp.status_code == 403


async def test_delete_branch_unassigns_users(client, employee, hr_headers):
    branch = await _create_branch(client, hr_headers)
    await client.post(
        f"/api/v1/branches/{branch['id']}/assign",
        json={"user_ids": [str(employee.id)]},
        headers=hr_headers,
    )

    resp = await client.delete(f"/api/v1/branches/{branch['id']}", headers=hr_headers)
    assert resp.status_code == 204

    async with TestSessionFactory() as session:
        assert (await session.get(User, employee.id)).branch_id is None
    resp = await client.get("/api/v1/branches", headers=hr_headers)
    assert resp.json() == []
