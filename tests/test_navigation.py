"""Navigation log tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from hrms.navigation.models import NavigationLog


async def test_log_visit(client, employee, employee_headers):
    resp = await client.post(
        "/api/v1/navigation/log", json={"path": "/attendance"}, headers=employee_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["user_id"] == str(employee.id)
    assert resp.json()["path"] == "/attendance"


async def test_path_must_be_absolute(client, employee_headers):
    resp = await client.post(
        "/api/v1/navigation/log", json={"path": "attendance"}, headers=employee_headers,
    )
    assert resp.status_code == 422
    assert "path" in resp.json()["errors"]


async def test_history_newest_first_and_limited(client, db, employee, employee_headers):
    base = datetime.now(timezone.utc) - timedelta(hours=1)
    db.add_all([
        NavigationLog(user_id=employee.id, path=f"/page/{i}", visited_at=base + timedelta(minutes=i))
        for i in range(5)
    ])
    await db.commit()

    resp = await client.get(
        f"/api/v1/navigation/history/{employee.id}",
        params={"limit": 3},
        headers=employee_headers,
    )
    assert resp.status_code == 200
    assert [v["path"] for v in resp.json()] == ["/page/4", "/page/3", "/page/2"]


async def test_history_limit_is_bounded(client, employee, employee_headers):
    resp = await client.get(
        f"/api/v1/navigation/history/{employee.id}",
        params={"limit": 501},
        headers=employee_headers,
    )
    assert resp.status_code == 422


async def test_other_users_history_needs_hr(client, employee, manager_headers, hr_headers):
    resp = await client.get(f"/api/v1/navigation/history/{employee.id}", headers=manager_headers)
    assert resp.status_code == 403
    resp = await client.get(f"/api/v1/navigation/history/{employee.id}", headers=hr_headers)
    assert resp.status_code == 200
    assert resp.json() == []
