"""Work update tests — daily submission rules, scoped listing, edit and delete."""

from __future__ import annotations

from datetime import date, timedelta

from hrms.common.timeutils import local_today
from hrms.work_updates.models import WorkUpdate


async def _submit(client, headers, description="Shipped the attendance export", **extra):
    return await client.post(
        "/api/v1/work-updates", json={"description": description, **extra}, headers=headers,
    )


async def _seed(db, user, on: date, description: str = "Worked") -> WorkUpdate:
    update = WorkUpdate(user_id=user.id, date=on, description=description)
    db.add(update)
    await db.commit()
    return update


# ── Submit ──────────────────────────────────────────────────────────


async def test_submit_defaults_to_today(client, employee, employee_headers):
    resp = await _submit(client, employee_headers, title="Export", hours_spent=6.5)
    assert resp.status_code == 201
    data = resp.json()
    assert data["date"] == local_today().isoformat()
    assert data["hours_spent"] == 6.5
    assert data["user"]["id"] == str(employee.id)

    today = await client.get("/api/v1/work-updates/me/today", headers=employee_headers)
    assert today.json()["id"] == data["id"]


async def test_one_update_per_day(client, employee_headers):
    await _submit(client, employee_headers)
    resp = await _submit(client, employee_headers, description="Again")
    assert resp.status_code == 409


async def test_backdated_update_allowed_future_rejected(client, employee_headers):
    yesterday = (local_today() - timedelta(days=1)).isoformat()
    tomorrow = (local_today() + timedelta(days=1)).isoformat()

    assert (await _submit(client, employee_headers, date=yesterday)).status_code == 201
    resp = await _submit(client, employee_headers, date=tomorrow)
    assert resp.status_code == 422
    assert "date" in resp.json()["errors"]


async def test_admin_cannot_submit(client, admin_headers):
    resp = await _submit(client, admin_headers)
    assert resp.status_code == 403


async def test_hours_validated(client, employee_headers):
    resp = await _submit(client, employee_headers, hours_spent=25)
    assert resp.status_code == 422


async def test_today_is_null_without_update(client, employee_headers):
    resp = await client.get("/api/v1/work-updates/me/today", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json() is None


# ── Listing ─────────────────────────────────────────────────────────


async def test_employee_only_sees_own(client, db, employee, manager, employee_headers):
    await _seed(db, employee, date(2026, 3, 2))
    await _seed(db, manager, date(2026, 3, 2))

    resp = await client.get(
        "/api/v1/work-updates", params={"user_id": str(manager.id)}, headers=employee_headers,
    )
    assert {u["user_id"] for u in resp.json()} == {str(employee.id)}


async def test_manager_filters(client, db, employee, manager, hr_user, manager_headers):
    await _seed(db, employee, date(2026, 3, 2))
    await _seed(db, employee, date(2026, 4, 1))
    await _seed(db, hr_user, date(2026, 3, 2))

    resp = await client.get("/api/v1/work-updates", headers=manager_headers)
    dates = [u["date"] for u in resp.json()]
    assert len(dates) == 3
    assert dates[0] == "2026-04-01"

    resp = await client.get(
        "/api/v1/work-updates", params={"date": "2026-03-02"}, headers=manager_headers,
    )
    assert len(resp.json()) == 2

    resp = await client.get(
        "/api/v1/work-updates", params={"month": 3, "year": 2026, "role": "hr"}, headers=manager_headers,
    )
    assert [u["user_id"] for u in resp.json()] == [str(hr_user.id)]

    resp = await client.get(
        "/api/v1/work-updates", params={"user_id": str(employee.id)}, headers=manager_headers,
    )
    assert len(resp.json()) == 2


async def test_my_updates_by_month(client, db, employee, employee_headers):
    await _seed(db, employee, date(2026, 3, 2))
    await _seed(db, employee, date(2026, 4, 1))

    resp = await client.get(
        "/api/v1/work-updates/me", params={"month": 4, "year": 2026}, headers=employee_headers,
    )
    assert [u["date"] for u in resp.json()] == ["2026-04-01"]


# ── Edit / delete ───────────────────────────────────────────────────


async def test_owner_edits(client, employee_headers, manager_headers):
    update_id = (await _submit(client, employee_headers)).json()["id"]

    resp = await client.put(
        f"/api/v1/work-updates/{update_id}",
        json={"description": "Fixed the export", "hours_spent": 4},
        headers=employee_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["description"] == "Fixed the export"
    assert resp.json()["hours_spent"] == 4

    resp = await client.put(
        f"/api/v1/work-updates/{update_id}", json={"title": "Mine now"}, headers=manager_headers,
    )
    assert resp.status_code == 403


async def test_delete_by_owner_or_admin(client, employee_headers, manager_headers, admin_headers):
    update_id = (await _submit(client, employee_headers)).json()["id"]

    resp = await client.delete(f"/api/v1/work-updates/{update_id}", headers=manager_headers)
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/work-updates/{update_id}", headers=admin_headers)
    assert resp.status_code == 204

    resp = await client.delete(f"/api/v1/work-updates/{update_id}", headers=employee_headers)
    assert resp.status_code == 404
