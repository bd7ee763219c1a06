"""Attendance test suite — check in/out, late detection, half days, history,
stats, admin views, corrections and shift policies.

Tests exercise both the service layer (direct DB) and the HTTP API (via router).
Clock-sensitive paths patch ``hrms.attendance.service.utc_now``.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from unittest.mock import patch

import pytest
from sqlalchemy import select

from hrms.attendance.models import AttendanceRecord, ShiftPolicy
from hrms.attendance.service import AttendanceService
from hrms.branches.models import Branch
from hrms.common.audit import AuditTrail
from hrms.common.constants import AttendanceStatus
from hrms.common.exceptions import ValidationException
from hrms.common.timeutils import local_today, office_tz
from hrms.users.models import User
from tests.conftest import TestSessionFactory

# ── Helpers ─────────────────────────────────────────────────────────


def _at_local(hour: int, minute: int = 0, *, day: Optional[date] = None) -> datetime:
    """UTC instant for an office-local wall clock time (today by default)."""
    local = datetime.combine(day or local_today(), time(hour, minute), tzinfo=office_tz())
    return local.astimezone(timezone.utc)


def _clock(moment: datetime):
    return patch("hrms.attendance.service.utc_now", return_value=moment)


async def _seed_record(db, user, on: date, status: AttendanceStatus, minutes: int = 480):
    login = _at_local(9, 30, day=on)
    record = AttendanceRecord(
        user_id=user.id,
        date=on,
        login_time=login,
        logout_time=login + timedelta(minutes=minutes),
        work_minutes=minutes,
        status=status,
    )
    db.add(record)
    await db.commit()
    return record


# ═════════════════════════════════════════════════════════════════════
# 1. Arrival / departure rules (pure)
# ═════════════════════════════════════════════════════════════════════


def test_arrival_within_grace_is_present():
    login = datetime(2026, 3, 2, 9, 44, tzinfo=office_tz())
    assert AttendanceService.determine_arrival_status(login, time(9, 30), 15) == AttendanceStatus.present


def test_arrival_after_grace_is_late():
    login = datetime(2026, 3, 2, 9, 46, tzinfo=office_tz())
    assert AttendanceService.determine_arrival_status(login, time(9, 30), 15) == AttendanceStatus.late


def test_short_day_becomes_half_day():
    assert AttendanceService.status_after_checkout(AttendanceStatus.present, 239) == AttendanceStatus.half_day
    assert AttendanceService.status_after_checkout(AttendanceStatus.late, 120) == AttendanceStatus.half_day
    assert AttendanceService.status_after_checkout(AttendanceStatus.late, 480) == AttendanceStatus.late


def test_work_minutes_never_negative():
    now = datetime.now(timezone.utc)
    assert AttendanceService.work_minutes(now, now - timedelta(minutes=5)) == 0
    assert AttendanceService.work_minutes(now.replace(tzinfo=None), now + timedelta(minutes=90)) == 90


def test_stats_rate_counts_present_days_only():
    uid = uuid.uuid4()
    records = [
        AttendanceRecord(status=AttendanceStatus.present),
        AttendanceRecord(status=AttendanceStatus.present),
        AttendanceRecord(status=AttendanceStatus.late),
        AttendanceRecord(status=AttendanceStatus.half_day),
    ]
    stats = AttendanceService.build_stats(uid, records)
    assert stats.total_days == 4
    assert stats.present_days == 2
    assert stats.late_days == 1
    assert stats.half_days == 1
    assert stats.attendance_rate == 50.0


def test_stats_for_no_records():
    stats = AttendanceService.build_stats(uuid.uuid4(), [])
    assert stats.total_days == 0
    assert stats.attendance_rate == 0.0


def test_date_range_is_validated():
    with pytest.raises(ValidationException):
        AttendanceService._validate_date_range(date(2026, 2, 1), date(2026, 1, 1))
    with pytest.raises(ValidationException):
        AttendanceService._validate_date_range(date(2024, 1, 1), date(2026, 1, 1))


# ═════════════════════════════════════════════════════════════════════
# 2. Check in / check out — API
# ═════════════════════════════════════════════════════════════════════


async def test_check_in_on_time(client, employee, employee_headers):
    with _clock(_at_local(9, 20)):
        resp = await client.post(
            "/api/v1/attendance/check-in",
            json={"notes": "WFO", "latitude": 12.97, "longitude": 77.59},
            headers=employee_headers,
        )
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "present"
    assert data["user_id"] == str(employee.id)
    assert data["date"] == local_today().isoformat()
    assert data["logout_time"] is None
    assert data["latitude"] == 12.97

    async with TestSessionFactory() as session:
        audit = (
            await session.execute(
                select(AuditTrail).where(AuditTrail.action == "check_in")
            )
        ).scalars().first()
    assert audit is not None
    assert audit.actor_id == employee.id


async def test_check_in_late(client, employee_headers):
    with _clock(_at_local(10, 30)):
        resp = await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)
    assert resp.status_code == 201
    assert resp.json()["status"] == "late"


async def test_check_in_uses_assigned_shift(client, db, employee, employee_headers):
    shift = ShiftPolicy(name="Early", start_time=time(7, 0), end_time=time(15, 0), grace_minutes=5)
    db.add(shift)
    await db.flush()
    employee.shift_id = shift.id
    db.add(employee)
    await db.commit()

    with _clock(_at_local(7, 30)):
        resp = await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)
    assert resp.json()["status"] == "late"


async def test_duplicate_check_in_conflicts(client, employee_headers):
    with _clock(_at_local(9, 0)):
        first = await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)
    with _clock(_at_local(11, 0)):
        second = await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)
    assert first.status_code == 201
    assert second.status_code == 409
    assert "date" in second.json()["errors"]


async def _restrict_to_branch(db, user, *, radius: int = 150) -> Branch:
    branch = Branch(
        name="Bengaluru HQ", code="BLR", latitude=12.9716, longitude=77.5946,
        geo_radius=radius, geo_restriction_enabled=True,
    )
    db.add(branch)
    await db.flush()
    user.branch_id = branch.id
    db.add(user)
    await db.commit()
    return branch


async def test_check_in_inside_branch_geofence(client, db, employee, employee_headers):
    await _restrict_to_branch(db, employee)
    with _clock(_at_local(9, 10)):
        resp = await client.post(
            "/api/v1/attendance/check-in",
            json={"latitude": 12.9720, "longitude": 77.5950},
            headers=employee_headers,
        )
    assert resp.status_code == 201


@pytest.mark.parametrize(
    "coords",
    [{}, {"latitude": 12.9716}, {"latitude": 12.9850, "longitude": 77.5946}],
    ids=["missing", "partial", "outside"],
)
async def test_check_in_outside_geofence_is_rejected(client, db, employee, employee_headers, coords):
    await _restrict_to_branch(db, employee)
    with _clock(_at_local(9, 10)):
        resp = await client.post("/api/v1/attendance/check-in", json=coords, headers=employee_headers)
    assert resp.status_code == 422
    assert "location" in resp.json()["errors"]

    async with TestSessionFactory() as session:
        records = (await session.execute(select(AttendanceRecord))).scalars().all()
    assert records == []


async def test_unrestricted_branch_accepts_any_location(client, db, employee, employee_headers):
    branch = await _restrict_to_branch(db, employee)
    branch.geo_restriction_enabled = False
    db.add(branch)
    await db.commit()

    with _clock(_at_local(9, 10)):
        resp = await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)
    assert resp.status_code == 201


async def test_check_out_full_day(client, employee_headers):
    with _clock(_at_local(9, 0)):
        record = (await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)).json()
    with _clock(_at_local(18, 0)):
        resp = await client.post(
            f"/api/v1/attendance/{record['id']}/check-out",
            json={"notes": "done"},
            headers=employee_headers,
        )
    assert resp.status_code == 200
    data = resp.json()
    assert data["work_minutes"] == 540
    assert data["work_hours"] == 9.0
    assert data["status"] == "present"
    assert data["notes"] == "done"


async def test_short_day_checkout_is_half_day(client, employee_headers):
    with _clock(_at_local(9, 0)):
        record = (await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)).json()
    with _clock(_at_local(11, 0)):
        resp = await client.post(f"/api/v1/attendance/{record['id']}/check-out", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "half_day"
    assert resp.json()["work_minutes"] == 120


async def test_double_check_out_conflicts(client, employee_headers):
    with _clock(_at_local(9, 0)):
        record = (await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)).json()
    with _clock(_at_local(18, 0)):
        await client.post(f"/api/v1/attendance/{record['id']}/check-out", headers=employee_headers)
        resp = await client.post(f"/api/v1/attendance/{record['id']}/check-out", headers=employee_headers)
    assert resp.status_code == 409


async def test_cannot_check_out_someone_else(client, employee_headers, manager_headers):
    with _clock(_at_local(9, 0)):
        record = (await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)).json()
    resp = await client.post(f"/api/v1/attendance/{record['id']}/check-out", headers=manager_headers)
    assert resp.status_code == 403


async def test_check_out_unknown_record(client, employee_headers):
    resp = await client.post(f"/api/v1/attendance/{uuid.uuid4()}/check-out", headers=employee_headers)
    assert resp.status_code == 404


async def test_today_is_null_before_check_in(client, employee_headers):
    resp = await client.get("/api/v1/attendance/me/today", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json() is None

    with _clock(_at_local(9, 0)):
        await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)
    resp = await client.get("/api/v1/attendance/me/today", headers=employee_headers)
    assert resp.json()["date"] == local_today().isoformat()


# ═════════════════════════════════════════════════════════════════════
# 3. History and stats
# ═════════════════════════════════════════════════════════════════════


async def test_history_newest_first_and_filtered(client, db, employee, employee_headers):
    await _seed_record(db, employee, date(2026, 3, 2), AttendanceStatus.present)
    await _seed_record(db, employee, date(2026, 3, 3), AttendanceStatus.late)
    await _seed_record(db, employee, date(2026, 4, 1), AttendanceStatus.present)

    resp = await client.get("/api/v1/attendance/me", headers=employee_headers)
    dates = [r["date"] for r in resp.json()]
    assert dates == ["2026-04-01", "2026-03-03", "2026-03-02"]

    resp = await client.get(
        "/api/v1/attendance/me",
        params={"from_date": "2026-03-01", "to_date": "2026-03-31"},
        headers=employee_headers,
    )
    assert len(resp.json()) == 2


async def test_history_rejects_reversed_range(client, employee_headers):
    resp = await client.get(
        "/api/v1/attendance/me",
        params={"from_date": "2026-03-31", "to_date": "2026-03-01"},
        headers=employee_headers,
    )
    assert resp.status_code == 422


async def test_stats_endpoint(client, db, employee, employee_headers):
    await _seed_record(db, employee, date(2026, 3, 2), AttendanceStatus.present)
    await _seed_record(db, employee, date(2026, 3, 3), AttendanceStatus.late)
    await _seed_record(db, employee, date(2026, 3, 4), AttendanceStatus.half_day, minutes=200)
    await _seed_record(db, employee, date(2026, 3, 5), AttendanceStatus.present)

    resp = await client.get(f"/api/v1/attendance/stats/{employee.id}", headers=employee_headers)
    assert resp.status_code == 200
    stats = resp.json()
    assert stats["total_days"] == 4
    assert stats["present_days"] == 2
    assert stats["attendance_rate"] == 50.0


async def test_employee_cannot_view_other_history(client, manager, employee_headers):
    resp = await client.get(f"/api/v1/attendance/history/{manager.id}", headers=employee_headers)
    assert resp.status_code == 403
    resp = await client.get(f"/api/v1/attendance/stats/{manager.id}", headers=employee_headers)
    assert resp.status_code == 403


async def test_manager_can_view_employee_history(client, db, employee, manager_headers):
    await _seed_record(db, employee, date(2026, 3, 2), AttendanceStatus.present)
    resp = await client.get(f"/api/v1/attendance/history/{employee.id}", headers=manager_headers)
    assert resp.status_code == 200
    assert len(resp.json()) == 1


# ═════════════════════════════════════════════════════════════════════
# 4. Admin views and corrections
# ═════════════════════════════════════════════════════════════════════


async def test_all_attendance_requires_permission(client, employee_headers, manager_headers):
    assert (await client.get("/api/v1/attendance/all", headers=employee_headers)).status_code == 403
    assert (await client.get("/api/v1/attendance/all", headers=manager_headers)).status_code == 403


async def test_all_attendance_paginated_with_users(client, db, employee, manager, hr_headers):
    await _seed_record(db, employee, date(2026, 3, 2), AttendanceStatus.present)
    await _seed_record(db, manager, date(2026, 3, 2), AttendanceStatus.late)
    await _seed_record(db, employee, date(2026, 3, 3), AttendanceStatus.present)

    resp = await client.get(
        "/api/v1/attendance/all", params={"page_size": 2}, headers=hr_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["meta"]["total"] == 3
    assert len(body["data"]) == 2
    assert body["data"][0]["user"]["full_name"] == "Eve Employee"

    resp = await client.get(
        "/api/v1/attendance/all", params={"status": "late"}, headers=hr_headers,
    )
    assert [r["user_id"] for r in resp.json()["data"]] == [str(manager.id)]


async def test_by_date_and_present_today(client, employee, employee_headers, manager_headers):
    with _clock(_at_local(9, 0)):
        await client.post("/api/v1/attendance/check-in", json={}, headers=employee_headers)

    resp = await client.get("/api/v1/attendance/present-today", headers=manager_headers)
    assert resp.status_code == 200
    assert [r["user"]["id"] for r in resp.json()] == [str(employee.id)]

    resp = await client.get(
        f"/api/v1/attendance/date/{local_today().isoformat()}", headers=manager_headers,
    )
    assert len(resp.json()) == 1

    resp = await client.get("/api/v1/attendance/present-today", headers=employee_headers)
    assert resp.status_code == 403


async def test_admin_correction_recomputes_minutes(client, db, employee, admin_headers):
    record = await _seed_record(db, employee, date(2026, 3, 2), AttendanceStatus.half_day, minutes=120)
    new_logout = (_at_local(9, 30, day=date(2026, 3, 2)) + timedelta(hours=8)).isoformat()

    resp = await client.put(
        f"/api/v1/attendance/{record.id}",
        json={"logout_time": new_logout, "status": "present", "notes": "Badge reader fault"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["work_minutes"] == 480
    assert data["status"] == "present"


async def test_correction_rejects_logout_before_login(client, db, employee, admin_headers):
    record = await _seed_record(db, employee, date(2026, 3, 2), AttendanceStatus.present)
    early = (_at_local(9, 30, day=date(2026, 3, 2)) - timedelta(hours=1)).isoformat()
    resp = await client.put(
        f"/api/v1/attendance/{record.id}", json={"logout_time": early}, headers=admin_headers,
    )
    assert resp.status_code == 422


@pytest.mark.parametrize("field", ["login_time", "status"])
async def test_correction_rejects_null_required_field(client, db, employee, hr_headers, field):
    record = await _seed_record(db, employee, date(2026, 3, 2), AttendanceStatus.present)
    resp = await client.put(
        f"/api/v1/attendance/{record.id}", json={field: None}, headers=hr_headers,
    )
    assert resp.status_code == 422
    assert field in resp.json()["errors"]


async def test_correction_can_clear_logout(client, db, employee, hr_headers):
    record = await _seed_record(db, employee, date(2026, 3, 2), AttendanceStatus.present)
    resp = await client.put(
        f"/api/v1/attendance/{record.id}", json={"logout_time": None}, headers=hr_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["logout_time"] is None
    assert data["work_minutes"] is None


async def test_manager_cannot_correct(client, db, employee, manager_headers):
    record = await _seed_record(db, employee, date(2026, 3, 2), AttendanceStatus.present)
    resp = await client.put(
        f"/api/v1/attendance/{record.id}", json={"status": "absent"}, headers=manager_headers,
    )
    assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# 5. Shift policies
# ═════════════════════════════════════════════════════════════════════


async def test_shift_lifecycle(client, employee, hr_headers, employee_headers):
    resp = await client.post(
        "/api/v1/attendance/shifts",
        json={"name": "Night", "start_time": "21:00:00", "end_time": "06:00:00", "grace_minutes": 10},
        headers=hr_headers,
    )
    assert resp.status_code == 201
    shift_id = resp.json()["id"]

    dup = await client.post(
        "/api/v1/attendance/shifts",
        json={"name": "Night", "start_time": "22:00:00", "end_time": "07:00:00"},
        headers=hr_headers,
    )
    assert dup.status_code == 409

    resp = await client.post(
        f"/api/v1/attendance/shifts/{shift_id}/assign",
        json={"user_ids": [str(employee.id)]},
        headers=hr_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["count"] == 1

    async with TestSessionFactory() as session:
        refreshed = await session.get(User, employee.id)
    assert str(refreshed.shift_id) == shift_id

    listed = await client.get("/api/v1/attendance/shifts", headers=employee_headers)
    assert "Night" in [s["name"] for s in listed.json()]

    resp = await client.delete(f"/api/v1/attendance/shifts/{shift_id}", headers=hr_headers)
    assert resp.status_code == 204
    async with TestSessionFactory() as session:
        refreshed = await session.get(User, employee.id)
    assert refreshed.shift_id is None


async def test_inactive_shift_hidden_by_default(client, hr_headers):
    resp = await client.post(
        "/api/v1/attendance/shifts",
        json={"name": "Old", "start_time": "08:00:00", "end_time": "16:00:00"},
        headers=hr_headers,
    )
    shift_id = resp.json()["id"]
    await client.put(
        f"/api/v1/attendance/shifts/{shift_id}", json={"is_active": False}, headers=hr_headers,
    )

    names = [s["name"] for s in (await client.get("/api/v1/attendance/shifts", headers=hr_headers)).json()]
    assert "Old" not in names
    names = [
        s["name"]
        for s in (
            await client.get(
                "/api/v1/attendance/shifts", params={"include_inactive": "true"}, headers=hr_headers,
            )
        ).json()
    ]
    assert "Old" in names


async def test_employee_cannot_create_shift(client, employee_headers):
    resp = await client.post(
        "/api/v1/attendance/shifts",
        json={"name": "Mine", "start_time": "08:00:00", "end_time": "16:00:00"},
        headers=employee_headers,
    )
    assert resp.status_code == 403
