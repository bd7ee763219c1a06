"""Leave module test suite — working-day counting, overlap and balance rules,
approval/rejection/cancellation, combined views and yearly balances.

Tests run against SQLite via the shared conftest.py fixtures. Dates are
fixed in March 2027 (1 March 2027 is a Monday).
"""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import select

from hrms.common.audit import AuditTrail
from hrms.common.constants import LeaveStatus, LeaveType
from hrms.common.exceptions import ConflictError, ValidationException
from hrms.holidays.models import Holiday
from hrms.leave.schemas import LeaveRequestCreate
from hrms.leave.service import LeaveService, count_working_days, leave_allowance
from hrms.notifications.models import Notification
from hrms.teams.models import Team, TeamMember
from tests.conftest import TestSessionFactory

MON = date(2027, 3, 1)
FRI = date(2027, 3, 5)


# ── Helpers ─────────────────────────────────────────────────────────


def _payload(start: date, end: date, leave_type: str = "casual", reason: str = "Family event") -> dict:
    return {
        "leave_type": leave_type,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "reason": reason,
    }


async def _apply(client, headers, start=MON, end=FRI, leave_type="casual"):
    return await client.post(
        "/api/v1/leave/request", json=_payload(start, end, leave_type), headers=headers,
    )


async def _notifications_for(user_id) -> list[Notification]:
    async with TestSessionFactory() as session:
        result = await session.execute(
            select(Notification).where(Notification.recipient_id == user_id)
        )
        return list(result.scalars().all())


# ═════════════════════════════════════════════════════════════════════
# 1. Working days and allowances
# ═════════════════════════════════════════════════════════════════════


def test_count_working_days_skips_weekends():
    assert count_working_days(MON, date(2027, 3, 7), set()) == 5
    assert count_working_days(date(2027, 3, 6), date(2027, 3, 7), set()) == 0


def test_count_working_days_skips_holidays():
    assert count_working_days(MON, FRI, {date(2027, 3, 3)}) == 4


def test_unpaid_leave_has_no_allowance():
    assert leave_allowance(LeaveType.unpaid) is None
    assert leave_allowance(LeaveType.sick) == 10


def test_request_schema_rejects_reversed_dates():
    with pytest.raises(ValueError):
        LeaveRequestCreate(leave_type="sick", start_date=FRI, end_date=MON, reason="x")


def test_request_schema_rejects_long_span():
    with pytest.raises(ValueError):
        LeaveRequestCreate(
            leave_type="unpaid", start_date=MON, end_date=date(2027, 7, 1), reason="x",
        )


# ═════════════════════════════════════════════════════════════════════
# 2. Applying — service layer
# ═════════════════════════════════════════════════════════════════════


async def test_request_excludes_holidays(db, employee):
    db.add(Holiday(name="Holi", holiday_date=date(2027, 3, 3)))
    await db.flush()

    leave = await LeaveService.request_leave(
        db, employee, LeaveRequestCreate(**_payload(MON, FRI)),
    )
    assert leave.total_days == 4
    assert leave.status == LeaveStatus.pending


async def test_weekend_only_request_rejected(db, employee):
    with pytest.raises(ValidationException):
        await LeaveService.request_leave(
            db, employee, LeaveRequestCreate(**_payload(date(2027, 3, 6), date(2027, 3, 7))),
        )


async def test_overlapping_request_conflicts(db, employee):
    await LeaveService.request_leave(db, employee, LeaveRequestCreate(**_payload(MON, FRI)))
    with pytest.raises(ConflictError):
        await LeaveService.request_leave(
            db, employee,
            LeaveRequestCreate(**_payload(date(2027, 3, 4), date(2027, 3, 9), "sick")),
        )


async def test_cancelled_request_frees_dates(db, employee):
    first = await LeaveService.request_leave(db, employee, LeaveRequestCreate(**_payload(MON, FRI)))
    await LeaveService.cancel_leave(db, first.id, employee)
    second = await LeaveService.request_leave(db, employee, LeaveRequestCreate(**_payload(MON, FRI)))
    assert second.id != first.id


async def test_allowance_counts_pending_requests(db, employee):
    # sick allowance is 10 working days
    await LeaveService.request_leave(
        db, employee, LeaveRequestCreate(**_payload(MON, date(2027, 3, 12), "sick")),
    )
    with pytest.raises(ValidationException) as excinfo:
        await LeaveService.request_leave(
            db, employee,
            LeaveRequestCreate(**_payload(date(2027, 3, 15), date(2027, 3, 15), "sick")),
        )
    assert "leave_type" in excinfo.value.errors


async def test_unpaid_leave_is_uncapped(db, employee):
    leave = await LeaveService.request_leave(
        db, employee, LeaveRequestCreate(**_payload(MON, date(2027, 4, 30), "unpaid")),
    )
    assert leave.total_days == 45


# ═════════════════════════════════════════════════════════════════════
# 3. Applying — API
# ═════════════════════════════════════════════════════════════════════


async def test_apply_notifies_admins_hr_and_team_leader(
    client, db, employee, manager, hr_user, admin, employee_headers,
):
    team = Team(name="Platform", leader_id=manager.id, created_by=admin.id)
    db.add(team)
    await db.flush()
    db.add(TeamMember(team_id=team.id, user_id=employee.id))
    await db.commit()

    resp = await _apply(client, employee_headers)
    assert resp.status_code == 201
    data = resp.json()
    assert data["total_days"] == 5
    assert data["status"] == "pending"
    assert data["user"]["full_name"] == "Eve Employee"

    for reviewer in (manager, hr_user, admin):
        titles = [n.title for n in await _notifications_for(reviewer.id)]
        assert "New Leave Request" in titles
    assert await _notifications_for(employee.id) == []


async def test_manager_outside_team_not_notified(client, manager, employee_headers):
    await _apply(client, employee_headers)
    assert await _notifications_for(manager.id) == []


async def test_apply_invalid_range_returns_422(client, employee_headers):
    resp = await _apply(client, employee_headers, start=FRI, end=MON)
    assert resp.status_code == 422


async def test_apply_writes_audit_entry(client, employee, employee_headers):
    resp = await _apply(client, employee_headers)
    async with TestSessionFactory() as session:
        audit = (
            await session.execute(
                select(AuditTrail).where(
                    AuditTrail.entity_type == "leave_request", AuditTrail.action == "create",
                )
            )
        ).scalars().first()
    assert str(audit.entity_id) == resp.json()["id"]
    assert audit.new_values["total_days"] == 5


# ═════════════════════════════════════════════════════════════════════
# 4. Review
# ═════════════════════════════════════════════════════════════════════


async def test_manager_approves(client, employee, manager, employee_headers, manager_headers):
    leave_id = (await _apply(client, employee_headers)).json()["id"]

    resp = await client.post(
        f"/api/v1/leave/{leave_id}/approve", json={"remarks": "Enjoy"}, headers=manager_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "approved"
    assert data["reviewed_by"] == str(manager.id)
    assert data["remarks"] == "Enjoy"

    notes = await _notifications_for(employee.id)
    assert [n.title for n in notes] == ["Leave Request Approved"]
    assert "Enjoy" in notes[0].message


async def test_reject_sends_warning(client, employee, employee_headers, hr_headers):
    leave_id = (await _apply(client, employee_headers)).json()["id"]

    resp = await client.post(
        f"/api/v1/leave/{leave_id}/reject", json={"remarks": "Release week"}, headers=hr_headers,
    )
    assert resp.json()["status"] == "rejected"
    notes = await _notifications_for(employee.id)
    assert notes[0].title == "Leave Request Rejected"
    assert notes[0].type.value == "warning"


async def test_decided_request_cannot_be_decided_again(client, employee_headers, manager_headers):
    leave_id = (await _apply(client, employee_headers)).json()["id"]
    await client.post(f"/api/v1/leave/{leave_id}/approve", headers=manager_headers)

    resp = await client.post(f"/api/v1/leave/{leave_id}/reject", headers=manager_headers)
    assert resp.status_code == 409


async def test_cannot_approve_own_request(client, manager_headers):
    leave_id = (await _apply(client, manager_headers)).json()["id"]
    resp = await client.post(f"/api/v1/leave/{leave_id}/approve", headers=manager_headers)
    assert resp.status_code == 403


async def test_employee_cannot_approve(client, make_user, auth_headers_for, employee_headers):
    colleague = await make_user(full_name="Cole League")
    leave_id = (await _apply(client, await auth_headers_for(colleague))).json()["id"]
    resp = await client.post(f"/api/v1/leave/{leave_id}/approve", headers=employee_headers)
    assert resp.status_code == 403


async def test_cancel_own_pending(client, employee_headers, manager_headers):
    leave_id = (await _apply(client, employee_headers)).json()["id"]

    resp = await client.post(f"/api/v1/leave/{leave_id}/cancel", headers=manager_headers)
    assert resp.status_code == 403

    resp = await client.post(f"/api/v1/leave/{leave_id}/cancel", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"

    resp = await client.post(f"/api/v1/leave/{leave_id}/cancel", headers=employee_headers)
    assert resp.status_code == 409


async def test_approved_request_cannot_be_cancelled(client, employee_headers, manager_headers):
    leave_id = (await _apply(client, employee_headers)).json()["id"]
    await client.post(f"/api/v1/leave/{leave_id}/approve", headers=manager_headers)
    resp = await client.post(f"/api/v1/leave/{leave_id}/cancel", headers=employee_headers)
    assert resp.status_code == 409


async def test_unknown_request_404(client, manager_headers):
    resp = await client.post(
        "/api/v1/leave/00000000-0000-0000-0000-000000000000/approve", headers=manager_headers,
    )
    assert resp.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# 5. Views
# ═════════════════════════════════════════════════════════════════════


async def test_my_requests_filtered_by_status(client, employee_headers, manager_headers):
    first = (await _apply(client, employee_headers)).json()["id"]
    await _apply(client, employee_headers, start=date(2027, 3, 8), end=date(2027, 3, 8))
    await client.post(f"/api/v1/leave/{first}/approve", headers=manager_headers)

    resp = await client.get("/api/v1/leave/my-requests", headers=employee_headers)
    assert len(resp.json()) == 2
    resp = await client.get(
        "/api/v1/leave/my-requests", params={"status": "approved"}, headers=employee_headers,
    )
    assert [r["id"] for r in resp.json()] == [first]


async def test_pending_and_approved_lists(client, employee_headers, manager_headers, hr_headers):
    first = (await _apply(client, employee_headers)).json()["id"]
    second = (await _apply(client, employee_headers, start=date(2027, 4, 5), end=date(2027, 4, 6))).json()["id"]
    await client.post(f"/api/v1/leave/{first}/approve", headers=manager_headers)

    pending = await client.get("/api/v1/leave/pending", headers=hr_headers)
    assert [r["id"] for r in pending.json()] == [second]

    approved = await client.get(
        "/api/v1/leave/approved",
        params={"from_date": "2027-03-04", "to_date": "2027-03-31"},
        headers=hr_headers,
    )
    assert [r["id"] for r in approved.json()] == [first]

    resp = await client.get("/api/v1/leave/pending", headers=employee_headers)
    assert resp.status_code == 403


async def test_combined_view_for_employee_is_own_only(
    client, make_user, auth_headers_for, employee_headers,
):
    other = await make_user(full_name="Otto Other")
    await _apply(client, await auth_headers_for(other))
    mine = (await _apply(client, employee_headers)).json()["id"]

    resp = await client.get("/api/v1/leave", headers=employee_headers)
    assert [r["id"] for r in resp.json()] == [mine]


async def test_combined_view_for_manager_dedupes_and_sorts(
    client, employee_headers, manager_headers, hr_headers,
):
    early = (await _apply(client, employee_headers)).json()["id"]
    late = (await _apply(client, employee_headers, start=date(2027, 5, 3), end=date(2027, 5, 4))).json()["id"]
    own = (await _apply(client, manager_headers, start=date(2027, 4, 12), end=date(2027, 4, 12))).json()["id"]
    await client.post(f"/api/v1/leave/{early}/approve", headers=hr_headers)
    await client.post(f"/api/v1/leave/{own}/reject", headers=hr_headers)

    resp = await client.get("/api/v1/leave", headers=manager_headers)
    ids = [r["id"] for r in resp.json()]
    assert ids == [late, own, early]


async def test_get_request_visibility(client, employee_headers, make_user, auth_headers_for, manager_headers):
    leave_id = (await _apply(client, employee_headers)).json()["id"]
    stranger = await make_user(full_name="Stan Ger")

    assert (await client.get(f"/api/v1/leave/{leave_id}", headers=employee_headers)).status_code == 200
    assert (await client.get(f"/api/v1/leave/{leave_id}", headers=manager_headers)).status_code == 200
    resp = await client.get(f"/api/v1/leave/{leave_id}", headers=await auth_headers_for(stranger))
    assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# 6. Balance
# ═════════════════════════════════════════════════════════════════════


async def test_balance_reports_used_pending_remaining(client, employee_headers, manager_headers):
    approved = (await _apply(client, employee_headers, start=MON, end=date(2027, 3, 3))).json()["id"]
    await _apply(client, employee_headers, start=date(2027, 3, 8), end=date(2027, 3, 9))
    await client.post(f"/api/v1/leave/{approved}/approve", headers=manager_headers)

    resp = await client.get("/api/v1/leave/balance", params={"year": 2027}, headers=employee_headers)
    assert resp.status_code == 200
    balances = {b["leave_type"]: b for b in resp.json()}

    casual = balances["casual"]
    assert casual["allowance"] == 12
    assert casual["used"] == 3
    assert casual["pending"] == 2
    assert casual["remaining"] == 9

    assert balances["unpaid"]["allowance"] is None
    assert balances["unpaid"]["remaining"] is None
    assert balances["sick"]["remaining"] == 10


async def test_balance_for_other_year_is_untouched(db, employee):
    await LeaveService.request_leave(db, employee, LeaveRequestCreate(**_payload(MON, FRI)))
    balances = {b.leave_type: b for b in await LeaveService.get_balance(db, employee.id, 2026)}
    assert balances[LeaveType.casual].pending == 0

