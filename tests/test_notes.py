"""Notes tests — ownership, pinning order and team sharing."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from hrms.notes.models import Note
from hrms.teams.models import Team, TeamMember


async def _team_with(db, leader, *members) -> Team:
    team = Team(name="Payroll", leader_id=leader.id, created_by=leader.id)
    db.add(team)
    await db.flush()
    for member in members:
        db.add(TeamMember(team_id=team.id, user_id=member.id))
    await db.commit()
    return team


# ── Create / list ───────────────────────────────────────────────────


async def test_create_and_list_pinned_first(client, db, employee, employee_headers):
    base = datetime.now(timezone.utc) - timedelta(hours=1)
    db.add_all([
        Note(user_id=employee.id, title="Old", content="a", created_at=base, updated_at=base),
        Note(
            user_id=employee.id, title="Newer", content="b",
            created_at=base, updated_at=base + timedelta(minutes=5),
        ),
    ])
    await db.commit()

    resp = await client.post(
        "/api/v1/notes",
        json={"title": "Pinned", "content": "Remember the offsite", "is_pinned": True},
        headers=employee_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["user_id"] == str(employee.id)

    resp = await client.get("/api/v1/notes/me", headers=employee_headers)
    assert [n["title"] for n in resp.json()] == ["Pinned", "Newer", "Old"]


async def test_blank_title_is_rejected(client, employee_headers):
    resp = await client.post(
        "/api/v1/notes", json={"title": "", "content": "x"}, headers=employee_headers,
    )
    assert resp.status_code == 422


async def test_other_users_notes_need_hr(
    client, employee, manager_headers, hr_headers, employee_headers,
):
    await client.post(
        "/api/v1/notes", json={"title": "Mine", "content": "x"}, headers=employee_headers,
    )
    resp = await client.get(f"/api/v1/notes/user/{employee.id}", headers=manager_headers)
    assert resp.status_code == 403

    resp = await client.get(f"/api/v1/notes/user/{employee.id}", headers=hr_headers)
    assert resp.status_code == 200
    assert [n["title"] for n in resp.json()] == ["Mine"]


# ── Teams ───────────────────────────────────────────────────────────


async def test_team_note_visible_to_members_only(
    client, db, employee, manager, make_user, auth_headers_for, employee_headers, manager_headers,
):
    team = await _team_with(db, manager, employee)
    outsider = await make_user(full_name="Oscar Outsider")
    outsider_headers = await auth_headers_for(outsider)

    resp = await client.post(
        "/api/v1/notes",
        json={"title": "Standup", "content": "Ship it", "team_id": str(team.id)},
        headers=employee_headers,
    )
    assert resp.status_code == 201

    resp = await client.get(f"/api/v1/notes/team/{team.id}", headers=manager_headers)
    assert [n["title"] for n in resp.json()] == ["Standup"]

    resp = await client.get(f"/api/v1/notes/team/{team.id}", headers=outsider_headers)
    assert resp.status_code == 403

    resp = await client.post(
        "/api/v1/notes",
        json={"title": "Sneaky", "content": "x", "team_id": str(team.id)},
        headers=outsider_headers,
    )
    assert resp.status_code == 403


async def test_note_for_unknown_team_is_404(client, employee_headers):
    resp = await client.post(
        "/api/v1/notes",
        json={"title": "Lost", "content": "x", "team_id": str(uuid.uuid4())},
        headers=employee_headers,
    )
    assert resp.status_code == 404


async def test_deleting_team_keeps_its_notes(client, db, manager, admin_headers, manager_headers):
    team = await _team_with(db, manager)
    created = await client.post(
        "/api/v1/notes",
        json={"title": "Retro", "content": "x", "team_id": str(team.id)},
        headers=manager_headers,
    )

    resp = await client.delete(f"/api/v1/teams/{team.id}", headers=admin_headers)
    assert resp.status_code == 204

    notes = (await client.get("/api/v1/notes/me", headers=manager_headers)).json()
    assert [(n["id"], n["team_id"]) for n in notes] == [(created.json()["id"], None)]


# ── Edit / delete ───────────────────────────────────────────────────


async def test_owner_edits_and_nulls_are_ignored(client, employee_headers):
    note = (
        await client.post(
            "/api/v1/notes", json={"title": "Draft", "content": "v1"}, headers=employee_headers,
        )
    ).json()

    resp = await client.put(
        f"/api/v1/notes/{note['id']}",
        json={"title": None, "content": "v2", "is_pinned": True},
        headers=employee_headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "Draft"
    assert data["content"] == "v2"
    assert data["is_pinned"] is True


async def test_only_owner_edits(client, employee_headers, hr_headers):
    note = (
        await client.post(
            "/api/v1/notes", json={"title": "Mine", "content": "x"}, headers=employee_headers,
        )
    ).json()
    resp = await client.put(
        f"/api/v1/notes/{note['id']}", json={"content": "hijack"}, headers=hr_headers,
    )
    assert resp.status_code == 403


async def test_admin_may_delete_any_note(client, employee_headers, manager_headers, admin_headers):
    note = (
        await client.post(
            "/api/v1/notes", json={"title": "Mine", "content": "x"}, headers=employee_headers,
        )
    ).json()

    resp = await client.delete(f"/api/v1/notes/{note['id']}", headers=manager_headers)
    assert resp.status_code == 403

    resp = await client.delete(f"/api/v1/notes/{note['id']}", headers=admin_headers)
    assert resp.status_code == 204
    assert (await client.get("/api/v1/notes/me", headers=employee_headers)).json() == []
