"""Async HTTP client for the HRMS API.

Wraps ``httpx.AsyncClient`` with bearer-token handling: tokens live in
memory only, and a 401 triggers a single refresh-and-retry. The
``*_overview`` / ``team_detail`` helpers fan out several requests
concurrently and stitch the results together, tolerating partial failure.

Usage::

    async with HRMSClient("http://localhost:8000/api/v1") as api:
        await api.login("jane@example.com", "s3cret-pass")
        leave = await api.leave_overview()
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date, datetime
from typing import Any, Optional, Union

import httpx

from hrms.common.constants import MAX_PAGE_SIZE
from hrms.common.merge import merge_by_id, sort_by_field
from hrms.common.timeutils import local_today, to_local
from hrms.config import settings

logger = logging.getLogger(__name__)

Id = Union[str, uuid.UUID]


class ApiError(Exception):
    """Non-2xx response from the API, carrying the problem-detail body."""

    def __init__(self, status_code: int, detail: str, payload: Optional[dict] = None):
        self.status_code = status_code
        self.detail = detail
        self.payload = payload or {}
        super().__init__(f"{status_code}: {detail}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if isinstance(payload, dict):
            detail = payload.get("detail") or payload.get("title") or response.reason_phrase
        else:
            detail = response.reason_phrase
        return cls(response.status_code, str(detail), payload if isinstance(payload, dict) else None)


class HRMSClient:
    directory_page_size = MAX_PAGE_SIZE

    def __init__(
        self,
        base_url: str = settings.API_BASE_URL,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 15.0,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            transport=transport,
            timeout=timeout,
        )
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None
        self.user: Optional[dict] = None
        # Refresh tokens are single-use; concurrent 401s must share one refresh
        self._refresh_lock = asyncio.Lock()

    async def __aenter__(self) -> "HRMSClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def clear_tokens(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.user = None

    # ── Transport ───────────────────────────────────────────────────

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        auth: bool = True,
    ) -> httpx.Response:
        headers = {}
        if auth and self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        return await self._http.request(method, path, json=json, params=params, headers=headers)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        auth: bool = True,
    ) -> Any:
        """Send a request and return the decoded body (``None`` for 204)."""
        sent_with = self.access_token
        response = await self._send(method, path, json=json, params=params, auth=auth)

        if response.status_code == 401 and auth and sent_with is not None:
            if await self._refresh(sent_with):
                response = await self._send(method, path, json=json, params=params, auth=auth)
            else:
                raise ApiError.from_response(response)

        if response.status_code >= 400:
            raise ApiError.from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _refresh(self, stale_token: str) -> bool:
        """Rotate the token pair once for every request rejected with ``stale_token``.

        Returns True when a usable access token is in place, either freshly
        rotated here or by a concurrent request that got the lock first.
        """
        async with self._refresh_lock:
            if self.access_token != stale_token:
                return self.access_token is not None
            if self.refresh_token is None:
                self.clear_tokens()
                return False

            response = await self._send(
                "POST", "/auth/refresh", json={"refresh_token": self.refresh_token}, auth=False,
            )
            if response.status_code != 200:
                logger.info("Token refresh rejected (%s)", response.status_code)
                self.clear_tokens()
                return False
            body = response.json()
            self.access_token = body["access_token"]
            self.refresh_token = body["refresh_token"]
            return True

    async def get(self, path: str, **params: Any) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None, **params: Any) -> Any:
        return await self.request("POST", path, json=json, params=params)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    # ── Auth ────────────────────────────────────────────────────────

    async def register(
        self,
        full_name: str,
        email: str,
        password: str,
        *,
        role: str = "employee",
        phone: Optional[str] = None,
    ) -> dict:
        body = await self.request(
            "POST",
            "/auth/register",
            json={
                "full_name": full_name,
                "email": email,
                "password": password,
                "role": role,
                "phone": phone,
            },
            auth=False,
        )
        if body.get("access_token"):
            self.access_token = body["access_token"]
            self.refresh_token = body["refresh_token"]
            self.user = body["user"]
        return body

    async def login(self, email: str, password: str) -> dict:
        body = await self.request(
            "POST", "/auth/login", json={"email": email, "password": password}, auth=False,
        )
        self.access_token = body["access_token"]
        self.refresh_token = body["refresh_token"]
        self.user = body["user"]
        return body

    async def logout(self) -> None:
        try:
            await self.post("/auth/logout")
        finally:
            self.clear_tokens()

    async def me(self) -> dict:
        return await self.get("/auth/me")

    async def sessions(self) -> list[dict]:
        return await self.get("/auth/sessions")

    async def revoke_session(self, session_id: Id) -> dict:
        return await self.delete(f"/auth/sessions/{session_id}")

    async def change_password(self, current_password: str, new_password: str) -> dict:
        return await self.post(
            "/auth/change-password",
            {"current_password": current_password, "new_password": new_password},
        )

    async def forgot_password(self, email: str) -> dict:
        return await self.request(
            "POST", "/auth/forgot-password", json={"email": email}, auth=False,
        )

    async def reset_password(self, token: str, new_password: str) -> dict:
        return await self.request(
            "POST",
            "/auth/reset-password",
            json={"token": token, "new_password": new_password},
            auth=False,
        )

    # ── Users ───────────────────────────────────────────────────────

    async def list_users(self, **filters: Any) -> dict:
        return await self.get("/users", **filters)

    async def get_user(self, user_id: Id) -> dict:
        return await self.get(f"/users/{user_id}")

    async def update_profile(self, **fields: Any) -> dict:
        return await self.put("/users/profile", fields)

    async def approve_user(self, user_id: Id, role: Optional[str] = None) -> dict:
        return await self.post(f"/users/{user_id}/approve", role=role)

    async def block_user(self, user_id: Id) -> dict:
        return await self.post(f"/users/{user_id}/block")

    async def unblock_user(self, user_id: Id) -> dict:
        return await self.post(f"/users/{user_id}/unblock")

    async def change_role(self, user_id: Id, role: str) -> dict:
        return await self.put(f"/users/{user_id}/role", {"role": role})

    async def delete_user(self, user_id: Id) -> None:
        await self.delete(f"/users/{user_id}")

    # ── Attendance ──────────────────────────────────────────────────

    async def check_in(self, **fields: Any) -> dict:
        return await self.post("/attendance/check-in", fields)

    async def check_out(self, record_id: Id, notes: Optional[str] = None) -> dict:
        return await self.post(f"/attendance/{record_id}/check-out", {"notes": notes})

    async def my_attendance(
        self,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> list[dict]:
        return await self.get(
            "/attendance/me",
            from_date=from_date.isoformat() if from_date else None,
            to_date=to_date.isoformat() if to_date else None,
        )

    async def attendance_today(self) -> Optional[dict]:
        return await self.get("/attendance/me/today")

    async def attendance_history(self, user_id: Id) -> list[dict]:
        return await self.get(f"/attendance/history/{user_id}")

    async def attendance_stats(self, user_id: Id) -> dict:
        return await self.get(f"/attendance/stats/{user_id}")

    async def attendance_on(self, on_date: date) -> list[dict]:
        return await self.get(f"/attendance/date/{on_date.isoformat()}")

    # ── Leave ───────────────────────────────────────────────────────

    async def request_leave(
        self,
        leave_type: str,
        start_date: date,
        end_date: date,
        reason: str,
    ) -> dict:
        return await self.post(
            "/leave/request",
            {
                "leave_type": leave_type,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "reason": reason,
            },
        )

    async def my_leave(self) -> list[dict]:
        return await self.get("/leave/my-requests")

    async def pending_leave(self) -> list[dict]:
        return await self.get("/leave/pending")

    async def approved_leave(self) -> list[dict]:
        return await self.get("/leave/approved")

    async def approve_leave(self, request_id: Id, remarks: Optional[str] = None) -> dict:
        return await self.post(f"/leave/{request_id}/approve", {"remarks": remarks})

    async def reject_leave(self, request_id: Id, remarks: Optional[str] = None) -> dict:
        return await self.post(f"/leave/{request_id}/reject", {"remarks": remarks})

    async def cancel_leave(self, request_id: Id) -> dict:
        return await self.post(f"/leave/{request_id}/cancel")

    async def leave_balance(self, year: Optional[int] = None) -> list[dict]:
        return await self.get("/leave/balance", year=year)

    # ── Holidays ────────────────────────────────────────────────────

    async def holidays(self, year: Optional[int] = None) -> list[dict]:
        return await self.get("/holidays", year=year)

    async def upcoming_holidays(self, limit: int = 5) -> list[dict]:
        return await self.get("/holidays/upcoming", limit=limit)

    async def create_holiday(
        self,
        name: str,
        holiday_date: date,
        description: Optional[str] = None,
    ) -> dict:
        return await self.post(
            "/holidays",
            {"name": name, "holiday_date": holiday_date.isoformat(), "description": description},
        )

    async def delete_holiday(self, holiday_id: Id) -> None:
        await self.delete(f"/holidays/{holiday_id}")

    # ── Teams ───────────────────────────────────────────────────────

    async def teams(self) -> list[dict]:
        return await self.get("/teams")

    async def team(self, team_id: Id) -> dict:
        return await self.get(f"/teams/{team_id}")

    async def team_members(self, team_id: Id) -> list[dict]:
        return await self.get(f"/teams/{team_id}/members")

    async def create_team(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        leader_id: Optional[Id] = None,
        member_ids: Optional[list[Id]] = None,
    ) -> dict:
        return await self.post(
            "/teams",
            {
                "name": name,
                "description": description,
                "leader_id": str(leader_id) if leader_id else None,
                "member_ids": [str(m) for m in member_ids or []],
            },
        )

    async def add_team_member(self, team_id: Id, user_id: Id) -> dict:
        return await self.post(f"/teams/{team_id}/members", {"user_id": str(user_id)})

    async def remove_team_member(self, team_id: Id, user_id: Id) -> dict:
        return await self.delete(f"/teams/{team_id}/members/{user_id}")

    async def assign_team_leader(self, team_id: Id, user_id: Id) -> dict:
        return await self.put(f"/teams/{team_id}/leader", {"user_id": str(user_id)})

    async def delete_team(self, team_id: Id) -> None:
        await self.delete(f"/teams/{team_id}")

    # ── Notifications ───────────────────────────────────────────────

    async def notifications(self, **filters: Any) -> dict:
        return await self.get("/notifications", **filters)

    async def unread_count(self) -> int:
        body = await self.get("/notifications/unread-count")
        return body["data"]["count"]

    async def mark_notification_read(self, notification_id: Id) -> dict:
        return await self.put(f"/notifications/{notification_id}/read")

    async def mark_all_notifications_read(self) -> dict:
        return await self.put("/notifications/read-all")

    async def send_notification(
        self,
        user_id: Id,
        title: str,
        message: str,
        type: str = "info",
    ) -> int:
        body = await self.post(
            "/notifications/send",
            {"user_id": str(user_id), "title": title, "message": message, "type": type},
        )
        return body["count"]

    async def send_notifications(
        self,
        user_ids: list[Id],
        title: str,
        message: str,
        type: str = "info",
    ) -> int:
        body = await self.post(
            "/notifications/send-batch",
            {
                "user_ids": [str(u) for u in user_ids],
                "title": title,
                "message": message,
                "type": type,
            },
        )
        return body["count"]

    async def broadcast(self, title: str, message: str, type: str = "info") -> int:
        body = await self.post(
            "/notifications/broadcast", {"title": title, "message": message, "type": type},
        )
        return body["count"]

    # ── Work updates ────────────────────────────────────────────────

    async def submit_work_update(
        self,
        description: str,
        *,
        title: Optional[str] = None,
        on_date: Optional[date] = None,
        hours_spent: Optional[float] = None,
    ) -> dict:
        return await self.post(
            "/work-updates",
            {
                "title": title,
                "description": description,
                "date": on_date.isoformat() if on_date else None,
                "hours_spent": hours_spent,
            },
        )

    async def my_work_updates(
        self,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[dict]:
        return await self.get("/work-updates/me", month=month, year=year)

    async def work_updates(self, **filters: Any) -> list[dict]:
        return await self.get("/work-updates", **filters)

    # ── Notes ───────────────────────────────────────────────────────

    async def create_note(
        self,
        title: str,
        content: str,
        *,
        team_id: Optional[Id] = None,
        is_pinned: bool = False,
    ) -> dict:
        return await self.post(
            "/notes",
            {
                "title": title,
                "content": content,
                "team_id": str(team_id) if team_id else None,
                "is_pinned": is_pinned,
            },
        )

    async def my_notes(self) -> list[dict]:
        return await self.get("/notes/me")

    async def team_notes(self, team_id: Id) -> list[dict]:
        return await self.get(f"/notes/team/{team_id}")

    async def update_note(self, note_id: Id, **fields: Any) -> dict:
        return await self.put(f"/notes/{note_id}", fields)

    async def delete_note(self, note_id: Id) -> None:
        await self.delete(f"/notes/{note_id}")

    # ── Documents ───────────────────────────────────────────────────

    async def add_document(
        self,
        title: str,
        file_url: str,
        *,
        category: str = "other",
        user_id: Optional[Id] = None,
        expires_at: Optional[datetime] = None,
    ) -> dict:
        return await self.post(
            "/documents",
            {
                "title": title,
                "file_url": file_url,
                "category": category,
                "user_id": str(user_id) if user_id else None,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
        )

    async def user_documents(self, user_id: Id, include_expired: bool = True) -> list[dict]:
        return await self.get(f"/documents/user/{user_id}", include_expired=include_expired)

    async def delete_document(self, document_id: Id) -> None:
        await self.delete(f"/documents/{document_id}")

    # ── Navigation ──────────────────────────────────────────────────

    async def log_navigation(self, path: str) -> dict:
        return await self.post("/navigation/log", {"path": path})

    async def navigation_history(self, user_id: Id, limit: Optional[int] = None) -> list[dict]:
        return await self.get(f"/navigation/history/{user_id}", limit=limit)

    # ── Branches ────────────────────────────────────────────────────

    async def branches(self) -> list[dict]:
        return await self.get("/branches")

    async def create_branch(self, name: str, code: str, **fields: Any) -> dict:
        return await self.post("/branches", {"name": name, "code": code, **fields})

    async def branch_users(self, branch_id: Id) -> list[dict]:
        return await self.get(f"/branches/{branch_id}/users")

    async def assign_branch(self, branch_id: Id, user_ids: list[Id]) -> int:
        body = await self.post(
            f"/branches/{branch_id}/assign", {"user_ids": [str(u) for u in user_ids]},
        )
        return body["data"]["count"]

    async def unassign_branch(self, user_ids: list[Id]) -> int:
        body = await self.post("/branches/unassign", {"user_ids": [str(u) for u in user_ids]})
        return body["data"]["count"]

    # ── Dashboard ───────────────────────────────────────────────────

    async def dashboard_stats(self) -> dict:
        return await self.get("/dashboard/stats")

    # ── Composite views ─────────────────────────────────────────────

    async def _gather_tolerant(self, **calls: Any) -> dict[str, Any]:
        """Await named coroutines concurrently; a failed call yields ``None``."""
        names = list(calls)
        results = await asyncio.gather(*calls.values(), return_exceptions=True)
        out: dict[str, Any] = {}
        for name, result in zip(names, results):
            if isinstance(result, (ApiError, httpx.HTTPError)):
                logger.warning("Fetching %s failed: %s", name, result)
                out[name] = None
            elif isinstance(result, BaseException):
                raise result
            else:
                out[name] = result
        return out

    async def _user_directory(self) -> list[dict]:
        """Every user, following the directory's pagination to the last page."""
        users: list[dict] = []
        page = 1
        while True:
            body = await self.list_users(page=page, page_size=self.directory_page_size)
            users.extend(body["data"])
            if not body["meta"].get("has_next"):
                return users
            page += 1

    async def leave_overview(self) -> list[dict]:
        """Pending, approved and own requests merged by id, latest start first."""
        fetched = await self._gather_tolerant(
            pending=self.pending_leave(),
            approved=self.approved_leave(),
            own=self.my_leave(),
        )
        merged = merge_by_id(
            fetched["pending"] or [],
            fetched["approved"] or [],
            fetched["own"] or [],
        )
        return sort_by_field(merged, "start_date", descending=True)

    @staticmethod
    def _resolve_members(
        team: dict,
        members: Optional[list[dict]],
        directory: dict[str, dict],
    ) -> list[dict]:
        if members is not None:
            return members
        return [directory[str(m)] for m in team.get("member_ids", []) if str(m) in directory]

    async def team_detail(self, team_id: Id) -> dict:
        """Team with resolved leader, members and users still available to add."""
        fetched = await self._gather_tolerant(
            team=self.team(team_id),
            members=self.team_members(team_id),
            users=self._user_directory(),
        )
        team = fetched["team"]
        if team is None:
            raise ApiError(404, f"Team {team_id} could not be loaded")

        directory = {str(u["id"]): u for u in fetched["users"] or []}
        members = self._resolve_members(team, fetched["members"], directory)
        leader_id = str(team["leader_id"]) if team.get("leader_id") else None

        taken = {str(m["id"]) for m in members}
        if leader_id:
            taken.add(leader_id)
        available = [
            u for u in directory.values()
            if u.get("status") == "active" and str(u["id"]) not in taken
        ]

        return {
            **team,
            "leader": directory.get(leader_id) if leader_id else None,
            "members": members,
            "available_users": available,
        }

    async def teams_overview(self) -> list[dict]:
        """Every team with its leader and member count."""
        fetched = await self._gather_tolerant(teams=self.teams(), users=self._user_directory())
        teams = fetched["teams"] or []
        directory = {str(u["id"]): u for u in fetched["users"] or []}

        member_lists = await asyncio.gather(
            *(self.team_members(t["id"]) for t in teams), return_exceptions=True,
        )

        overview = []
        for team, members in zip(teams, member_lists):
            if isinstance(members, (ApiError, httpx.HTTPError)):
                logger.warning("Members of team %s unavailable: %s", team["id"], members)
                members = None
            elif isinstance(members, BaseException):
                raise members
            resolved = self._resolve_members(team, members, directory)
            leader_id = str(team["leader_id"]) if team.get("leader_id") else None
            overview.append(
                {
                    **team,
                    "leader": directory.get(leader_id) if leader_id else None,
                    "member_count": len(resolved),
                }
            )
        return overview

    async def present_today(self) -> list[dict]:
        """Users whose attendance ``login_time`` falls on today's (office) date."""
        today = local_today()
        records = await self.attendance_on(today)
        present = []
        for record in records:
            login_time = record.get("login_time")
            if not login_time:
                continue
            if to_local(datetime.fromisoformat(login_time)).date() == today:
                present.append(record["user"])
        return list(merge_by_id(present))
