"""Enums and constants for HRMS — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    marketing = "marketing"
    manager = "manager"
    hr = "hr"
    admin = "admin"


class UserStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    blocked = "blocked"


# Roles a user may request at self-registration
SELF_REGISTER_ROLES: frozenset[UserRole] = frozenset(
    {UserRole.employee, UserRole.marketing, UserRole.manager}
)

# Roles that can see and act on other people's records
SUPERVISOR_ROLES: tuple[UserRole, ...] = (UserRole.manager, UserRole.hr, UserRole.admin)


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    present = "present"
    late = "late"
    half_day = "half_day"
    absent = "absent"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    sick = "sick"
    casual = "casual"
    vacation = "vacation"
    unpaid = "unpaid"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"


# ── Documents ───────────────────────────────────────────────────────

class DocumentCategory(str, enum.Enum):
    contract = "contract"
    id_proof = "id_proof"
    tax = "tax"
    other = "other"


# ── Role-based permissions ──────────────────────────────────────────

_EMPLOYEE_PERMISSIONS = [
    "profile:read_own",
    "profile:update_own",
    "attendance:check_in",
    "attendance:read_own",
    "leave:request",
    "leave:read_own",
    "holiday:read",
    "team:read",
    "notification:read_own",
    "work_update:submit",
    "work_update:read_own",
    "note:write",
    "document:read_own",
    "navigation:log",
    "branch:read",
]

_MANAGER_PERMISSIONS = _EMPLOYEE_PERMISSIONS + [
    "profile:read_all",
    "attendance:read_team",
    "leave:read_all",
    "leave:approve",
    "leave:reject",
    "holiday:manage",
    "team:manage",
    "notification:send",
    "work_update:read_all",
    "dashboard:read",
]

_HR_PERMISSIONS = _MANAGER_PERMISSIONS + [
    "attendance:read_all",
    "attendance:update",
    "attendance:configure",
    "user:approve",
    "user:block",
    "notification:broadcast",
    "audit:read",
    "note:read_all",
    "document:manage",
    "navigation:read_all",
    "branch:manage",
]

PERMISSIONS: dict[UserRole, list[str]] = {
    UserRole.employee: _EMPLOYEE_PERMISSIONS,
    UserRole.marketing: _EMPLOYEE_PERMISSIONS,
    UserRole.manager: _MANAGER_PERMISSIONS,
    UserRole.hr: _HR_PERMISSIONS,
    UserRole.admin: _HR_PERMISSIONS + [
        "user:delete",
        "user:change_role",
        "work_update:delete_any",
        "system:configure",
    ],
}

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
