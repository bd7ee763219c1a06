"""Common module — shared utilities for HRMS."""

from hrms.common.audit import AuditTrail, create_audit_entry
from hrms.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PERMISSIONS,
    SUPERVISOR_ROLES,
    AttendanceStatus,
    DocumentCategory,
    LeaveStatus,
    LeaveType,
    NotificationType,
    UserRole,
    UserStatus,
)
from hrms.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)
from hrms.common.filters import apply_filters, apply_search, apply_sorting
from hrms.common.merge import merge_by_id, sort_by_field
from hrms.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AttendanceStatus",
    "DocumentCategory",
    "LeaveStatus",
    "LeaveType",
    "NotificationType",
    "UserRole",
    "UserStatus",
    "PERMISSIONS",
    "SUPERVISOR_ROLES",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    "apply_sorting",
    # Merging
    "merge_by_id",
    "sort_by_field",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
