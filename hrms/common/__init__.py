"""Common module — shared utilities for the HRMS backend."""

from hrms.common.audit import AuditTrail, client_meta, create_audit_entry
from hrms.common.exceptions import (
    AppException,
    DuplicateException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
    register_exception_handlers,
)
from hrms.common.filters import apply_filters, apply_search, apply_sorting
from hrms.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)
from hrms.common.responses import success

__all__ = [
    # Audit
    "AuditTrail",
    "client_meta",
    "create_audit_entry",
    # Exceptions
    "AppException",
    "DuplicateException",
    "ForbiddenException",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    "apply_search",
    "apply_sorting",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
    # Responses
    "success",
]
