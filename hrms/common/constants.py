"""Enums and constants shared across the HRMS modules."""

from __future__ import annotations

import enum


# ── Users ───────────────────────────────────────────────────────────

class UserStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"
    pending = "pending"


class GenderType(str, enum.Enum):
    male = "male"
    female = "female"
    other = "other"


class PaymentFrequency(str, enum.Enum):
    monthly = "monthly"
    bi_weekly = "bi_weekly"
    weekly = "weekly"


# ── Menus ───────────────────────────────────────────────────────────

class MenuStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


# ── Assignments ─────────────────────────────────────────────────────

class AssignmentStatus(str, enum.Enum):
    active = "active"
    transferred = "transferred"
    ended = "ended"


class AssignmentAction(str, enum.Enum):
    created = "created"
    updated = "updated"
    transferred = "transferred"
    ended = "ended"
    reactivated = "reactivated"


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    late = "late"
    half_day = "half_day"
    work_from_home = "work_from_home"


# Statuses that count towards "present days" in payroll
PRESENT_STATUSES = (
    AttendanceStatus.present,
    AttendanceStatus.late,
    AttendanceStatus.work_from_home,
)


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# Leaves in these states block overlapping requests
BLOCKING_LEAVE_STATUSES = (LeaveStatus.pending, LeaveStatus.approved)


# ── Payroll ─────────────────────────────────────────────────────────

class PaymentStatus(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    paid = "paid"
    failed = "failed"


class PaymentMethod(str, enum.Enum):
    bank_transfer = "bank_transfer"
    check = "check"
    cash = "cash"
    online = "online"


class CalculationMode(str, enum.Enum):
    fixed = "fixed"
    percent_of_basic = "percent_of_basic"
    percent_of_gross = "percent_of_gross"
    tax_slab = "tax_slab"


# Company payroll component codes that split gross salary
PAYROLL_COMPONENT_CODES = ("basic", "hra", "allowances")


# ── Rosters / notices / EOD ─────────────────────────────────────────

class RosterStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    approved = "approved"


class NoticeStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class NoticePriority(str, enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"
    urgent = "urgent"


class ActivityStatus(str, enum.Enum):
    pending = "Pending"
    ongoing = "Ongoing"
    completed = "Completed"


class RecipientType(str, enum.Enum):
    to = "to"
    cc = "cc"
    bcc = "bcc"


# ── Holidays / performance ──────────────────────────────────────────

class HolidayType(str, enum.Enum):
    national = "national"
    religious = "religious"
    company = "company"


class GoalStatus(str, enum.Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    completed = "completed"


# ── Permissions ─────────────────────────────────────────────────────

# Granted to a role or a user; "*" grants everything.
WILDCARD_PERMISSION = "*"

PERMISSIONS: dict[str, str] = {
    "users:manage": "Register and manage login accounts",
    "employees:read": "View all employee records",
    "employees:manage": "Create, update and delete employees",
    "departments:manage": "Manage departments and designations",
    "roles:manage": "Manage the role hierarchy",
    "menus:manage": "Manage navigation menus",
    "assignments:manage": "Assign and transfer subordinates",
    "attendance:manage": "Manage attendance records of others",
    "leave:approve": "Approve or reject leave requests",
    "leave:manage": "Manage leave types and all leave requests",
    "payroll:manage": "Create, generate and update payroll",
    "company:manage": "Manage company settings",
    "countries:manage": "Manage countries and states",
    "notices:manage": "Publish notices",
    "rosters:manage": "Manage weekly rosters",
    "holidays:manage": "Maintain the holiday calendar",
    "performance:manage": "Write and manage performance reviews",
}

# ── Misc constants ──────────────────────────────────────────────────

MAX_HIERARCHY_LEVEL = 4          # levels 0..4 → 5 levels deep
MAX_MENU_PARENTS = 10
DEFAULT_MENU_ICON = "Folder"
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
DAYS_OF_WEEK = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
