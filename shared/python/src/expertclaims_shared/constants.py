"""
constants.py: shared constants used across the API, CLI and tests.

Roles, case statuses, ticket stages, portal page access rules and invoice
company details are defined here so they stay in sync between modules.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Final, Literal

# ---------------------------------------------------------------------------
# Typed literals
# ---------------------------------------------------------------------------
Role = Literal["admin", "hr", "employee", "partner", "customer"]
TaskStatus = Literal["new", "in-progress", "completed", "cancelled"]
TicketStage = Literal["analysis", "review", "approval", "waiting"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
ReviewStatus = Literal["pending", "approved", "rejected", "withdrawn"]
LoginStep = Literal["credential_validation", "send_otp", "final_login", "login"]
OtpChannel = Literal["sms", "email"]
SortDirection = Literal["asc", "desc"]

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------
ROLES: Final[tuple[str, ...]] = ("admin", "hr", "employee", "partner", "customer")
STAFF_ROLES: Final[tuple[str, ...]] = ("employee", "hr", "admin")
REVIEWER_ROLES: Final[tuple[str, ...]] = ("hr", "admin")
EXTERNAL_ROLES: Final[tuple[str, ...]] = ("partner", "customer")

# Roles that complete login with a second factor, and where the code goes.
OTP_ROLES: Final[dict[str, str]] = {
    "customer": "sms",
    "admin": "email",
}
PASSWORD_ROLES: Final[tuple[str, ...]] = ("employee", "hr", "partner")

DASHBOARDS: Final[dict[str, str]] = {
    "admin": "/admin-dashboard",
    "hr": "/employee-dashboard",
    "employee": "/employee-dashboard",
    "partner": "/partner-dashboard",
    "customer": "/customer-portal",
}

# ---------------------------------------------------------------------------
# Cases
# ---------------------------------------------------------------------------
TASK_STATUSES: Final[tuple[str, ...]] = ("new", "in-progress", "completed", "cancelled")
TICKET_STAGES: Final[tuple[str, ...]] = ("analysis", "review", "approval", "waiting")
TASK_PRIORITIES: Final[tuple[str, ...]] = ("low", "medium", "high", "urgent")
TERMINAL_STATUSES: Final[frozenset[str]] = frozenset({"completed", "cancelled"})

# Allowed status moves for non-admin staff. Admins may also reopen terminal cases.
STATUS_TRANSITIONS: Final[dict[str, frozenset[str]]] = {
    "new": frozenset({"in-progress", "cancelled"}),
    "in-progress": frozenset({"completed", "cancelled", "new"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

# Columns compared by their trailing digits when sorting tables
ID_SORT_COLUMNS: Final[frozenset[str]] = frozenset({"backlog_id", "task_id", "case_id", "id"})

# ---------------------------------------------------------------------------
# Portal pages: path pattern -> roles allowed (None = public)
# ---------------------------------------------------------------------------
PAGE_ACCESS: Final[dict[str, tuple[str, ...] | None]] = {
    "/": None,
    "/login": None,
    "/registeraspartner": None,
    "/unauthorized": None,
    "/register": ("admin",),
    "/edit-register/:userId": ("admin",),
    "/admin-dashboard": ("admin",),
    "/admin-backlog-detail/:backlogId": ("admin",),
    "/admin-backlog-view/:backlogId": ("admin",),
    "/employee-dashboard": ("employee", "hr"),
    "/employee-backlog-detail/:backlogId": ("employee", "hr"),
    "/employee-backlog-edit/:backlogId": ("employee", "hr"),
    "/employee-backlog-view/:backlogId": ("employee", "hr"),
    "/employee-personal-info": ("employee", "hr"),
    "/partner-dashboard": ("partner",),
    "/partner-claim/:case_id": ("partner",),
    "/partner-personal-info": ("partner",),
    "/partner-backlog-detail/:backlogId": ("partner",),
    "/partner-backlog-edit/:backlogId": ("partner",),
    "/partner-new-task": ("partner",),
    "/customer-portal": ("customer",),
    "/customer-claim/:case_id": ("customer",),
    "/customer-faq": ("customer",),
    "/customer-upload": ("customer",),
    "/task/:taskId": STAFF_ROLES,
    "/new-task": STAFF_ROLES,
    "/edit-task/:taskId": STAFF_ROLES,
    "/task-management": STAFF_ROLES,
    "/payslips-compensation": STAFF_ROLES,
    "/leave-management": STAFF_ROLES,
    "/invoice-preview": STAFF_ROLES,
    "/claim/:claimId": STAFF_ROLES,
}

# ---------------------------------------------------------------------------
# Invoicing
# ---------------------------------------------------------------------------
COMPANY_DETAILS: Final[dict[str, str]] = {
    "name": "Expert Claim Solutions India Pvt Ltd.",
    "address": "Plot No. 12, Road No. 1, Dharmareddy Colony, Phase II, Vasanth Nagar, Kukatpally",
    "city": "Hyderabad",
    "state": "Telangana",
    "pincode": "500 085",
    "gst_number": "36AAHCE7798M1ZO",
    "pan_number": "AAHCE7798M",
    "phone": "+91-22-12345678",
    "email": "billing@expertclaims.com",
}

CGST_RATE: Final[Decimal] = Decimal("0.09")
SGST_RATE: Final[Decimal] = Decimal("0.09")
IGST_RATE: Final[Decimal] = Decimal("0.18")
PAYMENT_TERMS: Final[str] = "Payment due within 30 days of invoice date."
