from __future__ import annotations

from enum import Enum


class ShiftStatus(str, Enum):
    """Lifecycle of a scheduled shift."""

    OPEN = "open"
    ACTIVE = "active"
    ENDED = "ended"


class CheckInStatus(str, Enum):
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class LogType(str, Enum):
    """Kinds of immutable facts appended to a shift's log."""

    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    SHIFT_UPDATED = "shift_updated"
    SHIFT_ENDED = "shift_ended"
    AUTHORIZATION_RESOLVED = "authorization_resolved"


class AuthorizationType(str, Enum):
    EARLY_CHECK_IN = "early_check_in"
    TARDINESS = "tardiness"
    EARLY_CHECK_OUT = "early_check_out"
    LATE_CHECK_OUT = "late_check_out"
    OVERTIME = "overtime"

    @property
    def label(self) -> str:
        return {
            AuthorizationType.EARLY_CHECK_IN: "Early Check In",
            AuthorizationType.TARDINESS: "Tardiness",
            AuthorizationType.EARLY_CHECK_OUT: "Early Check Out",
            AuthorizationType.LATE_CHECK_OUT: "Late Check Out",
            AuthorizationType.OVERTIME: "Overtime",
        }[self]


class AuthorizationStatus(str, Enum):
    PENDING = "pending"
    NO_APPROVAL_NEEDED = "no_approval_needed"
    APPROVED = "approved"
    REJECTED = "rejected"


class OvertimeType(str, Enum):
    NORMAL_OVERTIME = "normal_overtime"
    OVERTIME_PREMIUM = "overtime_premium"


class ExchangeStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalStage(str, Enum):
    """Coarse phase of a shift exchange; only ever moves forward."""

    AWAITING_EMPLOYEE = "awaiting_employee"
    AWAITING_HR = "awaiting_hr"
    RESOLVED = "resolved"


class ApproverMode(str, Enum):
    HR = "hr"
    MANAGEMENT_FALLBACK = "management_fallback"


class EmploymentStatus(str, Enum):
    ACTIVE = "active"
    RESIGNED = "resigned"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class NotificationSeverity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"


class JobState(str, Enum):
    """States of a deferred job; completed/failed jobs live in the archive."""

    CREATED = "created"
    RETRY = "retry"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class PosVerificationType(str, Enum):
    CF_BREAKDOWN = "cf_breakdown"
    PCF_BREAKDOWN = "pcf_breakdown"
    DISCOUNT_ORDER = "discount_order"
    REFUND_ORDER = "refund_order"
    TOKEN_PAY_ORDER = "token_pay_order"
    NON_CASH_ORDER = "non_cash_order"


class PosSessionStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
