from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AuthorizationStatus, AuthorizationType, OvertimeType


@dataclass(frozen=True)
class ShiftAuthorization:
    """A deviation from the schedule and its approval lifecycle."""

    authorization_id: int
    shift_id: int
    shift_log_id: int
    branch_id: int
    user_id: Optional[int]
    auth_type: AuthorizationType
    diff_minutes: int
    needs_employee_reason: bool
    status: AuthorizationStatus
    employee_reason: Optional[str] = None
    overtime_type: Optional[OvertimeType] = None
    rejection_reason: Optional[str] = None
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == AuthorizationStatus.PENDING


@dataclass(frozen=True)
class NewAuthorization:
    shift_id: int
    shift_log_id: int
    branch_id: int
    user_id: Optional[int]
    auth_type: AuthorizationType
    diff_minutes: int
    needs_employee_reason: bool
    status: AuthorizationStatus
