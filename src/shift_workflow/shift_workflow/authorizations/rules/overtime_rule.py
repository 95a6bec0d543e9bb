from __future__ import annotations

import math
from datetime import datetime

from ...core.enums import AuthorizationStatus, AuthorizationType
from ...shifts.model import ShiftRecord
from .base import NO_AUTHORIZATION, AuthorizationRule, RuleDecision


def overtime_minutes(shift: ShiftRecord) -> int:
    """Worked minus allocated hours, in whole minutes (halves rounded up)."""
    extra_hours = float(shift.total_worked_hours or 0) - float(shift.allocated_hours)
    return int(math.floor(extra_hours * 60.0 + 0.5))


class OvertimeRule(AuthorizationRule):
    """Evaluated when a shift is ended; the event time is the end itself."""

    def decide(self, *, shift: ShiftRecord, event_time: datetime) -> RuleDecision:
        minutes = overtime_minutes(shift)
        if minutes <= 0:
            return NO_AUTHORIZATION
        return RuleDecision(
            auth_type=AuthorizationType.OVERTIME,
            diff_minutes=minutes,
            status=AuthorizationStatus.PENDING,
            needs_employee_reason=False,
        )
