from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import diff_minutes
from ...core.enums import AuthorizationStatus, AuthorizationType
from ...shifts.model import ShiftRecord
from .base import AuthorizationRule, RuleDecision


class TardinessRule(AuthorizationRule):
    """Check-in after the shift start: pending, the employee must explain."""

    def decide(self, *, shift: ShiftRecord, event_time: datetime) -> RuleDecision:
        return RuleDecision(
            auth_type=AuthorizationType.TARDINESS,
            diff_minutes=abs(diff_minutes(shift.shift_start, event_time)),
            status=AuthorizationStatus.PENDING,
            needs_employee_reason=True,
        )
