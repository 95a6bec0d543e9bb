from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import diff_minutes
from ...core.enums import AuthorizationStatus, AuthorizationType
from ...shifts.model import ShiftRecord
from .base import AuthorizationRule, RuleDecision


class EarlyCheckOutRule(AuthorizationRule):
    """Check-out before the shift end. Informational only."""

    def decide(self, *, shift: ShiftRecord, event_time: datetime) -> RuleDecision:
        return RuleDecision(
            auth_type=AuthorizationType.EARLY_CHECK_OUT,
            diff_minutes=diff_minutes(shift.shift_end, event_time),
            status=AuthorizationStatus.NO_APPROVAL_NEEDED,
            needs_employee_reason=False,
        )
