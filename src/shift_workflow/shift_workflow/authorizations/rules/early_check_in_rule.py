from __future__ import annotations

from datetime import datetime, timedelta

from ...common.datetime_utils import diff_minutes
from ...core.constants import EARLY_CHECKIN_DELAY_SECONDS
from ...core.enums import AuthorizationStatus, AuthorizationType
from ...shifts.model import ShiftRecord
from .base import NO_AUTHORIZATION, AuthorizationRule, RuleDecision


class DeferredEarlyCheckInRule(AuthorizationRule):
    """Check-in before the shift start.

    Nothing is recorded at punch time; a review runs one minute after the
    scheduled start and records the authorization only if the check-in is
    still early against the shift as it stands then.
    """

    def __init__(self, delay_seconds: int = EARLY_CHECKIN_DELAY_SECONDS):
        self._delay = timedelta(seconds=int(delay_seconds))

    def decide(self, *, shift: ShiftRecord, event_time: datetime) -> RuleDecision:
        minutes = diff_minutes(shift.shift_start, event_time)
        return RuleDecision(
            auth_type=AuthorizationType.EARLY_CHECK_IN,
            diff_minutes=minutes,
            defer_until=shift.shift_start + self._delay,
        )

    def review(self, *, shift: ShiftRecord, event_time: datetime) -> RuleDecision:
        minutes = diff_minutes(shift.shift_start, event_time)
        if minutes <= 0:
            return NO_AUTHORIZATION
        return RuleDecision(
            auth_type=AuthorizationType.EARLY_CHECK_IN,
            diff_minutes=minutes,
            status=AuthorizationStatus.PENDING,
            needs_employee_reason=False,
        )
