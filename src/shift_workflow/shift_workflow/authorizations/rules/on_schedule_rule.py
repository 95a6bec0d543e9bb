from __future__ import annotations

from datetime import datetime

from ...shifts.model import ShiftRecord
from .base import NO_AUTHORIZATION, AuthorizationRule, RuleDecision


class OnScheduleRule(AuthorizationRule):
    """Punch on the scheduled minute (or no shift at all)."""

    def decide(self, *, shift: ShiftRecord, event_time: datetime) -> RuleDecision:
        return NO_AUTHORIZATION
