from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import diff_minutes
from ..core.constants import EARLY_CHECKIN_DELAY_SECONDS
from ..shifts.model import ShiftRecord
from .rules.base import AuthorizationRule
from .rules.early_check_in_rule import DeferredEarlyCheckInRule
from .rules.early_check_out_rule import EarlyCheckOutRule
from .rules.late_check_out_rule import LateCheckOutRule
from .rules.on_schedule_rule import OnScheduleRule
from .rules.overtime_rule import OvertimeRule
from .rules.tardiness_rule import TardinessRule


@dataclass
class AuthorizationRuleFactory:
    """Factory Pattern: choose the rule for a punch from its rounded minute offset.

    A punch that rounds to the scheduled minute yields no authorization.
    """

    early_check_in_delay_seconds: int = EARLY_CHECKIN_DELAY_SECONDS

    def for_check_in(self, *, shift: Optional[ShiftRecord], event_time: datetime) -> AuthorizationRule:
        if not shift:
            return OnScheduleRule()

        minutes_early = diff_minutes(shift.shift_start, event_time)
        if minutes_early > 0:
            return self.early_check_in_rule()
        if minutes_early < 0:
            return TardinessRule()
        return OnScheduleRule()

    def for_check_out(self, *, shift: Optional[ShiftRecord], event_time: datetime) -> AuthorizationRule:
        if not shift:
            return OnScheduleRule()

        minutes_early = diff_minutes(shift.shift_end, event_time)
        if minutes_early > 0:
            return EarlyCheckOutRule()
        if minutes_early < 0:
            return LateCheckOutRule()
        return OnScheduleRule()

    def for_shift_end(self, *, shift: ShiftRecord) -> AuthorizationRule:
        if float(shift.total_worked_hours or 0) > float(shift.allocated_hours):
            return OvertimeRule()
        return OnScheduleRule()

    def early_check_in_rule(self) -> DeferredEarlyCheckInRule:
        return DeferredEarlyCheckInRule(delay_seconds=self.early_check_in_delay_seconds)
