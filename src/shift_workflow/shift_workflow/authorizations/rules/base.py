from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import AuthorizationStatus, AuthorizationType
from ...shifts.model import ShiftRecord


@dataclass(frozen=True)
class RuleDecision:
    """Outcome of classifying one attendance punch against its shift.

    `auth_type` is None when nothing needs recording. `defer_until` is set when
    the decision must be re-evaluated later instead of being recorded now.
    """

    auth_type: Optional[AuthorizationType] = None
    diff_minutes: int = 0
    status: Optional[AuthorizationStatus] = None
    needs_employee_reason: bool = False
    defer_until: Optional[datetime] = None

    @property
    def is_deferred(self) -> bool:
        return self.defer_until is not None

    @property
    def creates_authorization(self) -> bool:
        return self.auth_type is not None and self.status is not None and not self.is_deferred


NO_AUTHORIZATION = RuleDecision()


class AuthorizationRule(ABC):
    """Strategy Pattern: how one kind of schedule deviation is classified."""

    @abstractmethod
    def decide(self, *, shift: ShiftRecord, event_time: datetime) -> RuleDecision:
        raise NotImplementedError
