"""Deferred early-check-in review: job payload and scheduling."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..common.datetime_utils import format_erp_datetime, parse_erp_datetime
from ..common.validators import optional_int, require_int, require_non_empty
from ..core.constants import (
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_RETRY_LIMIT,
    EARLY_CHECKIN_PURPOSE,
    EARLY_CHECKIN_QUEUE_NAME,
)
from ..jobs.model import ScheduleResult
from ..jobs.scheduler import JobScheduler, normalize_retry_limit


def early_checkin_singleton_key(tenant: str, shift_log_id: int) -> str:
    return f"{tenant}:{shift_log_id}:{EARLY_CHECKIN_PURPOSE}"


@dataclass(frozen=True)
class EarlyCheckInReviewPayload:
    tenant: str
    branch_id: int
    shift_id: int
    shift_log_id: int
    user_id: Optional[int]
    check_in_event_time: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant": self.tenant,
            "branch_id": self.branch_id,
            "shift_id": self.shift_id,
            "shift_log_id": self.shift_log_id,
            "user_id": self.user_id,
            "check_in_event_time": (
                format_erp_datetime(self.check_in_event_time) if self.check_in_event_time else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EarlyCheckInReviewPayload":
        raw_time = data.get("check_in_event_time")
        return cls(
            tenant=require_non_empty(data.get("tenant"), "tenant"),
            branch_id=require_int(data.get("branch_id"), "branch_id"),
            shift_id=require_int(data.get("shift_id"), "shift_id"),
            shift_log_id=require_int(data.get("shift_log_id"), "shift_log_id"),
            user_id=optional_int(data.get("user_id"), "user_id"),
            check_in_event_time=parse_erp_datetime(raw_time, "check_in_event_time") if raw_time else None,
        )


class EarlyCheckInReviewQueue:
    """Schedules at most one outstanding review per (tenant, check-in log)."""

    def __init__(
        self,
        scheduler: JobScheduler,
        *,
        queue_name: str = EARLY_CHECKIN_QUEUE_NAME,
        retry_limit: Any = DEFAULT_RETRY_LIMIT,
        retry_delay_seconds: int = DEFAULT_RETRY_DELAY_SECONDS,
    ):
        self._scheduler = scheduler
        self._queue_name = queue_name
        self._retry_limit = normalize_retry_limit(retry_limit)
        self._retry_delay_seconds = int(retry_delay_seconds)

    @property
    def queue_name(self) -> str:
        return self._queue_name

    def schedule(self, payload: EarlyCheckInReviewPayload, *, run_at: datetime) -> ScheduleResult:
        return self._scheduler.schedule(
            self._queue_name,
            payload.to_dict(),
            run_at=run_at,
            singleton_key=early_checkin_singleton_key(payload.tenant, payload.shift_log_id),
            retry_limit=self._retry_limit,
            retry_delay_seconds=self._retry_delay_seconds,
        )
