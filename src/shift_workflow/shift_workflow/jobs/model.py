from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import JobState


@dataclass(frozen=True)
class DeferredJob:
    """A durable, time-delayed unit of work.

    `attempts` counts claims, including the one currently running.
    """

    job_id: int
    queue_name: str
    payload: Dict[str, Any]
    start_after: datetime
    state: JobState = JobState.CREATED
    singleton_key: Optional[str] = None
    attempts: int = 0
    retry_limit: int = 3
    retry_delay_seconds: int = 30
    started_at: Optional[datetime] = None
    last_error: Optional[str] = None
    created_at: Optional[datetime] = None

    def next_retry_delay_seconds(self) -> int:
        # 30s, 60s, 120s, ... for attempts 1, 2, 3, ...
        return int(self.retry_delay_seconds) * 2 ** max(self.attempts - 1, 0)

    @property
    def can_retry(self) -> bool:
        return self.attempts <= self.retry_limit


@dataclass(frozen=True)
class ScheduleResult:
    job_id: Optional[int]
    deduped: bool = False

