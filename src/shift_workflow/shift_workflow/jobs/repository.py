from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Sequence

from ..core.enums import JobState
from .model import DeferredJob


class JobRepository(Protocol):
    def insert_if_absent(
        self,
        *,
        queue_name: str,
        payload: Dict[str, Any],
        singleton_key: Optional[str],
        start_after: datetime,
        retry_limit: int,
        retry_delay_seconds: int,
        now: datetime,
    ) -> Optional[int]:
        """Insert a job; None when an outstanding job already holds `singleton_key`."""

        raise NotImplementedError

    def claim_due(self, *, queue_name: str, now: datetime, limit: int) -> Sequence[DeferredJob]:
        """Mark up to `limit` runnable jobs active (attempts + 1) and return them."""

        raise NotImplementedError

    def schedule_retry(self, *, job_id: int, retry_at: datetime, error: str, now: datetime) -> None:
        raise NotImplementedError

    def archive(self, *, job_id: int, state: JobState, error: Optional[str], now: datetime) -> None:
        """Move a finished job (completed / failed) out of the outstanding table."""

        raise NotImplementedError

    def requeue_expired(self, *, queue_name: str, started_before: datetime, now: datetime) -> int:
        raise NotImplementedError
