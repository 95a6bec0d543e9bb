from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from ..common.datetime_utils import utc_now
from ..core.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_JOB_EXPIRE_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_RETRY_LIMIT,
)
from ..core.enums import JobState
from .model import DeferredJob, ScheduleResult
from .repository import JobRepository

logger = logging.getLogger(__name__)

JobHandler = Callable[[DeferredJob], None]


def normalize_retry_limit(value: Any, default: int = DEFAULT_RETRY_LIMIT) -> int:
    """Non-negative integer retry limit; anything else falls back to `default`."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


class JobScheduler:
    """Durable, at-least-once deferred job runner.

    One instance owns the worker thread for the queues registered on it. Jobs
    are claimed in batches and executed one at a time; a failing job is retried
    with exponential backoff until its retry limit, then archived as failed.
    """

    def __init__(
        self,
        jobs: JobRepository,
        *,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        expire_seconds: int = DEFAULT_JOB_EXPIRE_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._jobs = jobs
        self._poll_interval = float(poll_interval_seconds)
        self._batch_size = max(int(batch_size), 1)
        self._expire_seconds = int(expire_seconds)
        self._clock = clock
        self._handlers: Dict[str, JobHandler] = {}
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lifecycle_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def register(self, queue_name: str, handler: JobHandler) -> None:
        self._handlers[queue_name] = handler

    def schedule(
        self,
        queue_name: str,
        payload: Dict[str, Any],
        *,
        run_at: datetime,
        singleton_key: Optional[str] = None,
        retry_limit: int = DEFAULT_RETRY_LIMIT,
        retry_delay_seconds: int = DEFAULT_RETRY_DELAY_SECONDS,
    ) -> ScheduleResult:
        job_id = self._jobs.insert_if_absent(
            queue_name=queue_name,
            payload=payload,
            singleton_key=singleton_key,
            start_after=run_at,
            retry_limit=normalize_retry_limit(retry_limit),
            retry_delay_seconds=int(retry_delay_seconds),
            now=self._clock(),
        )
        if job_id is None:
            logger.info("Skipped scheduling %s job (deduped) key=%s", queue_name, singleton_key)
            return ScheduleResult(job_id=None, deduped=True)

        logger.info("Scheduled %s job %s key=%s run_at=%s", queue_name, job_id, singleton_key, run_at.isoformat())
        return ScheduleResult(job_id=job_id)

    def run_pending(self, now: Optional[datetime] = None) -> int:
        """Run one batch of due jobs per registered queue; returns how many ran."""
        processed = 0
        for queue_name, handler in list(self._handlers.items()):
            current = now or self._clock()
            for job in self._jobs.claim_due(queue_name=queue_name, now=current, limit=self._batch_size):
                self._execute(job, handler, now=now)
                processed += 1
        return processed

    def _execute(self, job: DeferredJob, handler: JobHandler, *, now: Optional[datetime]) -> None:
        try:
            handler(job)
        except Exception as exc:
            finished = now or self._clock()
            error = f"{type(exc).__name__}: {exc}"
            if job.can_retry:
                delay = job.next_retry_delay_seconds()
                self._jobs.schedule_retry(
                    job_id=job.job_id,
                    retry_at=finished + timedelta(seconds=delay),
                    error=error,
                    now=finished,
                )
                logger.warning(
                    "Job %s (%s) failed on attempt %s/%s, retrying in %ss: %s",
                    job.job_id, job.queue_name, job.attempts, job.retry_limit + 1, delay, error,
                )
            else:
                self._jobs.archive(job_id=job.job_id, state=JobState.FAILED, error=error, now=finished)
                logger.error(
                    "Job %s (%s) failed permanently after %s attempts: %s",
                    job.job_id, job.queue_name, job.attempts, error,
                )
            return

        self._jobs.archive(job_id=job.job_id, state=JobState.COMPLETED, error=None, now=now or self._clock())
        logger.debug("Job %s (%s) completed", job.job_id, job.queue_name)

    def requeue_abandoned(self) -> int:
        now = self._clock()
        cutoff = now - timedelta(seconds=self._expire_seconds)
        total = 0
        for queue_name in list(self._handlers):
            count = self._jobs.requeue_expired(queue_name=queue_name, started_before=cutoff, now=now)
            if count:
                logger.warning("Requeued %s abandoned %s job(s)", count, queue_name)
            total += count
        return total

    def start(self) -> bool:
        """Start the polling thread; a second call while running is a no-op."""
        with self._lifecycle_lock:
            if self.is_running:
                return False
            self.requeue_abandoned()
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._loop, name="job-scheduler", daemon=True)
            self._thread.start()
            logger.info(
                "Job scheduler started queues=%s poll=%ss batch=%s",
                sorted(self._handlers), self._poll_interval, self._batch_size,
            )
            return True

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop polling and wait for the in-flight batch to finish."""
        with self._lifecycle_lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            thread.join(timeout)
            self._thread = None
            logger.info("Job scheduler stopped")

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                processed = self.run_pending()
            except Exception:
                logger.exception("Job poll cycle failed")
                processed = 0
            if processed == 0:
                self._stop_event.wait(self._poll_interval)
