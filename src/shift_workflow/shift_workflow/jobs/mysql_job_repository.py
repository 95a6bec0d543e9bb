from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import JobState
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, in_clause, load_json
from .model import DeferredJob
from .repository import JobRepository

_COLUMNS = """
    id, queue_name, singleton_key, payload, state, attempts, retry_limit,
    retry_delay_seconds, start_after, started_at, last_error, created_at
"""


def _row_to_job(r: dict) -> DeferredJob:
    return DeferredJob(
        job_id=int(r["id"]),
        queue_name=str(r["queue_name"]),
        payload=load_json(r.get("payload")) or {},
        start_after=r["start_after"],
        state=JobState(r["state"]),
        singleton_key=r.get("singleton_key"),
        attempts=int(r.get("attempts") or 0),
        retry_limit=int(r.get("retry_limit") or 0),
        retry_delay_seconds=int(r.get("retry_delay_seconds") or 0),
        started_at=r.get("started_at"),
        last_error=r.get("last_error"),
        created_at=r.get("created_at"),
    )


class MySQLJobRepository(JobRepository):
    """Job queue in the master database (`jobs` + `jobs_archive`)."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO jobs(
                    queue_name, singleton_key, payload, state, attempts, retry_limit,
                    retry_delay_seconds, start_after, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,0,%s,%s,%s,%s,%s)
                """,
                (
                    queue_name,
                    singleton_key,
                    dump_json(payload),
                    JobState.CREATED.value,
                    int(retry_limit),
                    int(retry_delay_seconds),
                    start_after,
                    now,
                    now,
                ),
            )
            if cur.rowcount == 0:
                return None
            return int(cur.lastrowid)

    def claim_due(self, *, queue_name: str, now: datetime, limit: int) -> Sequence[DeferredJob]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM jobs
                WHERE queue_name=%s AND state IN (%s, %s) AND start_after <= %s
                ORDER BY start_after ASC, id ASC
                LIMIT %s
                FOR UPDATE SKIP LOCKED
                """,
                (queue_name, JobState.CREATED.value, JobState.RETRY.value, now, int(limit)),
            )
            rows = fetchall(cur)
            if not rows:
                return []
            ids = [int(r["id"]) for r in rows]
            cur.execute(
                f"""
                UPDATE jobs
                SET state=%s, attempts = attempts + 1, started_at=%s, updated_at=%s
                WHERE id IN ({in_clause(ids)})
                """,
                (JobState.ACTIVE.value, now, now, *ids),
            )
            claimed = []
            for r in rows:
                r = dict(r)
                r["state"] = JobState.ACTIVE.value
                r["attempts"] = int(r.get("attempts") or 0) + 1
                r["started_at"] = now
                claimed.append(_row_to_job(r))
            return claimed

    def schedule_retry(self, *, job_id: int, retry_at: datetime, error: str, now: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE jobs
                SET state=%s, start_after=%s, last_error=%s, started_at=NULL, updated_at=%s
                WHERE id=%s
                """,
                (JobState.RETRY.value, retry_at, error, now, int(job_id)),
            )

    def archive(self, *, job_id: int, state: JobState, error: Optional[str], now: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO jobs_archive(
                    id, queue_name, singleton_key, payload, state, attempts, retry_limit,
                    retry_delay_seconds, start_after, started_at, last_error, created_at, archived_at
                )
                SELECT id, queue_name, singleton_key, payload, %s, attempts, retry_limit,
                       retry_delay_seconds, start_after, started_at, COALESCE(%s, last_error), created_at, %s
                FROM jobs
                WHERE id=%s
                """,
                (state.value, error, now, int(job_id)),
            )
            cur.execute("DELETE FROM jobs WHERE id=%s", (int(job_id),))

    def requeue_expired(self, *, queue_name: str, started_before: datetime, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE jobs
                SET state=%s, start_after=%s, started_at=NULL, updated_at=%s
                WHERE queue_name=%s AND state=%s AND started_at < %s
                """,
                (JobState.RETRY.value, now, now, queue_name, JobState.ACTIVE.value, started_before),
            )
            return int(cur.rowcount)
