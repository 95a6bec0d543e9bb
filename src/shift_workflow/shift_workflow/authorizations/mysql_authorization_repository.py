from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import AuthorizationStatus, AuthorizationType, OvertimeType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import NewAuthorization, ShiftAuthorization
from .repository import AuthorizationRepository

_COLUMNS = """
    id, shift_id, shift_log_id, branch_id, user_id, auth_type, diff_minutes, needs_employee_reason,
    status, employee_reason, overtime_type, rejection_reason, resolved_by, resolved_at, created_at
"""


def _row_to_auth(r: dict) -> ShiftAuthorization:
    return ShiftAuthorization(
        authorization_id=int(r["id"]),
        shift_id=int(r["shift_id"]),
        shift_log_id=int(r["shift_log_id"]),
        branch_id=int(r["branch_id"]),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        auth_type=AuthorizationType(r["auth_type"]),
        diff_minutes=int(r["diff_minutes"]),
        needs_employee_reason=bool(r.get("needs_employee_reason")),
        status=AuthorizationStatus(r["status"]),
        employee_reason=r.get("employee_reason"),
        overtime_type=OvertimeType(r["overtime_type"]) if r.get("overtime_type") else None,
        rejection_reason=r.get("rejection_reason"),
        resolved_by=int(r["resolved_by"]) if r.get("resolved_by") is not None else None,
        resolved_at=r.get("resolved_at"),
        created_at=r.get("created_at"),
    )


class MySQLAuthorizationRepository(AuthorizationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _fetch(cur, authorization_id: int) -> Optional[ShiftAuthorization]:
        cur.execute(f"SELECT {_COLUMNS} FROM shift_authorizations WHERE id=%s", (int(authorization_id),))
        r = fetchone(cur)
        return _row_to_auth(r) if r else None

    def create(self, new: NewAuthorization) -> Optional[ShiftAuthorization]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO shift_authorizations(
                    shift_id, shift_log_id, branch_id, user_id, auth_type,
                    diff_minutes, needs_employee_reason, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(new.shift_id),
                    int(new.shift_log_id),
                    int(new.branch_id),
                    new.user_id,
                    new.auth_type.value,
                    int(new.diff_minutes),
                    1 if new.needs_employee_reason else 0,
                    new.status.value,
                ),
            )
            if cur.rowcount == 0:
                return None
            authorization_id = int(cur.lastrowid)
            if new.status == AuthorizationStatus.PENDING:
                cur.execute(
                    "UPDATE employee_shifts SET pending_approvals = pending_approvals + 1 WHERE id=%s",
                    (int(new.shift_id),),
                )
            return self._fetch(cur, authorization_id)

    def get_by_id(self, authorization_id: int) -> Optional[ShiftAuthorization]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._fetch(cur, authorization_id)

    def find_for_log(self, *, shift_log_id: int, auth_type: AuthorizationType) -> Optional[ShiftAuthorization]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM shift_authorizations WHERE shift_log_id=%s AND auth_type=%s",
                (int(shift_log_id), auth_type.value),
            )
            r = fetchone(cur)
            return _row_to_auth(r) if r else None

    def set_employee_reason(self, *, authorization_id: int, reason: str) -> Optional[ShiftAuthorization]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE shift_authorizations SET employee_reason=%s WHERE id=%s AND status=%s",
                (reason, int(authorization_id), AuthorizationStatus.PENDING.value),
            )
            if cur.rowcount == 0:
                return None
            return self._fetch(cur, authorization_id)

    def resolve(
        self,
        *,
        authorization_id: int,
        status: AuthorizationStatus,
        resolved_by: int,
        resolved_at: datetime,
        overtime_type: Optional[OvertimeType] = None,
        rejection_reason: Optional[str] = None,
    ) -> Optional[ShiftAuthorization]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE shift_authorizations
                SET status=%s, resolved_by=%s, resolved_at=%s, overtime_type=%s, rejection_reason=%s
                WHERE id=%s AND status=%s
                """,
                (
                    status.value,
                    int(resolved_by),
                    resolved_at,
                    overtime_type.value if overtime_type else None,
                    rejection_reason,
                    int(authorization_id),
                    AuthorizationStatus.PENDING.value,
                ),
            )
            if cur.rowcount == 0:
                return None
            auth = self._fetch(cur, authorization_id)
            assert auth is not None
            cur.execute(
                "UPDATE employee_shifts SET pending_approvals = GREATEST(pending_approvals - 1, 0) WHERE id=%s",
                (auth.shift_id,),
            )
            return auth

    def list(
        self,
        *,
        branch_ids: Sequence[int] = (),
        status: Optional[AuthorizationStatus] = None,
        limit: int = 200,
    ) -> Sequence[ShiftAuthorization]:
        where = ["1=1"]
        params: list = []
        if branch_ids:
            where.append(f"branch_id IN ({in_clause(branch_ids)})")
            params.extend(int(b) for b in branch_ids)
        if status:
            where.append("status=%s")
            params.append(status.value)
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM shift_authorizations
                WHERE {' AND '.join(where)}
                ORDER BY created_at DESC, id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_row_to_auth(r) for r in fetchall(cur)]
