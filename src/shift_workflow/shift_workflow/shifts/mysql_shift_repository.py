from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ..core.enums import CheckInStatus, LogType, ShiftStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import NewShiftLog, ShiftFields, ShiftLogEntry, ShiftRecord
from .repository import ShiftLogRepository, ShiftRepository

_SHIFT_COLUMNS = """
    es.id, es.odoo_shift_id, es.branch_id, es.user_id, es.employee_name, es.employee_avatar_url,
    es.duty_type, es.duty_color, es.shift_start, es.shift_end, es.allocated_hours,
    es.total_worked_hours, es.status, es.check_in_status, es.pending_approvals, es.odoo_payload,
    b.name AS branch_name, b.odoo_branch_id AS branch_odoo_id
"""

_LOG_COLUMNS = """
    id, shift_id, branch_id, log_type, odoo_attendance_id, event_time,
    worked_hours, cumulative_minutes, changes, odoo_payload
"""


def _row_to_shift(r: dict) -> ShiftRecord:
    return ShiftRecord(
        shift_id=int(r["id"]),
        odoo_shift_id=int(r["odoo_shift_id"]),
        branch_id=int(r["branch_id"]),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
        employee_name=str(r.get("employee_name") or ""),
        shift_start=r["shift_start"],
        shift_end=r["shift_end"],
        allocated_hours=float(r.get("allocated_hours") or 0),
        status=ShiftStatus(r["status"]),
        check_in_status=CheckInStatus(r["check_in_status"]) if r.get("check_in_status") else None,
        pending_approvals=int(r.get("pending_approvals") or 0),
        total_worked_hours=float(r["total_worked_hours"]) if r.get("total_worked_hours") is not None else None,
        employee_avatar_url=r.get("employee_avatar_url"),
        duty_type=r.get("duty_type"),
        duty_color=int(r["duty_color"]) if r.get("duty_color") is not None else None,
        odoo_payload=load_json(r.get("odoo_payload")) or {},
        branch_name=r.get("branch_name"),
        branch_odoo_id=str(r["branch_odoo_id"]) if r.get("branch_odoo_id") is not None else None,
    )


def _row_to_log(r: dict) -> ShiftLogEntry:
    return ShiftLogEntry(
        log_id=int(r["id"]),
        shift_id=int(r["shift_id"]) if r.get("shift_id") is not None else None,
        branch_id=int(r["branch_id"]),
        log_type=LogType(r["log_type"]),
        event_time=r["event_time"],
        odoo_attendance_id=int(r["odoo_attendance_id"]) if r.get("odoo_attendance_id") is not None else None,
        worked_hours=float(r["worked_hours"]) if r.get("worked_hours") is not None else None,
        cumulative_minutes=int(r["cumulative_minutes"]) if r.get("cumulative_minutes") is not None else None,
        changes=load_json(r.get("changes")),
        odoo_payload=load_json(r.get("odoo_payload")),
    )


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select_one(self, cur, where: str, params: tuple) -> Optional[ShiftRecord]:
        cur.execute(
            f"SELECT {_SHIFT_COLUMNS} FROM employee_shifts es LEFT JOIN branches b ON b.id = es.branch_id WHERE {where}",
            params,
        )
        r = fetchone(cur)
        return _row_to_shift(r) if r else None

    def get_by_id(self, shift_id: int) -> Optional[ShiftRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select_one(cur, "es.id=%s", (int(shift_id),))

    def get_by_erp_id(self, *, odoo_shift_id: int, branch_id: int) -> Optional[ShiftRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select_one(
                cur, "es.odoo_shift_id=%s AND es.branch_id=%s", (int(odoo_shift_id), int(branch_id))
            )

    def insert(self, *, odoo_shift_id: int, branch_id: int, fields: ShiftFields) -> ShiftRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_shifts(
                    odoo_shift_id, branch_id, user_id, employee_name, employee_avatar_url,
                    duty_type, duty_color, shift_start, shift_end, allocated_hours, odoo_payload
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(odoo_shift_id),
                    int(branch_id),
                    fields.user_id,
                    fields.employee_name,
                    fields.employee_avatar_url,
                    fields.duty_type,
                    fields.duty_color,
                    fields.shift_start,
                    fields.shift_end,
                    round(fields.allocated_hours, 2),
                    dump_json(fields.odoo_payload),
                ),
            )
            shift = self._select_one(cur, "es.id=%s", (int(cur.lastrowid),))
            assert shift is not None
            return shift

    def update_fields(self, *, shift_id: int, fields: ShiftFields) -> ShiftRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_shifts
                SET user_id=%s, employee_name=%s, employee_avatar_url=%s, duty_type=%s, duty_color=%s,
                    shift_start=%s, shift_end=%s, allocated_hours=%s, odoo_payload=%s
                WHERE id=%s
                """,
                (
                    fields.user_id,
                    fields.employee_name,
                    fields.employee_avatar_url,
                    fields.duty_type,
                    fields.duty_color,
                    fields.shift_start,
                    fields.shift_end,
                    round(fields.allocated_hours, 2),
                    dump_json(fields.odoo_payload),
                    int(shift_id),
                ),
            )
            shift = self._select_one(cur, "es.id=%s", (int(shift_id),))
            assert shift is not None
            return shift

    def mark_checked_in(self, shift_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE employee_shifts SET status=%s, check_in_status=%s WHERE id=%s",
                (ShiftStatus.ACTIVE.value, CheckInStatus.CHECKED_IN.value, int(shift_id)),
            )

    def mark_checked_out(self, shift_id: int, *, total_worked_hours: float) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE employee_shifts SET total_worked_hours=%s, check_in_status=%s WHERE id=%s",
                (round(total_worked_hours, 2), CheckInStatus.CHECKED_OUT.value, int(shift_id)),
            )

    def mark_ended(self, shift_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE employee_shifts SET status=%s WHERE id=%s AND status=%s",
                (ShiftStatus.ENDED.value, int(shift_id), ShiftStatus.ACTIVE.value),
            )
            return cur.rowcount > 0

    def delete_with_history(self, shift_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM shift_authorizations WHERE shift_id=%s", (int(shift_id),))
            cur.execute("DELETE FROM shift_logs WHERE shift_id=%s", (int(shift_id),))
            cur.execute("DELETE FROM employee_shifts WHERE id=%s", (int(shift_id),))
            return cur.rowcount > 0

    def list_open_assigned(self) -> Sequence[ShiftRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SHIFT_COLUMNS}
                FROM employee_shifts es
                LEFT JOIN branches b ON b.id = es.branch_id
                WHERE es.status=%s AND es.user_id IS NOT NULL
                ORDER BY es.shift_start ASC
                """,
                (ShiftStatus.OPEN.value,),
            )
            return [_row_to_shift(r) for r in fetchall(cur)]


class MySQLShiftLogRepository(ShiftLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _insert(cur, entry: NewShiftLog, *, ignore: bool = False) -> int:
        verb = "INSERT IGNORE" if ignore else "INSERT"
        cur.execute(
            f"""
            {verb} INTO shift_logs(
                shift_id, branch_id, log_type, odoo_attendance_id, event_time,
                worked_hours, cumulative_minutes, changes, odoo_payload
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                entry.shift_id,
                int(entry.branch_id),
                entry.log_type.value,
                entry.odoo_attendance_id,
                entry.event_time,
                entry.worked_hours,
                entry.cumulative_minutes,
                dump_json(entry.changes),
                dump_json(entry.odoo_payload),
            ),
        )
        return int(cur.lastrowid) if cur.rowcount > 0 else 0

    def append(self, entry: NewShiftLog) -> ShiftLogEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            log_id = self._insert(cur, entry)
            cur.execute(f"SELECT {_LOG_COLUMNS} FROM shift_logs WHERE id=%s", (log_id,))
            return _row_to_log(fetchone(cur))

    def record_attendance(self, entry: NewShiftLog) -> Tuple[ShiftLogEntry, bool]:
        with db_cursor(self._conn_factory) as (_, cur):
            created = self._insert(cur, entry, ignore=True) > 0
            cur.execute(
                f"SELECT {_LOG_COLUMNS} FROM shift_logs WHERE odoo_attendance_id=%s AND log_type=%s",
                (entry.odoo_attendance_id, entry.log_type.value),
            )
            return _row_to_log(fetchone(cur)), created

    def get_by_id(self, log_id: int) -> Optional[ShiftLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_LOG_COLUMNS} FROM shift_logs WHERE id=%s", (int(log_id),))
            r = fetchone(cur)
            return _row_to_log(r) if r else None

    def find_attendance_log(self, *, odoo_attendance_id: int, log_type: LogType) -> Optional[ShiftLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_LOG_COLUMNS} FROM shift_logs WHERE odoo_attendance_id=%s AND log_type=%s",
                (int(odoo_attendance_id), log_type.value),
            )
            r = fetchone(cur)
            return _row_to_log(r) if r else None
