from __future__ import annotations

from typing import Any, List, Optional, Sequence

from ..core.enums import ApprovalStage, ExchangeStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import ExchangeSide, ExchangeUpdate, NewExchangeRequest, ShiftExchangeRequest
from .repository import ShiftExchangeRepository

_SIDE_COLUMNS = ("user_id", "company_id", "company_db_name", "branch_id", "shift_id", "shift_odoo_id")


def _side(r: dict, prefix: str) -> ExchangeSide:
    return ExchangeSide(
        user_id=int(r[f"{prefix}_user_id"]),
        company_id=int(r[f"{prefix}_company_id"]),
        company_db_name=str(r[f"{prefix}_company_db_name"]),
        branch_id=int(r[f"{prefix}_branch_id"]),
        shift_id=int(r[f"{prefix}_shift_id"]),
        odoo_shift_id=int(r[f"{prefix}_shift_odoo_id"]),
    )


def _row_to_request(r: dict) -> ShiftExchangeRequest:
    return ShiftExchangeRequest(
        request_id=int(r["id"]),
        requester=_side(r, "requester"),
        accepting=_side(r, "accepting"),
        requested_by=int(r["requested_by"]),
        status=ExchangeStatus(r["status"]),
        approval_stage=ApprovalStage(r["approval_stage"]),
        employee_decision_at=r.get("employee_decision_at"),
        employee_rejection_reason=r.get("employee_rejection_reason"),
        hr_decision_by=int(r["hr_decision_by"]) if r.get("hr_decision_by") is not None else None,
        hr_decision_at=r.get("hr_decision_at"),
        hr_rejection_reason=r.get("hr_rejection_reason"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _side_values(side: ExchangeSide) -> tuple:
    return (
        int(side.user_id),
        int(side.company_id),
        side.company_db_name,
        int(side.branch_id),
        int(side.shift_id),
        int(side.odoo_shift_id),
    )


class MySQLShiftExchangeRepository(ShiftExchangeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _fetch(cur, request_id: int) -> Optional[ShiftExchangeRequest]:
        cur.execute("SELECT * FROM shift_exchange_requests WHERE id=%s", (int(request_id),))
        r = fetchone(cur)
        return _row_to_request(r) if r else None

    def insert(self, new: NewExchangeRequest) -> ShiftExchangeRequest:
        columns = (
            [f"requester_{c}" for c in _SIDE_COLUMNS]
            + [f"accepting_{c}" for c in _SIDE_COLUMNS]
            + ["requested_by", "status", "approval_stage", "created_at", "updated_at"]
        )
        values = (
            _side_values(new.requester)
            + _side_values(new.accepting)
            + (
                int(new.requested_by),
                ExchangeStatus.PENDING.value,
                ApprovalStage.AWAITING_EMPLOYEE.value,
                new.created_at,
                new.created_at,
            )
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO shift_exchange_requests({', '.join(columns)}) VALUES({in_clause(values)})",
                values,
            )
            created = self._fetch(cur, int(cur.lastrowid))
            assert created is not None
            return created

    def get_by_id(self, request_id: int) -> Optional[ShiftExchangeRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._fetch(cur, request_id)

    def has_pending_for_shift(self, *, company_id: int, shift_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id FROM shift_exchange_requests
                WHERE status='pending'
                  AND ((requester_company_id=%s AND requester_shift_id=%s)
                    OR (accepting_company_id=%s AND accepting_shift_id=%s))
                LIMIT 1
                """,
                (int(company_id), int(shift_id), int(company_id), int(shift_id)),
            )
            return fetchone(cur) is not None

    def transition(
        self, *, request_id: int, expected_stage: ApprovalStage, update: ExchangeUpdate
    ) -> Optional[ShiftExchangeRequest]:
        assignments: List[str] = ["status=%s", "approval_stage=%s", "updated_at=%s"]
        params: List[Any] = [update.status.value, update.approval_stage.value, update.updated_at]
        for column in (
            "employee_decision_at",
            "employee_rejection_reason",
            "hr_decision_by",
            "hr_decision_at",
            "hr_rejection_reason",
        ):
            value = getattr(update, column)
            if value is not None:
                assignments.append(f"{column}=%s")
                params.append(value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE shift_exchange_requests SET {', '.join(assignments)}
                WHERE id=%s AND status='pending' AND approval_stage=%s
                """,
                tuple(params) + (int(request_id), expected_stage.value),
            )
            if cur.rowcount == 0:
                return None
            return self._fetch(cur, request_id)

    def list_for_company(
        self,
        *,
        company_id: int,
        branch_ids: Sequence[int] = (),
        status: Optional[ExchangeStatus] = None,
    ) -> Sequence[ShiftExchangeRequest]:
        where = ["(requester_company_id=%s OR accepting_company_id=%s)"]
        params: List[Any] = [int(company_id), int(company_id)]
        if status is not None:
            where.append("status=%s")
            params.append(status.value)
        if branch_ids:
            ids = [int(b) for b in branch_ids]
            where.append(
                f"""((requester_company_id=%s AND requester_branch_id IN ({in_clause(ids)}))
                  OR (accepting_company_id=%s AND accepting_branch_id IN ({in_clause(ids)})))"""
            )
            params.extend([int(company_id), *ids, int(company_id), *ids])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT * FROM shift_exchange_requests WHERE {' AND '.join(where)} ORDER BY created_at DESC, id DESC",
                tuple(params),
            )
            return [_row_to_request(r) for r in fetchall(cur)]
