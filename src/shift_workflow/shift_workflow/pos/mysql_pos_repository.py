from __future__ import annotations

from typing import Any, Dict, Optional

from ..core.enums import PosSessionStatus, PosVerificationType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchone, load_json
from .model import NewPosVerification, PosSession, PosVerification
from .repository import PosRepository

_SESSION_COLUMNS = "id, branch_id, odoo_session_id, session_name, status, odoo_payload, created_at"


def _row_to_session(r: dict) -> PosSession:
    return PosSession(
        session_id=int(r["id"]),
        branch_id=int(r["branch_id"]),
        odoo_session_id=str(r["odoo_session_id"]),
        session_name=str(r["session_name"]),
        status=PosSessionStatus(r["status"]),
        odoo_payload=load_json(r.get("odoo_payload")),
        created_at=r.get("created_at"),
    )


class MySQLPosRepository(PosRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _session_where(self, where: str, params: tuple) -> Optional[PosSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM pos_sessions WHERE {where} LIMIT 1", params)
            r = fetchone(cur)
            return _row_to_session(r) if r else None

    def get_session(self, *, odoo_session_id: str, branch_id: int) -> Optional[PosSession]:
        return self._session_where("odoo_session_id=%s AND branch_id=%s", (odoo_session_id, int(branch_id)))

    def find_session_by_name(self, *, branch_id: int, session_name: str) -> Optional[PosSession]:
        return self._session_where("branch_id=%s AND session_name=%s", (int(branch_id), session_name))

    def create_session(
        self, *, branch_id: int, odoo_session_id: str, session_name: str, odoo_payload: Dict[str, Any]
    ) -> PosSession:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pos_sessions(branch_id, odoo_session_id, session_name, status, odoo_payload)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(branch_id), odoo_session_id, session_name, PosSessionStatus.OPEN.value, dump_json(odoo_payload)),
            )
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM pos_sessions WHERE id=%s", (int(cur.lastrowid),))
            return _row_to_session(fetchone(cur))

    def update_session(self, *, session_id: int, session_name: str, odoo_payload: Dict[str, Any]) -> PosSession:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE pos_sessions SET session_name=%s, odoo_payload=%s WHERE id=%s",
                (session_name, dump_json(odoo_payload), int(session_id)),
            )
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM pos_sessions WHERE id=%s", (int(session_id),))
            return _row_to_session(fetchone(cur))

    def count_verifications(self, session_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM pos_verifications WHERE pos_session_id=%s", (int(session_id),))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def add_verification(self, new: NewPosVerification) -> PosVerification:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pos_verifications(
                    branch_id, pos_session_id, verification_type, title, amount, status,
                    cashier_user_id, customer_user_id, odoo_payload
                )
                VALUES(%s,%s,%s,%s,%s,'pending',%s,%s,%s)
                """,
                (
                    int(new.branch_id),
                    new.pos_session_id,
                    new.verification_type.value,
                    new.title,
                    new.amount,
                    new.cashier_user_id,
                    new.customer_user_id,
                    dump_json(new.odoo_payload),
                ),
            )
            return PosVerification(
                verification_id=int(cur.lastrowid),
                branch_id=int(new.branch_id),
                pos_session_id=new.pos_session_id,
                verification_type=PosVerificationType(new.verification_type),
                title=new.title,
                amount=new.amount,
                cashier_user_id=new.cashier_user_id,
                customer_user_id=new.customer_user_id,
                odoo_payload=new.odoo_payload,
            )
