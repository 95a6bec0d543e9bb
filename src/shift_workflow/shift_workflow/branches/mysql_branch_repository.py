from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Branch, UserBranchAssignment
from .repository import BranchRepository


def _row_to_branch(r: dict) -> Branch:
    return Branch(
        branch_id=int(r["id"]),
        name=str(r["name"]),
        odoo_branch_id=str(r["odoo_branch_id"]) if r.get("odoo_branch_id") is not None else None,
        is_main_branch=bool(r.get("is_main_branch")),
        is_active=bool(r.get("is_active", 1)),
    )


class MySQLBranchRepository(BranchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, odoo_branch_id, is_main_branch, is_active FROM branches WHERE id=%s",
                (int(branch_id),),
            )
            r = fetchone(cur)
            return _row_to_branch(r) if r else None

    def get_by_erp_id(self, odoo_branch_id: str) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, name, odoo_branch_id, is_main_branch, is_active
                FROM branches
                WHERE odoo_branch_id=%s
                ORDER BY id
                LIMIT 1
                """,
                (str(odoo_branch_id),),
            )
            r = fetchone(cur)
            return _row_to_branch(r) if r else None

    def list_assignments(self, user_ids: Sequence[int]) -> Sequence[UserBranchAssignment]:
        ids = [int(u) for u in user_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT user_id, branch_id, is_primary FROM user_branches WHERE user_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            return [
                UserBranchAssignment(
                    user_id=int(r["user_id"]),
                    branch_id=int(r["branch_id"]),
                    is_primary=bool(r.get("is_primary")),
                )
                for r in fetchall(cur)
            ]

    def reassign_user_to_branch(self, *, user_id: int, branch_id: int) -> list[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE ub FROM user_branches ub
                JOIN branches b ON b.id = ub.branch_id
                WHERE ub.user_id=%s AND b.is_main_branch=0 AND ub.branch_id<>%s
                """,
                (int(user_id), int(branch_id)),
            )
            cur.execute(
                "INSERT IGNORE INTO user_branches(user_id, branch_id, is_primary) VALUES(%s,%s,0)",
                (int(user_id), int(branch_id)),
            )
            cur.execute(
                "SELECT branch_id FROM user_branches WHERE user_id=%s ORDER BY branch_id",
                (int(user_id),),
            )
            return [int(r["branch_id"]) for r in fetchall(cur)]
