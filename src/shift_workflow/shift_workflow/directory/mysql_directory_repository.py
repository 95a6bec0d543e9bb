from __future__ import annotations

from typing import Dict, Optional, Sequence, Set, Tuple

from ..core.enums import EmploymentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import ApproverRef, Company, DirectoryUser, TenantUser
from .repository import DirectoryRepository, TenantUserRepository


def _row_to_company(r: dict) -> Company:
    return Company(
        company_id=int(r["id"]),
        name=str(r["name"]),
        slug=str(r["slug"]),
        db_name=str(r["db_name"]),
        is_active=bool(r.get("is_active", 1)),
    )


def _employment_status(value) -> EmploymentStatus:
    try:
        return EmploymentStatus(str(value or "active").lower())
    except ValueError:
        return EmploymentStatus.INACTIVE


class MySQLDirectoryRepository(DirectoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_active_company(self, company_id: int) -> Optional[Company]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, slug, db_name, is_active FROM companies WHERE id=%s AND is_active=1",
                (int(company_id),),
            )
            r = fetchone(cur)
            return _row_to_company(r) if r else None

    def list_active_companies(self) -> Sequence[Company]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, slug, db_name, is_active FROM companies WHERE is_active=1 ORDER BY id")
            return [_row_to_company(r) for r in fetchall(cur)]

    def list_accessible_companies(self, user_id: int) -> Sequence[Company]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT c.id, c.name, c.slug, c.db_name, c.is_active
                FROM user_company_access uca
                JOIN companies c ON c.id = uca.company_id
                WHERE uca.user_id=%s AND uca.is_active=1 AND c.is_active=1
                ORDER BY c.name ASC
                """,
                (int(user_id),),
            )
            return [_row_to_company(r) for r in fetchall(cur)]

    def load_users(self, user_ids: Sequence[int]) -> Dict[int, DirectoryUser]:
        ids = sorted({int(u) for u in user_ids if u})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT id, first_name, last_name, email, user_key, is_active, employment_status
                FROM users
                WHERE id IN ({in_clause(ids)})
                """,
                tuple(ids),
            )
            return {
                int(r["id"]): DirectoryUser(
                    user_id=int(r["id"]),
                    first_name=str(r.get("first_name") or ""),
                    last_name=str(r.get("last_name") or ""),
                    email=str(r.get("email") or ""),
                    user_key=r.get("user_key"),
                    is_active=bool(r.get("is_active")),
                    employment_status=_employment_status(r.get("employment_status")),
                )
                for r in fetchall(cur)
            }

    def load_designations(
        self, user_ids: Sequence[int]
    ) -> Tuple[Set[Tuple[int, int]], Set[Tuple[int, int, int]]]:
        ids = sorted({int(u) for u in user_ids if u})
        if not ids:
            return set(), set()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT user_id, company_id FROM user_company_access WHERE is_active=1 AND user_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            access = {(int(r["user_id"]), int(r["company_id"])) for r in fetchall(cur)}
            cur.execute(
                f"SELECT user_id, company_id, branch_id FROM user_company_branches WHERE user_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            branches = {(int(r["user_id"]), int(r["company_id"]), int(r["branch_id"])) for r in fetchall(cur)}
            return access, branches

    def has_active_access(self, *, user_id: int, company_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id FROM user_company_access WHERE user_id=%s AND company_id=%s AND is_active=1",
                (int(user_id), int(company_id)),
            )
            return fetchone(cur) is not None

    def any_user_with_role(self, *, company_ids: Sequence[int], role_name: str) -> bool:
        ids = sorted({int(c) for c in company_ids})
        if not ids:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT u.id
                FROM users u
                JOIN user_roles ur ON ur.user_id = u.id
                JOIN roles r ON r.id = ur.role_id
                JOIN user_company_access uca ON uca.user_id = u.id
                WHERE uca.company_id IN ({in_clause(ids)})
                  AND uca.is_active=1 AND u.is_active=1 AND LOWER(r.name)=%s
                LIMIT 1
                """,
                (*ids, role_name.lower()),
            )
            return fetchone(cur) is not None

    def list_users_with_role(
        self,
        *,
        company_ids: Sequence[int],
        role_name: str,
        exclude_user_ids: Sequence[int] = (),
    ) -> Sequence[ApproverRef]:
        ids = sorted({int(c) for c in company_ids})
        if not ids:
            return []
        excluded = sorted({int(u) for u in exclude_user_ids}) or [0]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT u.id AS user_id, uca.company_id, c.db_name AS company_db_name
                FROM users u
                JOIN user_roles ur ON ur.user_id = u.id
                JOIN roles r ON r.id = ur.role_id
                JOIN user_company_access uca ON uca.user_id = u.id
                JOIN companies c ON c.id = uca.company_id
                WHERE uca.company_id IN ({in_clause(ids)})
                  AND uca.is_active=1 AND u.is_active=1 AND LOWER(r.name)=%s
                  AND u.id NOT IN ({in_clause(excluded)})
                ORDER BY u.id ASC, uca.company_id ASC
                """,
                (*ids, role_name.lower(), *excluded),
            )
            seen: dict[int, ApproverRef] = {}
            for r in fetchall(cur):
                uid = int(r["user_id"])
                if uid not in seen:
                    seen[uid] = ApproverRef(
                        user_id=uid,
                        company_id=int(r["company_id"]),
                        company_db_name=str(r["company_db_name"]),
                    )
            return list(seen.values())


class MySQLTenantUserRepository(TenantUserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[TenantUser]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, first_name, last_name FROM users WHERE id=%s", (int(user_id),))
            r = fetchone(cur)
            if not r:
                return None
            return TenantUser(
                user_id=int(r["id"]),
                first_name=str(r.get("first_name") or ""),
                last_name=str(r.get("last_name") or ""),
            )
