from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence

import httpx

from ..common.datetime_utils import format_erp_datetime
from ..core.exceptions import ExternalDependencyError
from .gateway import ErpGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ERPConfig:
    url: str
    database: str
    uid: int
    password: str
    timeout_seconds: float = 15.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ERPConfig":
        return cls(
            url=str(raw.get("url") or ""),
            database=str(raw.get("db") or raw.get("database") or ""),
            uid=int(raw.get("uid") or 2),
            password=str(raw.get("password") or ""),
            timeout_seconds=float(raw.get("timeout_seconds") or 15.0),
        )

    @property
    def endpoint(self) -> str:
        base = self.url.strip().rstrip("/")
        if base and "://" not in base:
            base = f"https://{base}"
        return f"{base}/jsonrpc"


class OdooClient(ErpGateway):
    """Odoo `execute_kw` over JSON-RPC.

    Every transport or RPC failure surfaces as ExternalDependencyError.
    """

    def __init__(self, config: ERPConfig, *, http: Optional[httpx.Client] = None):
        self._config = config
        self._http = http or httpx.Client(timeout=config.timeout_seconds)
        self._ids = itertools.count(1)

    def close(self) -> None:
        self._http.close()

    def execute_kw(
        self,
        model: str,
        method: str,
        args: Sequence[Any],
        kwargs: Optional[Dict[str, Any]] = None,
    ) -> Any:
        if not self._config.url:
            raise ExternalDependencyError("ERP URL is not configured")

        body = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": {
                "service": "object",
                "method": "execute_kw",
                "args": [
                    self._config.database,
                    self._config.uid,
                    self._config.password,
                    model,
                    method,
                    list(args),
                    kwargs or {},
                ],
            },
            "id": next(self._ids),
        }

        try:
            response = self._http.post(self._config.endpoint, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            logger.error("ERP %s.%s request failed: %s", model, method, exc)
            raise ExternalDependencyError(f"ERP request failed: {model}.{method}") from exc
        except ValueError as exc:
            raise ExternalDependencyError(f"ERP returned invalid JSON for {model}.{method}") from exc

        error = data.get("error") if isinstance(data, dict) else None
        if error:
            message = (error.get("data") or {}).get("message") or error.get("message") or "Odoo RPC error"
            logger.error("ERP %s.%s returned an error: %s", model, method, message)
            raise ExternalDependencyError(message)
        return data.get("result") if isinstance(data, dict) else None

    def set_planning_slot_state(self, slot_id: int, state: str) -> None:
        self.execute_kw("planning.slot", "write", [[int(slot_id)], {"state": state}])

    def resolve_resource_id(self, user_key: str, erp_company_id: int) -> Optional[int]:
        rows = self.execute_kw(
            "hr.employee",
            "search_read",
            [[["x_website_key", "=", user_key], ["company_id", "=", int(erp_company_id)]]],
            {"fields": ["id", "name", "resource_id"], "limit": 1},
        )
        if not rows:
            return None
        resource = rows[0].get("resource_id")
        # many2one fields come back as [id, display_name] or False
        if isinstance(resource, (list, tuple)) and resource:
            return int(resource[0])
        return None

    def set_planning_slot_resource(self, slot_id: int, resource_id: int) -> None:
        self.execute_kw("planning.slot", "write", [[int(slot_id)], {"resource_id": int(resource_id)}])

    def update_attendance_check_in(self, attendance_id: int, check_in: datetime) -> None:
        self.execute_kw("hr.attendance", "write", [[int(attendance_id)], {"check_in": format_erp_datetime(check_in)}])

    def update_attendance_check_out(self, attendance_id: int, check_out: datetime) -> None:
        self.execute_kw("hr.attendance", "write", [[int(attendance_id)], {"check_out": format_erp_datetime(check_out)}])

    def search_work_entries_by_attendance(self, attendance_id: int) -> Sequence[Dict[str, Any]]:
        rows = self.execute_kw(
            "hr.work.entry",
            "search_read",
            [[["attendance_id", "=", int(attendance_id)]]],
            {"fields": ["id", "date_start", "date_stop"], "limit": 5},
        )
        return list(rows or [])

    def update_work_entry_date_start(self, work_entry_id: int, date_start: datetime) -> None:
        self.execute_kw("hr.work.entry", "write", [[int(work_entry_id)], {"date_start": format_erp_datetime(date_start)}])

    def update_work_entry_date_stop(self, work_entry_id: int, date_stop: datetime) -> None:
        self.execute_kw("hr.work.entry", "write", [[int(work_entry_id)], {"date_stop": format_erp_datetime(date_stop)}])
