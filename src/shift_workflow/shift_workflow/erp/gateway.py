from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Sequence


class ErpGateway(Protocol):
    """The ERP calls the workflow depends on."""

    def set_planning_slot_state(self, slot_id: int, state: str) -> None:
        raise NotImplementedError

    def resolve_resource_id(self, user_key: str, erp_company_id: int) -> Optional[int]:
        raise NotImplementedError

    def set_planning_slot_resource(self, slot_id: int, resource_id: int) -> None:
        raise NotImplementedError

    def update_attendance_check_in(self, attendance_id: int, check_in: datetime) -> None:
        raise NotImplementedError

    def update_attendance_check_out(self, attendance_id: int, check_out: datetime) -> None:
        raise NotImplementedError

    def search_work_entries_by_attendance(self, attendance_id: int) -> Sequence[Dict[str, Any]]:
        raise NotImplementedError

    def update_work_entry_date_start(self, work_entry_id: int, date_start: datetime) -> None:
        raise NotImplementedError

    def update_work_entry_date_stop(self, work_entry_id: int, date_stop: datetime) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError
