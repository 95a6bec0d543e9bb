from __future__ import annotations

from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import LogType
from .model import NewShiftLog, ShiftFields, ShiftLogEntry, ShiftRecord


class ShiftRepository(Protocol):
    def get_by_id(self, shift_id: int) -> Optional[ShiftRecord]:
        raise NotImplementedError

    def get_by_erp_id(self, *, odoo_shift_id: int, branch_id: int) -> Optional[ShiftRecord]:
        raise NotImplementedError

    def insert(self, *, odoo_shift_id: int, branch_id: int, fields: ShiftFields) -> ShiftRecord:
        raise NotImplementedError

    def update_fields(self, *, shift_id: int, fields: ShiftFields) -> ShiftRecord:
        raise NotImplementedError

    def mark_checked_in(self, shift_id: int) -> None:
        raise NotImplementedError

    def mark_checked_out(self, shift_id: int, *, total_worked_hours: float) -> None:
        raise NotImplementedError

    def mark_ended(self, shift_id: int) -> bool:
        """Move an active shift to ended; False when it was not active any more."""

        raise NotImplementedError

    def delete_with_history(self, shift_id: int) -> bool:
        """Remove the shift, its logs and its authorizations in one transaction."""

        raise NotImplementedError

    def list_open_assigned(self) -> Sequence[ShiftRecord]:
        raise NotImplementedError


class ShiftLogRepository(Protocol):
    def append(self, entry: NewShiftLog) -> ShiftLogEntry:
        raise NotImplementedError

    def record_attendance(self, entry: NewShiftLog) -> Tuple[ShiftLogEntry, bool]:
        """Insert an attendance log unless one exists for (ERP attendance id, log type).

        Returns the stored entry and whether it was created by this call.
        """

        raise NotImplementedError

    def get_by_id(self, log_id: int) -> Optional[ShiftLogEntry]:
        raise NotImplementedError

    def find_attendance_log(self, *, odoo_attendance_id: int, log_type: LogType) -> Optional[ShiftLogEntry]:
        raise NotImplementedError
