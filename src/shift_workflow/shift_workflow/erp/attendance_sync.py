"""Moves ERP attendance punches after an authorization decision."""

from __future__ import annotations

import logging
from typing import Optional

from ..authorizations.model import ShiftAuthorization
from ..core.enums import AuthorizationStatus, AuthorizationType
from ..shifts.model import ShiftLogEntry, ShiftRecord
from .gateway import ErpGateway

logger = logging.getLogger(__name__)


class AttendanceSync:
    def __init__(self, erp: ErpGateway):
        self._erp = erp

    def apply_resolution(
        self,
        *,
        authorization: ShiftAuthorization,
        shift: ShiftRecord,
        log: Optional[ShiftLogEntry],
    ) -> bool:
        """Best-effort; returns whether the ERP was updated. Never raises."""
        if log is None or not log.odoo_attendance_id:
            return False

        moves_check_in = (
            authorization.auth_type == AuthorizationType.TARDINESS
            and authorization.status == AuthorizationStatus.APPROVED
        ) or (
            authorization.auth_type == AuthorizationType.EARLY_CHECK_IN
            and authorization.status == AuthorizationStatus.REJECTED
        )
        moves_check_out = (
            authorization.auth_type == AuthorizationType.LATE_CHECK_OUT
            and authorization.status == AuthorizationStatus.REJECTED
        )
        if not (moves_check_in or moves_check_out):
            return False

        attendance_id = int(log.odoo_attendance_id)
        try:
            if moves_check_in:
                self._erp.update_attendance_check_in(attendance_id, shift.shift_start)
            else:
                self._erp.update_attendance_check_out(attendance_id, shift.shift_end)

            entries = self._erp.search_work_entries_by_attendance(attendance_id)
            if entries:
                entry_id = int(entries[0]["id"])
                if moves_check_in:
                    self._erp.update_work_entry_date_start(entry_id, shift.shift_start)
                else:
                    self._erp.update_work_entry_date_stop(entry_id, shift.shift_end)
        except Exception as exc:
            logger.warning(
                "ERP attendance sync failed for authorization %s (attendance %s): %s",
                authorization.authorization_id, attendance_id, exc,
            )
            return False

        logger.info(
            "ERP attendance %s moved to the shift %s for authorization %s",
            attendance_id, "start" if moves_check_in else "end", authorization.authorization_id,
        )
        return True
