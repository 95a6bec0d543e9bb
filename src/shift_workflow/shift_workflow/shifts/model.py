from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import CheckInStatus, LogType, ShiftStatus


@dataclass(frozen=True)
class ShiftRecord:
    """A scheduled work assignment mirrored from an ERP planning slot."""

    shift_id: int
    odoo_shift_id: int
    branch_id: int
    user_id: Optional[int]
    employee_name: str
    shift_start: datetime
    shift_end: datetime
    allocated_hours: float
    status: ShiftStatus = ShiftStatus.OPEN
    check_in_status: Optional[CheckInStatus] = None
    pending_approvals: int = 0
    total_worked_hours: Optional[float] = None
    employee_avatar_url: Optional[str] = None
    duty_type: Optional[str] = None
    duty_color: Optional[int] = None
    odoo_payload: Dict[str, Any] = field(default_factory=dict)
    # Joined from branches on read.
    branch_name: Optional[str] = None
    branch_odoo_id: Optional[str] = None


@dataclass(frozen=True)
class ShiftFields:
    """Mutable attributes of a shift as delivered by the ERP."""

    user_id: Optional[int]
    employee_name: str
    employee_avatar_url: Optional[str]
    duty_type: Optional[str]
    duty_color: Optional[int]
    shift_start: datetime
    shift_end: datetime
    allocated_hours: float
    odoo_payload: Dict[str, Any]


@dataclass(frozen=True)
class ShiftLogEntry:
    """Append-only fact about a shift (attendance punch, edit, resolution)."""

    log_id: int
    shift_id: Optional[int]
    branch_id: int
    log_type: LogType
    event_time: datetime
    odoo_attendance_id: Optional[int] = None
    worked_hours: Optional[float] = None
    cumulative_minutes: Optional[int] = None
    changes: Optional[Dict[str, Any]] = None
    odoo_payload: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class NewShiftLog:
    shift_id: Optional[int]
    branch_id: int
    log_type: LogType
    event_time: datetime
    odoo_attendance_id: Optional[int] = None
    worked_hours: Optional[float] = None
    cumulative_minutes: Optional[int] = None
    changes: Optional[Dict[str, Any]] = None
    odoo_payload: Optional[Dict[str, Any]] = None
