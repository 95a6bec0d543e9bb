from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from ..authorizations.service import AuthorizationService, ClassificationResult
from ..branches.service import require_branch_for_erp_company
from ..common.datetime_utils import utc_now
from ..common.serialization import to_payload
from ..core.constants import TRACKED_SHIFT_FIELDS
from ..core.enums import CheckInStatus, LogType, ShiftStatus
from ..core.exceptions import NotFoundError
from ..directory.model import Company
from ..directory.repository import DirectoryRepository
from ..notifications.fanout import Publisher, branch_room, safe_publish, user_room
from ..shifts.model import NewShiftLog, ShiftFields, ShiftLogEntry, ShiftRecord
from ..tenants.model import TenantStores
from ..tenants.router import TenantRouter
from .payloads import (
    AttendancePayload,
    ShiftDeletePayload,
    ShiftUpsertPayload,
    parse_attendance_payload,
    parse_shift_delete_payload,
    parse_shift_upsert_payload,
)

logger = logging.getLogger(__name__)


def diff_tracked_fields(previous: Mapping[str, Any], current: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """field -> {from, to} for tracked ERP fields whose string form changed."""
    changes: Dict[str, Dict[str, Any]] = {}
    for name in TRACKED_SHIFT_FIELDS:
        old, new = previous.get(name), current.get(name)
        if str(old) != str(new):
            changes[name] = {"from": old, "to": new}
    return changes


def _state_unapplied(shift: ShiftRecord, payload: AttendancePayload) -> bool:
    """True when a redelivered punch finds the shift still in its pre-punch state."""
    if payload.is_check_out:
        return shift.status != ShiftStatus.ENDED and shift.check_in_status != CheckInStatus.CHECKED_OUT
    return shift.status == ShiftStatus.OPEN


@dataclass(frozen=True)
class AttendanceIngestResult:
    log: ShiftLogEntry
    created: bool
    shift: Optional[ShiftRecord] = None
    classification: Optional[ClassificationResult] = None


@dataclass(frozen=True)
class ShiftUpsertResult:
    shift: ShiftRecord
    created: bool
    changes: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class ShiftDeleteResult:
    odoo_shift_id: int
    branch_id: int
    deleted: bool
    shift_id: Optional[int] = None
    user_id: Optional[int] = None


class IngestionService:
    """Turns ERP webhooks into shift records, shift logs and authorizations."""

    def __init__(
        self,
        tenants: TenantRouter,
        directory: DirectoryRepository,
        authorizations: AuthorizationService,
        publisher: Publisher,
        *,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._tenants = tenants
        self._directory = directory
        self._authorizations = authorizations
        self._publisher = publisher
        self._clock = clock

    def resolve_tenant_for_erp_company(self, erp_company_id: int) -> Company:
        for company in self._directory.list_active_companies():
            try:
                stores = self._tenants.resolve(company.db_name)
                branch = stores.branches.get_by_erp_id(str(erp_company_id))
            except Exception as exc:
                logger.warning("Skipping tenant %s while resolving ERP company %s: %s", company.db_name, erp_company_id, exc)
                continue
            if branch:
                return company
        raise NotFoundError(f"No company found for ERP company_id: {erp_company_id}")

    # ---- attendance ---------------------------------------------------------

    def ingest_attendance_event(self, tenant: str, raw: Any) -> AttendanceIngestResult:
        payload = raw if isinstance(raw, AttendancePayload) else parse_attendance_payload(raw)
        stores = self._tenants.resolve(tenant)
        branch = require_branch_for_erp_company(stores.branches, payload.erp_company_id)

        shift = None
        if payload.planning_slot_id:
            shift = stores.shifts.get_by_erp_id(odoo_shift_id=payload.planning_slot_id, branch_id=branch.branch_id)

        log, created = stores.logs.record_attendance(
            NewShiftLog(
                shift_id=shift.shift_id if shift else None,
                branch_id=branch.branch_id,
                log_type=payload.log_type,
                event_time=payload.event_time,
                odoo_attendance_id=payload.attendance_id,
                worked_hours=payload.worked_hours,
                cumulative_minutes=payload.cumulative_minutes,
                odoo_payload=payload.raw,
            )
        )
        if not created:
            logger.info(
                "Duplicate %s delivery for ERP attendance %s in %s; reusing log %s",
                payload.log_type.value, payload.attendance_id, tenant, log.log_id,
            )

        applied = created or (shift is not None and _state_unapplied(shift, payload))
        if applied and not created:
            logger.warning(
                "Reapplying %s for ERP attendance %s to shift %s in %s",
                payload.log_type.value, payload.attendance_id, shift.shift_id, tenant,
            )

        total_worked_hours = None
        if shift and applied:
            if payload.is_check_out:
                total_worked_hours = (payload.cumulative_minutes or 0) / 60.0
                stores.shifts.mark_checked_out(shift.shift_id, total_worked_hours=total_worked_hours)
            else:
                stores.shifts.mark_checked_in(shift.shift_id)
                if shift.user_id is not None:
                    self._reassign_branches(stores, user_id=shift.user_id, branch_id=branch.branch_id)

        classification = None
        if shift:
            if payload.is_check_out:
                classification = self._authorizations.classify_check_out(stores, shift=shift, log=log)
            else:
                classification = self._authorizations.classify_check_in(stores, shift=shift, log=log)

        refreshed = stores.shifts.get_by_id(shift.shift_id) if shift else None
        if applied:
            room = branch_room(branch.branch_id)
            log_event = dict(to_payload(log), total_worked_hours=total_worked_hours)
            safe_publish(self._publisher, tenant, room, "shift:log-new", log_event)
            if refreshed:
                safe_publish(self._publisher, tenant, room, "shift:updated", refreshed)

        return AttendanceIngestResult(log=log, created=created, shift=refreshed or shift, classification=classification)

    def _reassign_branches(self, stores: TenantStores, *, user_id: int, branch_id: int) -> None:
        branch_ids = stores.branches.reassign_user_to_branch(user_id=user_id, branch_id=branch_id)
        safe_publish(
            self._publisher,
            stores.name,
            user_room(user_id),
            "user:branch-assignments-updated",
            {"branchIds": branch_ids},
        )

    # ---- shifts -------------------------------------------------------------

    def ingest_shift_event(self, tenant: str, raw: Any) -> ShiftUpsertResult:
        payload = raw if isinstance(raw, ShiftUpsertPayload) else parse_shift_upsert_payload(raw)
        stores = self._tenants.resolve(tenant)
        branch = require_branch_for_erp_company(stores.branches, payload.erp_company_id)

        user_id = None
        if payload.website_user_id is not None and stores.users.get_by_id(payload.website_user_id):
            user_id = payload.website_user_id

        fields = ShiftFields(
            user_id=user_id,
            employee_name=payload.employee_name,
            employee_avatar_url=payload.employee_avatar_url,
            duty_type=payload.role_name,
            duty_color=payload.role_color,
            shift_start=payload.shift_start,
            shift_end=payload.shift_end,
            allocated_hours=payload.allocated_hours,
            odoo_payload=payload.raw,
        )
        room = branch_room(branch.branch_id)

        existing = stores.shifts.get_by_erp_id(odoo_shift_id=payload.odoo_shift_id, branch_id=branch.branch_id)
        if not existing:
            shift = stores.shifts.insert(odoo_shift_id=payload.odoo_shift_id, branch_id=branch.branch_id, fields=fields)
            logger.info("Shift %s created from planning slot %s in %s", shift.shift_id, payload.odoo_shift_id, tenant)
            safe_publish(self._publisher, tenant, room, "shift:new", shift)
            return ShiftUpsertResult(shift=shift, created=True)

        changes = diff_tracked_fields(existing.odoo_payload or {}, payload.raw)
        shift = stores.shifts.update_fields(shift_id=existing.shift_id, fields=fields)
        if changes:
            log = stores.logs.append(
                NewShiftLog(
                    shift_id=shift.shift_id,
                    branch_id=branch.branch_id,
                    log_type=LogType.SHIFT_UPDATED,
                    event_time=self._clock(),
                    changes=changes,
                    odoo_payload=payload.raw,
                )
            )
            safe_publish(self._publisher, tenant, room, "shift:log-new", log)
        safe_publish(self._publisher, tenant, room, "shift:updated", shift)
        return ShiftUpsertResult(shift=shift, created=False, changes=changes)

    def ingest_shift_delete_event(self, tenant: str, raw: Any) -> ShiftDeleteResult:
        payload = raw if isinstance(raw, ShiftDeletePayload) else parse_shift_delete_payload(raw)
        stores = self._tenants.resolve(tenant)
        branch = require_branch_for_erp_company(stores.branches, payload.erp_company_id)

        existing = stores.shifts.get_by_erp_id(odoo_shift_id=payload.odoo_shift_id, branch_id=branch.branch_id)
        if not existing:
            logger.info("Delete for unknown planning slot %s in %s ignored", payload.odoo_shift_id, tenant)
            return ShiftDeleteResult(odoo_shift_id=payload.odoo_shift_id, branch_id=branch.branch_id, deleted=False)

        stores.shifts.delete_with_history(existing.shift_id)
        result = ShiftDeleteResult(
            odoo_shift_id=existing.odoo_shift_id,
            branch_id=existing.branch_id,
            deleted=True,
            shift_id=existing.shift_id,
            user_id=existing.user_id,
        )
        safe_publish(
            self._publisher,
            tenant,
            branch_room(existing.branch_id),
            "shift:deleted",
            {
                "id": existing.shift_id,
                "odoo_shift_id": existing.odoo_shift_id,
                "branch_id": existing.branch_id,
                "user_id": existing.user_id,
            },
        )
        return result
