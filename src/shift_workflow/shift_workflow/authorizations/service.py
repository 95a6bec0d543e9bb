from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence

from ..common.datetime_utils import format_diff_minutes, utc_now
from ..common.validators import require_non_empty
from ..core.constants import SCHEDULE_LINK_URL
from ..core.enums import (
    AuthorizationStatus,
    AuthorizationType,
    LogType,
    NotificationSeverity,
    OvertimeType,
    ShiftStatus,
)
from ..core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..erp.attendance_sync import AttendanceSync
from ..jobs.model import DeferredJob, ScheduleResult
from ..notifications.fanout import Publisher, branch_room, safe_publish
from ..notifications.service import NotificationService
from ..shifts.model import NewShiftLog, ShiftLogEntry, ShiftRecord
from ..tenants.model import TenantStores
from ..tenants.router import TenantRouter
from .early_checkin import EarlyCheckInReviewPayload, EarlyCheckInReviewQueue
from .factory import AuthorizationRuleFactory
from .model import NewAuthorization, ShiftAuthorization
from .rules.base import RuleDecision

logger = logging.getLogger(__name__)

# Employee-facing prompt for deviations that need a reason: (title, message template).
_REASON_REQUIRED_NOTICES = {
    AuthorizationType.TARDINESS: (
        "Tardiness Authorization Required",
        "You checked in {duration} late for your shift. "
        "Please submit a reason in the Authorization Requests tab.",
    ),
    AuthorizationType.LATE_CHECK_OUT: (
        "Late Check Out - Reason Required",
        "You checked out {duration} after your scheduled shift end. "
        "Please submit a reason in the Authorization Requests tab.",
    ),
}


@dataclass(frozen=True)
class ClassificationResult:
    decision: RuleDecision
    authorization: Optional[ShiftAuthorization] = None
    scheduled: Optional[ScheduleResult] = None


@dataclass(frozen=True)
class ShiftEndResult:
    shift: ShiftRecord
    log: ShiftLogEntry
    authorization: Optional[ShiftAuthorization] = None


def parse_overtime_type(value: Any) -> OvertimeType:
    try:
        return OvertimeType(str(value or "").strip())
    except ValueError:
        raise ValidationError("Overtime type is required: normal_overtime or overtime_premium")


class AuthorizationService:
    """Schedule-deviation detection and the approve / reject / reason lifecycle."""

    def __init__(
        self,
        tenants: TenantRouter,
        notifier: NotificationService,
        publisher: Publisher,
        *,
        review_queue: EarlyCheckInReviewQueue,
        rule_factory: AuthorizationRuleFactory | None = None,
        attendance_sync: AttendanceSync | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._tenants = tenants
        self._notifier = notifier
        self._publisher = publisher
        self._review_queue = review_queue
        self._factory = rule_factory or AuthorizationRuleFactory()
        self._attendance_sync = attendance_sync
        self._clock = clock

    # ---- classification -------------------------------------------------

    def classify_check_in(self, stores: TenantStores, *, shift: ShiftRecord, log: ShiftLogEntry) -> ClassificationResult:
        rule = self._factory.for_check_in(shift=shift, event_time=log.event_time)
        decision = rule.decide(shift=shift, event_time=log.event_time)

        if decision.is_deferred:
            assert decision.defer_until is not None
            scheduled = self._review_queue.schedule(
                EarlyCheckInReviewPayload(
                    tenant=stores.name,
                    branch_id=shift.branch_id,
                    shift_id=shift.shift_id,
                    shift_log_id=log.log_id,
                    user_id=shift.user_id,
                    check_in_event_time=log.event_time,
                ),
                run_at=decision.defer_until,
            )
            return ClassificationResult(decision=decision, scheduled=scheduled)

        return self._apply(stores, shift=shift, log=log, decision=decision)

    def classify_check_out(self, stores: TenantStores, *, shift: ShiftRecord, log: ShiftLogEntry) -> ClassificationResult:
        rule = self._factory.for_check_out(shift=shift, event_time=log.event_time)
        decision = rule.decide(shift=shift, event_time=log.event_time)
        return self._apply(stores, shift=shift, log=log, decision=decision)

    def _apply(
        self,
        stores: TenantStores,
        *,
        shift: ShiftRecord,
        log: ShiftLogEntry,
        decision: RuleDecision,
        user_id: Optional[int] = None,
    ) -> ClassificationResult:
        if not decision.creates_authorization:
            return ClassificationResult(decision=decision)
        assert decision.auth_type is not None and decision.status is not None

        authorization = stores.authorizations.create(
            NewAuthorization(
                shift_id=shift.shift_id,
                shift_log_id=log.log_id,
                branch_id=shift.branch_id,
                user_id=user_id if user_id is not None else shift.user_id,
                auth_type=decision.auth_type,
                diff_minutes=decision.diff_minutes,
                needs_employee_reason=decision.needs_employee_reason,
                status=decision.status,
            )
        )
        if authorization is None:
            logger.info(
                "Authorization %s already recorded for log %s in %s",
                decision.auth_type.value, log.log_id, stores.name,
            )
            return ClassificationResult(decision=decision)

        notice = _REASON_REQUIRED_NOTICES.get(authorization.auth_type)
        if notice and authorization.user_id is not None:
            title, template = notice
            self._notifier.notify(
                stores,
                user_id=authorization.user_id,
                title=title,
                message=template.format(duration=format_diff_minutes(authorization.diff_minutes)),
                severity=NotificationSeverity.WARNING,
                link_url=SCHEDULE_LINK_URL,
            )

        safe_publish(self._publisher, stores.name, branch_room(shift.branch_id), "shift:authorization-new", authorization)
        return ClassificationResult(decision=decision, authorization=authorization)

    # ---- deferred early check-in review -------------------------------------

    def handle_review_job(self, job: DeferredJob) -> Optional[ShiftAuthorization]:
        """Queue handler; safe to run more than once for the same job."""
        return self.review_early_check_in(EarlyCheckInReviewPayload.from_dict(job.payload))

    def review_early_check_in(self, payload: EarlyCheckInReviewPayload) -> Optional[ShiftAuthorization]:
        stores = self._tenants.resolve(payload.tenant)

        shift = stores.shifts.get_by_id(payload.shift_id)
        if not shift or shift.branch_id != payload.branch_id:
            logger.info("Early check-in review skipped: shift %s no longer exists in %s", payload.shift_id, payload.tenant)
            return None

        log = stores.logs.get_by_id(payload.shift_log_id)
        if not log or log.log_type != LogType.CHECK_IN:
            logger.info("Early check-in review skipped: check-in log %s not found", payload.shift_log_id)
            return None

        if stores.authorizations.find_for_log(shift_log_id=log.log_id, auth_type=AuthorizationType.EARLY_CHECK_IN):
            logger.info("Early check-in review skipped: log %s already has an authorization", log.log_id)
            return None

        event_time = payload.check_in_event_time or log.event_time
        decision = self._factory.early_check_in_rule().review(shift=shift, event_time=event_time)
        if not decision.creates_authorization:
            logger.info(
                "Early check-in review skipped: shift %s starts %s, check-in at %s is no longer early",
                shift.shift_id, shift.shift_start.isoformat(), event_time.isoformat(),
            )
            return None

        result = self._apply(stores, shift=shift, log=log, decision=decision, user_id=payload.user_id)
        if result.authorization:
            logger.info(
                "Early check-in authorization %s created for shift %s (%s min)",
                result.authorization.authorization_id, shift.shift_id, result.authorization.diff_minutes,
            )
        return result.authorization

    # ---- shift end / overtime ---------------------------------------------------

    def end_shift(self, tenant: str, *, shift_id: int, actor_user_id: int) -> ShiftEndResult:
        """Close an active shift; worked time beyond the allocation becomes a pending overtime authorization."""
        stores = self._tenants.resolve(tenant)
        shift = stores.shifts.get_by_id(int(shift_id))
        if not shift:
            raise NotFoundError("Shift not found")
        if shift.status == ShiftStatus.ENDED:
            raise ConflictError("Shift is already ended")
        if shift.status == ShiftStatus.OPEN:
            raise ConflictError("Cannot end a shift that has not started")

        if not stores.shifts.mark_ended(shift.shift_id):
            raise ConflictError("Shift is no longer active")

        log = stores.logs.append(
            NewShiftLog(
                shift_id=shift.shift_id,
                branch_id=shift.branch_id,
                log_type=LogType.SHIFT_ENDED,
                event_time=self._clock(),
                changes={"ended_by": int(actor_user_id)},
            )
        )
        logger.info("Shift %s ended by %s in %s", shift.shift_id, actor_user_id, stores.name)

        rule = self._factory.for_shift_end(shift=shift)
        result = self._apply(stores, shift=shift, log=log, decision=rule.decide(shift=shift, event_time=log.event_time))

        ended = stores.shifts.get_by_id(shift.shift_id) or shift
        room = branch_room(shift.branch_id)
        safe_publish(self._publisher, stores.name, room, "shift:updated", ended)
        safe_publish(self._publisher, stores.name, room, "shift:log-new", log)
        return ShiftEndResult(shift=ended, log=log, authorization=result.authorization)

    # ---- employee / approver actions -------------------------------------------

    def _load(self, stores: TenantStores, authorization_id: int) -> ShiftAuthorization:
        authorization = stores.authorizations.get_by_id(int(authorization_id))
        if not authorization:
            raise NotFoundError("Authorization not found")
        return authorization

    def submit_employee_reason(
        self, tenant: str, *, authorization_id: int, actor_user_id: int, reason: Optional[str]
    ) -> ShiftAuthorization:
        text = require_non_empty(reason, "Reason")
        stores = self._tenants.resolve(tenant)
        authorization = self._load(stores, authorization_id)

        if authorization.user_id != int(actor_user_id):
            raise ForbiddenError("Not your authorization")
        if not authorization.needs_employee_reason:
            raise ValidationError("This authorization does not require an employee reason")
        if not authorization.is_pending:
            raise ConflictError("Authorization is already resolved")

        updated = stores.authorizations.set_employee_reason(authorization_id=authorization.authorization_id, reason=text)
        if updated is None:
            raise ConflictError("Authorization is already resolved")

        safe_publish(self._publisher, stores.name, branch_room(updated.branch_id), "shift:authorization-updated", updated)
        return updated

    def _check_resolvable(self, authorization: ShiftAuthorization) -> None:
        if not authorization.is_pending:
            raise ConflictError("Authorization is already resolved")
        if authorization.needs_employee_reason and not authorization.employee_reason:
            raise ValidationError("Employee has not submitted a reason yet")

    def approve(
        self,
        tenant: str,
        *,
        authorization_id: int,
        actor_user_id: int,
        overtime_type: Any = None,
    ) -> ShiftAuthorization:
        stores = self._tenants.resolve(tenant)
        authorization = self._load(stores, authorization_id)
        self._check_resolvable(authorization)

        parsed_overtime = None
        if authorization.auth_type == AuthorizationType.OVERTIME:
            parsed_overtime = parse_overtime_type(overtime_type)

        resolved = stores.authorizations.resolve(
            authorization_id=authorization.authorization_id,
            status=AuthorizationStatus.APPROVED,
            resolved_by=int(actor_user_id),
            resolved_at=self._clock(),
            overtime_type=parsed_overtime,
        )
        if resolved is None:
            raise ConflictError("Authorization is already resolved")

        self._after_resolution(stores, resolved, actor_user_id=int(actor_user_id))
        return resolved

    def reject(self, tenant: str, *, authorization_id: int, actor_user_id: int, reason: Optional[str]) -> ShiftAuthorization:
        text = require_non_empty(reason, "Rejection reason")
        stores = self._tenants.resolve(tenant)
        authorization = self._load(stores, authorization_id)
        self._check_resolvable(authorization)

        resolved = stores.authorizations.resolve(
            authorization_id=authorization.authorization_id,
            status=AuthorizationStatus.REJECTED,
            resolved_by=int(actor_user_id),
            resolved_at=self._clock(),
            rejection_reason=text,
        )
        if resolved is None:
            raise ConflictError("Authorization is already resolved")

        self._after_resolution(stores, resolved, actor_user_id=int(actor_user_id))
        return resolved

    def _resolver_name(self, stores: TenantStores, user_id: int) -> str:
        user = stores.users.get_by_id(user_id)
        return (user.full_name if user else "") or str(user_id)

    def _after_resolution(self, stores: TenantStores, authorization: ShiftAuthorization, *, actor_user_id: int) -> None:
        approved = authorization.status == AuthorizationStatus.APPROVED
        changes: Dict[str, Any] = {
            "authorization_id": authorization.authorization_id,
            "auth_type": authorization.auth_type.value,
            "resolution": authorization.status.value,
            "resolved_by_name": self._resolver_name(stores, actor_user_id),
            "diff_minutes": authorization.diff_minutes,
        }
        if approved and authorization.overtime_type:
            changes["overtime_type"] = authorization.overtime_type.value
        if not approved:
            changes["rejection_reason"] = authorization.rejection_reason

        log = stores.logs.append(
            NewShiftLog(
                shift_id=authorization.shift_id,
                branch_id=authorization.branch_id,
                log_type=LogType.AUTHORIZATION_RESOLVED,
                event_time=self._clock(),
                changes=changes,
            )
        )

        if authorization.user_id is not None:
            label = authorization.auth_type.label
            if approved:
                title = f"{label} Approved"
                message = f"Your {label.lower()} authorization has been approved."
                severity = NotificationSeverity.SUCCESS
            else:
                title = f"{label} Rejected"
                message = f"Your {label.lower()} authorization has been rejected: {authorization.rejection_reason}"
                severity = NotificationSeverity.DANGER
            self._notifier.notify(
                stores,
                user_id=authorization.user_id,
                title=title,
                message=message,
                severity=severity,
                link_url=SCHEDULE_LINK_URL,
            )

        room = branch_room(authorization.branch_id)
        safe_publish(self._publisher, stores.name, room, "shift:authorization-updated", authorization)
        safe_publish(self._publisher, stores.name, room, "shift:log-new", log)

        shift = stores.shifts.get_by_id(authorization.shift_id)
        if shift:
            safe_publish(self._publisher, stores.name, room, "shift:updated", shift)
            if self._attendance_sync is not None:
                origin = stores.logs.get_by_id(authorization.shift_log_id)
                self._attendance_sync.apply_resolution(authorization=authorization, shift=shift, log=origin)

    def list_authorizations(
        self,
        tenant: str,
        *,
        branch_ids: Sequence[int] = (),
        status: Optional[str] = None,
    ) -> Sequence[ShiftAuthorization]:
        parsed_status = None
        if status:
            try:
                parsed_status = AuthorizationStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown authorization status: {status}")
        stores = self._tenants.resolve(tenant)
        return stores.authorizations.list(branch_ids=[int(b) for b in branch_ids], status=parsed_status)
