from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..common.datetime_utils import utc_now
from ..common.serialization import to_payload
from ..common.validators import optional_text, parse_positive_int, require_non_empty
from ..core.enums import ApprovalStage, ApproverMode, ExchangeStatus, NotificationSeverity, ShiftStatus
from ..core.exceptions import (
    ConflictError,
    DomainError,
    ExternalDependencyError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from ..directory.model import DirectoryUser, display_name
from ..directory.repository import DirectoryRepository
from ..erp.gateway import ErpGateway
from ..notifications.service import NotificationService
from ..shifts.model import ShiftRecord
from ..tenants.router import TenantRouter
from .approvers import ApproverPolicy
from .context import TenantContext, TenantContextCache, run_pair
from .eligibility import DesignationIndex, ExchangeOptions, ShiftOption, is_cross_company_match
from .model import ExchangeSide, ExchangeUpdate, NewExchangeRequest, ShiftExchangeRequest
from .repository import ShiftExchangeRepository

logger = logging.getLogger(__name__)

ACCEPT = "accept"
REJECT = "reject"


def _exchange_link(request_id: int) -> str:
    return f"/account/notifications?shiftExchangeId={request_id}"


def _ensure_can_continue(*users: DirectoryUser) -> None:
    if any(not u.is_active for u in users):
        raise ConflictError("Inactive employees cannot continue shift exchanges")
    if any(u.is_suspended for u in users):
        raise ConflictError("Suspended employees cannot continue shift exchanges")


class ShiftExchangeService:
    """Employee-to-employee shift swaps across tenants, approved by HR or Management.

    Stages only move forward: awaiting_employee -> awaiting_hr -> resolved.
    Every transition is a compare-and-set on the current stage, so two actors
    racing on the same request cannot both win.
    """

    def __init__(
        self,
        directory: DirectoryRepository,
        tenants: TenantRouter,
        exchanges: ShiftExchangeRepository,
        erp: ErpGateway,
        notifier: NotificationService,
        *,
        approvers: ApproverPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._directory = directory
        self._tenants = tenants
        self._exchanges = exchanges
        self._erp = erp
        self._notifier = notifier
        self._approvers = approvers or ApproverPolicy(directory)
        self._clock = clock

    def _contexts(self) -> TenantContextCache:
        return TenantContextCache(self._directory, self._tenants)

    def _load(self, request_id: int) -> ShiftExchangeRequest:
        request = self._exchanges.get_by_id(int(request_id))
        if not request:
            raise NotFoundError("Shift exchange request not found")
        return request

    def _notify(
        self,
        company_db_name: str,
        *,
        user_id: int,
        title: str,
        message: str,
        severity: NotificationSeverity,
        link_url: str,
    ) -> None:
        try:
            stores = self._tenants.resolve(company_db_name)
        except Exception as exc:
            logger.warning("Cannot notify user %s: tenant %s unavailable: %s", user_id, company_db_name, exc)
            return
        self._notifier.notify(stores, user_id=user_id, title=title, message=message, severity=severity, link_url=link_url)

    # ---- eligibility -------------------------------------------------------------

    def list_eligible_targets(self, *, requester_user_id: int, company_id: int, from_shift_id: int) -> ExchangeOptions:
        requester_user_id = int(requester_user_id)
        contexts = self._contexts()
        home = contexts.get(company_id)

        from_shift = home.stores.shifts.get_by_id(int(from_shift_id))
        if not from_shift:
            raise NotFoundError("Source shift not found")
        if from_shift.status != ShiftStatus.OPEN:
            raise ConflictError("Source shift must be open")
        if from_shift.user_id != requester_user_id:
            raise ForbiddenError("Only the owner of this shift can request an exchange")

        requester = self._directory.load_users([requester_user_id]).get(requester_user_id)
        if not requester or not requester.is_active:
            raise ConflictError("Requester is inactive")
        if requester.is_suspended:
            raise ConflictError("Suspended users cannot exchange shifts")

        if self._exchanges.has_pending_for_shift(company_id=home.company.company_id, shift_id=from_shift.shift_id):
            raise ConflictError("This shift already has a pending exchange request")

        source = ShiftOption.from_shift(home.company, from_shift)

        candidates: List[ShiftOption] = []
        for company in self._directory.list_accessible_companies(requester_user_id):
            context = contexts.get(company.company_id)
            for shift in context.stores.shifts.list_open_assigned():
                if shift.user_id is None:
                    continue
                if company.company_id == home.company.company_id and shift.shift_id == from_shift.shift_id:
                    continue
                candidates.append(ShiftOption.from_shift(context.company, shift))

        user_ids = sorted({requester_user_id, *(c.user_id for c in candidates)})
        users = self._directory.load_users(user_ids)
        designations = self._load_designations(
            contexts,
            user_ids=user_ids,
            company_ids=[home.company.company_id, *(c.company_id for c in candidates)],
        )

        options: List[ShiftOption] = []
        for option in candidates:
            target = users.get(option.user_id)
            if not target or not target.is_active or target.is_suspended:
                continue
            if target.user_id == requester_user_id:
                continue
            if option.company_id != home.company.company_id and not is_cross_company_match(
                designations, requester_user_id=requester_user_id, source=source, target=option
            ):
                continue
            if self._exchanges.has_pending_for_shift(company_id=option.company_id, shift_id=option.shift_id):
                continue
            options.append(option)

        return ExchangeOptions(from_shift=source, options=options)

    def _load_designations(
        self,
        contexts: TenantContextCache,
        *,
        user_ids: Sequence[int],
        company_ids: Sequence[int],
    ) -> DesignationIndex:
        access, branches = self._directory.load_designations(user_ids)
        index = DesignationIndex(access, branches)
        # Branch assignments kept in each tenant count as designations too.
        for company_id in sorted(set(company_ids)):
            try:
                assignments = contexts.get(company_id).stores.branches.list_assignments(user_ids)
            except Exception as exc:
                logger.warning("Failed to load branch assignments of company %s for exchange eligibility: %s", company_id, exc)
                continue
            for assignment in assignments:
                index.add_branch(assignment.user_id, company_id, assignment.branch_id)
        return index

    # ---- transitions ---------------------------------------------------------------

    def propose_exchange(
        self,
        *,
        requester_user_id: int,
        company_id: int,
        from_shift_id: int,
        to_shift_id: int,
        to_company_id: int,
    ) -> Dict[str, Any]:
        # Eligibility is recomputed here, never trusted from an earlier listing.
        eligible = self.list_eligible_targets(
            requester_user_id=requester_user_id, company_id=company_id, from_shift_id=from_shift_id
        )
        chosen = eligible.find(company_id=to_company_id, shift_id=to_shift_id)
        if not chosen:
            raise ValidationError("Selected target shift is not eligible for exchange")

        source = eligible.from_shift
        request = self._exchanges.insert(
            NewExchangeRequest(
                requester=ExchangeSide(
                    user_id=int(requester_user_id),
                    company_id=source.company_id,
                    company_db_name=source.company_db_name,
                    branch_id=source.branch_id,
                    shift_id=source.shift_id,
                    odoo_shift_id=source.odoo_shift_id,
                ),
                accepting=ExchangeSide(
                    user_id=chosen.user_id,
                    company_id=chosen.company_id,
                    company_db_name=chosen.company_db_name,
                    branch_id=chosen.branch_id,
                    shift_id=chosen.shift_id,
                    odoo_shift_id=chosen.odoo_shift_id,
                ),
                requested_by=int(requester_user_id),
                created_at=self._clock(),
            )
        )
        logger.info(
            "Shift exchange %s proposed: shift %s/%s <-> %s/%s",
            request.request_id, source.company_id, source.shift_id, chosen.company_id, chosen.shift_id,
        )

        requester = self._directory.load_users([int(requester_user_id)]).get(int(requester_user_id))
        self._notify(
            chosen.company_db_name,
            user_id=chosen.user_id,
            title="Shift Exchange Request",
            message=f"{display_name(requester)} requested to exchange shifts with you.",
            severity=NotificationSeverity.WARNING,
            link_url=_exchange_link(request.request_id),
        )
        return self._to_detail(request, actor_user_id=int(requester_user_id), actor_roles=())

    def respond_to_exchange(
        self,
        *,
        request_id: int,
        actor_user_id: int,
        action: str,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        action = str(action or "").strip().lower()
        if action not in (ACCEPT, REJECT):
            raise ValidationError("Action must be accept or reject")

        request = self._load(request_id)
        if request.accepting.user_id != int(actor_user_id):
            raise ForbiddenError("Only the accepting employee can respond")
        if not request.is_at(ApprovalStage.AWAITING_EMPLOYEE):
            raise ConflictError("This shift exchange request can no longer be responded to")

        users = self._directory.load_users([request.requester.user_id, request.accepting.user_id])
        requester = users.get(request.requester.user_id)
        accepting = users.get(request.accepting.user_id)
        if not requester or not accepting:
            raise NotFoundError("Employee account not found")
        _ensure_can_continue(requester, accepting)

        now = self._clock()
        if action == REJECT:
            reason_text = optional_text(reason)
            updated = self._exchanges.transition(
                request_id=request.request_id,
                expected_stage=ApprovalStage.AWAITING_EMPLOYEE,
                update=ExchangeUpdate(
                    status=ExchangeStatus.REJECTED,
                    approval_stage=ApprovalStage.RESOLVED,
                    updated_at=now,
                    employee_decision_at=now,
                    employee_rejection_reason=reason_text,
                ),
            )
            if updated is None:
                raise ConflictError("This shift exchange request can no longer be responded to")

            suffix = f" Reason: {reason_text}" if reason_text else ""
            self._notify(
                request.requester.company_db_name,
                user_id=request.requester.user_id,
                title="Shift Exchange Rejected",
                message=f"{accepting.full_name} rejected your shift exchange request.{suffix}",
                severity=NotificationSeverity.DANGER,
                link_url=_exchange_link(request.request_id),
            )
        else:
            updated = self._exchanges.transition(
                request_id=request.request_id,
                expected_stage=ApprovalStage.AWAITING_EMPLOYEE,
                update=ExchangeUpdate(
                    status=ExchangeStatus.PENDING,
                    approval_stage=ApprovalStage.AWAITING_HR,
                    updated_at=now,
                    employee_decision_at=now,
                ),
            )
            if updated is None:
                raise ConflictError("This shift exchange request can no longer be responded to")

            mode, approvers = self._approvers.list_approvers(
                request.company_ids,
                exclude_user_ids=[request.requester.user_id, request.accepting.user_id],
            )
            audience = "HR" if mode == ApproverMode.HR else "Management"
            for approver in approvers:
                self._notify(
                    approver.company_db_name,
                    user_id=approver.user_id,
                    title="Shift Exchange Pending Approval",
                    message=f"{requester.full_name} and {accepting.full_name} shift exchange is pending {audience} approval.",
                    severity=NotificationSeverity.WARNING,
                    link_url=f"/authorization-requests?shiftExchangeId={request.request_id}",
                )

        logger.info("Shift exchange %s %sed by employee %s", request.request_id, action, actor_user_id)
        return self._to_detail(updated, actor_user_id=int(actor_user_id), actor_roles=())

    def approve_exchange(self, *, request_id: int, actor_user_id: int, actor_roles: Sequence[str]) -> Dict[str, Any]:
        request = self._load(request_id)
        if not request.is_at(ApprovalStage.AWAITING_HR):
            raise ConflictError("This shift exchange request is not awaiting HR approval")

        self._approvers.ensure_access(
            actor_user_id=int(actor_user_id), actor_roles=actor_roles, company_ids=request.company_ids
        )

        users = self._directory.load_users([request.requester.user_id, request.accepting.user_id, int(actor_user_id)])
        requester = users.get(request.requester.user_id)
        accepting = users.get(request.accepting.user_id)
        if not requester or not accepting or int(actor_user_id) not in users:
            raise NotFoundError("Employee account not found")
        _ensure_can_continue(requester, accepting)
        if not requester.user_key or not accepting.user_key:
            raise ConflictError("One of the employees has no website key for ERP resource mapping")

        contexts = self._contexts()
        requester_ctx, accepting_ctx = contexts.get_pair(request.requester.company_id, request.accepting.company_id)
        requester_shift, accepting_shift = run_pair(
            lambda: requester_ctx.stores.shifts.get_by_id(request.requester.shift_id),
            lambda: accepting_ctx.stores.shifts.get_by_id(request.accepting.shift_id),
        )
        if not requester_shift or not accepting_shift:
            raise ConflictError("One of the shifts no longer exists")
        if requester_shift.status != ShiftStatus.OPEN or accepting_shift.status != ShiftStatus.OPEN:
            raise ConflictError("Both shifts must still be open for final approval")

        requester_erp_company = parse_positive_int(requester_shift.branch_odoo_id, "Requester branch ERP company ID")
        accepting_erp_company = parse_positive_int(accepting_shift.branch_odoo_id, "Accepting branch ERP company ID")

        try:
            self._commit_swap(
                request,
                requester_key=str(requester.user_key),
                accepting_key=str(accepting.user_key),
                requester_erp_company=requester_erp_company,
                accepting_erp_company=accepting_erp_company,
            )
        except DomainError:
            logger.error("Shift exchange %s ERP commit aborted; request stays awaiting approval", request.request_id)
            raise
        except Exception as exc:
            logger.exception("Shift exchange %s ERP commit failed", request.request_id)
            raise ExternalDependencyError(
                "Failed to apply shift exchange in ERP; request remains pending HR approval"
            ) from exc

        now = self._clock()
        updated = self._exchanges.transition(
            request_id=request.request_id,
            expected_stage=ApprovalStage.AWAITING_HR,
            update=ExchangeUpdate(
                status=ExchangeStatus.APPROVED,
                approval_stage=ApprovalStage.RESOLVED,
                updated_at=now,
                hr_decision_by=int(actor_user_id),
                hr_decision_at=now,
            ),
        )
        if updated is None:
            raise ConflictError("This shift exchange request is not awaiting HR approval")
        logger.info("Shift exchange %s approved by %s", request.request_id, actor_user_id)

        for side in (request.requester, request.accepting):
            self._notify(
                side.company_db_name,
                user_id=side.user_id,
                title="Shift Exchange Approved",
                message="Your shift exchange request has been approved.",
                severity=NotificationSeverity.SUCCESS,
                link_url=_exchange_link(request.request_id),
            )
        return self._to_detail(updated, actor_user_id=int(actor_user_id), actor_roles=actor_roles, contexts=contexts)

    def _commit_swap(
        self,
        request: ShiftExchangeRequest,
        *,
        requester_key: str,
        accepting_key: str,
        requester_erp_company: int,
        accepting_erp_company: int,
    ) -> None:
        """Swap the two planning slots' resources in the ERP.

        No compensation: a failure part-way leaves the slots as they are and
        the request untouched, so approving again retries the whole sequence.
        """
        requester_slot = request.requester.odoo_shift_id
        accepting_slot = request.accepting.odoo_shift_id

        self._erp.set_planning_slot_state(requester_slot, "draft")
        self._erp.set_planning_slot_state(accepting_slot, "draft")

        accepting_resource = self._erp.resolve_resource_id(accepting_key, requester_erp_company)
        requester_resource = self._erp.resolve_resource_id(requester_key, accepting_erp_company)
        if not accepting_resource or not requester_resource:
            raise ConflictError("Could not resolve cross-company employee resources for slot swap")

        self._erp.set_planning_slot_resource(requester_slot, accepting_resource)
        self._erp.set_planning_slot_resource(accepting_slot, requester_resource)

        self._erp.set_planning_slot_state(requester_slot, "published")
        self._erp.set_planning_slot_state(accepting_slot, "published")

    def reject_exchange(
        self,
        *,
        request_id: int,
        actor_user_id: int,
        actor_roles: Sequence[str],
        reason: Optional[str],
    ) -> Dict[str, Any]:
        request = self._load(request_id)
        if not request.is_at(ApprovalStage.AWAITING_HR):
            raise ConflictError("This shift exchange request is not awaiting HR approval")
        reason_text = require_non_empty(reason, "Rejection reason")

        self._approvers.ensure_access(
            actor_user_id=int(actor_user_id), actor_roles=actor_roles, company_ids=request.company_ids
        )

        now = self._clock()
        updated = self._exchanges.transition(
            request_id=request.request_id,
            expected_stage=ApprovalStage.AWAITING_HR,
            update=ExchangeUpdate(
                status=ExchangeStatus.REJECTED,
                approval_stage=ApprovalStage.RESOLVED,
                updated_at=now,
                hr_decision_by=int(actor_user_id),
                hr_decision_at=now,
                hr_rejection_reason=reason_text,
            ),
        )
        if updated is None:
            raise ConflictError("This shift exchange request is not awaiting HR approval")
        logger.info("Shift exchange %s rejected by approver %s", request.request_id, actor_user_id)

        for side in (request.requester, request.accepting):
            self._notify(
                side.company_db_name,
                user_id=side.user_id,
                title="Shift Exchange Rejected",
                message=f"Your shift exchange request was rejected by HR. Reason: {reason_text}",
                severity=NotificationSeverity.DANGER,
                link_url=_exchange_link(request.request_id),
            )
        return self._to_detail(updated, actor_user_id=int(actor_user_id), actor_roles=actor_roles)

    # ---- read models ---------------------------------------------------------------

    def get_exchange_detail(self, *, request_id: int, actor_user_id: int, actor_roles: Sequence[str]) -> Dict[str, Any]:
        request = self._load(request_id)
        if int(actor_user_id) not in (request.requester.user_id, request.accepting.user_id):
            self._approvers.ensure_access(
                actor_user_id=int(actor_user_id), actor_roles=actor_roles, company_ids=request.company_ids
            )
        return self._to_detail(request, actor_user_id=int(actor_user_id), actor_roles=actor_roles)

    def _to_detail(
        self,
        request: ShiftExchangeRequest,
        *,
        actor_user_id: int,
        actor_roles: Sequence[str],
        contexts: TenantContextCache | None = None,
    ) -> Dict[str, Any]:
        contexts = contexts or self._contexts()
        requester_ctx, accepting_ctx = contexts.get_pair(request.requester.company_id, request.accepting.company_id)
        requester_shift, accepting_shift = run_pair(
            lambda: requester_ctx.stores.shifts.get_by_id(request.requester.shift_id),
            lambda: accepting_ctx.stores.shifts.get_by_id(request.accepting.shift_id),
        )
        user_ids = [request.requester.user_id, request.accepting.user_id, request.requested_by]
        if request.hr_decision_by:
            user_ids.append(request.hr_decision_by)
        users = self._directory.load_users(user_ids)

        can_respond = actor_user_id == request.accepting.user_id and request.is_at(ApprovalStage.AWAITING_EMPLOYEE)
        approval_mode = None
        if actor_roles and request.is_at(ApprovalStage.AWAITING_HR):
            try:
                approval_mode = self._approvers.ensure_access(
                    actor_user_id=actor_user_id, actor_roles=actor_roles, company_ids=request.company_ids
                )
            except ForbiddenError:
                approval_mode = None

        def side(ctx: TenantContext, part: ExchangeSide, shift: Optional[ShiftRecord]) -> Dict[str, Any]:
            user = users.get(part.user_id)
            return {
                "user_id": part.user_id,
                "name": display_name(user),
                "email": user.email if user else "",
                "company_id": ctx.company.company_id,
                "company_name": ctx.company.name,
                "company_slug": ctx.company.slug,
                "branch_id": part.branch_id,
                "branch_name": shift.branch_name if shift else None,
                "shift_id": part.shift_id,
                "shift_start": shift.shift_start if shift else None,
                "shift_end": shift.shift_end if shift else None,
                "duty_type": shift.duty_type if shift else None,
                "odoo_shift_id": part.odoo_shift_id,
            }

        hr_user = users.get(request.hr_decision_by) if request.hr_decision_by else None
        return to_payload(
            {
                "id": request.request_id,
                "status": request.status,
                "approval_stage": request.approval_stage,
                "created_at": request.created_at,
                "updated_at": request.updated_at,
                "employee_decision_at": request.employee_decision_at,
                "employee_rejection_reason": request.employee_rejection_reason,
                "hr_decision_at": request.hr_decision_at,
                "hr_rejection_reason": request.hr_rejection_reason,
                "requester": side(requester_ctx, request.requester, requester_shift),
                "accepting": side(accepting_ctx, request.accepting, accepting_shift),
                "requested_by": {
                    "user_id": request.requested_by,
                    "name": display_name(users.get(request.requested_by)),
                },
                "hr_decision_by": (
                    {"user_id": request.hr_decision_by, "name": display_name(hr_user)} if hr_user else None
                ),
                "can_respond": can_respond,
                "can_approve": approval_mode is not None,
                "can_reject": approval_mode is not None,
                "approval_mode": approval_mode,
            }
        )

    def list_exchange_requests_for_approval_queue(
        self,
        *,
        company_id: int,
        branch_ids: Sequence[int] = (),
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        parsed_status = None
        if status:
            try:
                parsed_status = ExchangeStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown shift exchange status: {status}")

        requests = self._exchanges.list_for_company(
            company_id=int(company_id), branch_ids=[int(b) for b in branch_ids], status=parsed_status
        )
        if not requests:
            return []

        users = self._directory.load_users(
            sorted({uid for r in requests for uid in (r.requester.user_id, r.accepting.user_id, r.requested_by)})
        )
        contexts = self._contexts()
        rows: List[Dict[str, Any]] = []
        for request in requests:
            requester_ctx, accepting_ctx = contexts.get_pair(request.requester.company_id, request.accepting.company_id)
            requester_shift, accepting_shift = run_pair(
                lambda: requester_ctx.stores.shifts.get_by_id(request.requester.shift_id),
                lambda: accepting_ctx.stores.shifts.get_by_id(request.accepting.shift_id),
            )
            rows.append(
                {
                    "id": request.request_id,
                    "auth_type": "shift_exchange",
                    "status": request.status,
                    "approval_stage": request.approval_stage,
                    "stage_label": request.stage_label,
                    "created_at": request.created_at,
                    "updated_at": request.updated_at,
                    "requester_user_id": request.requester.user_id,
                    "requester_name": display_name(users.get(request.requester.user_id)),
                    "accepting_user_id": request.accepting.user_id,
                    "accepting_name": display_name(users.get(request.accepting.user_id)),
                    "requester_company_id": request.requester.company_id,
                    "requester_company_name": requester_ctx.company.name,
                    "requester_branch_id": request.requester.branch_id,
                    "requester_branch_name": requester_shift.branch_name if requester_shift else None,
                    "requester_shift_id": request.requester.shift_id,
                    "requester_shift_start": requester_shift.shift_start if requester_shift else None,
                    "requester_shift_end": requester_shift.shift_end if requester_shift else None,
                    "requester_shift_duty_type": requester_shift.duty_type if requester_shift else None,
                    "accepting_company_id": request.accepting.company_id,
                    "accepting_company_name": accepting_ctx.company.name,
                    "accepting_branch_id": request.accepting.branch_id,
                    "accepting_branch_name": accepting_shift.branch_name if accepting_shift else None,
                    "accepting_shift_id": request.accepting.shift_id,
                    "accepting_shift_start": accepting_shift.shift_start if accepting_shift else None,
                    "accepting_shift_end": accepting_shift.shift_end if accepting_shift else None,
                    "accepting_shift_duty_type": accepting_shift.duty_type if accepting_shift else None,
                    "employee_rejection_reason": request.employee_rejection_reason,
                    "hr_rejection_reason": request.hr_rejection_reason,
                }
            )
        return to_payload(rows)
