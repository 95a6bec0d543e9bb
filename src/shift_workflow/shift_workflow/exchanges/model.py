from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ApprovalStage, ExchangeStatus


@dataclass(frozen=True)
class ExchangeSide:
    """One party of an exchange: who, and which shift in which tenant."""

    user_id: int
    company_id: int
    company_db_name: str
    branch_id: int
    shift_id: int
    odoo_shift_id: int


@dataclass(frozen=True)
class ShiftExchangeRequest:
    """Two-party swap negotiation.

    `status` stays pending exactly until `approval_stage` reaches resolved, and a
    resolved request is never modified again.
    """

    request_id: int
    requester: ExchangeSide
    accepting: ExchangeSide
    requested_by: int
    status: ExchangeStatus
    approval_stage: ApprovalStage
    employee_decision_at: Optional[datetime] = None
    employee_rejection_reason: Optional[str] = None
    hr_decision_by: Optional[int] = None
    hr_decision_at: Optional[datetime] = None
    hr_rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_at(self, stage: ApprovalStage) -> bool:
        return self.status == ExchangeStatus.PENDING and self.approval_stage == stage

    @property
    def company_ids(self) -> list[int]:
        return [self.requester.company_id, self.accepting.company_id]

    @property
    def stage_label(self) -> str:
        if self.status != ExchangeStatus.PENDING:
            return "Approved" if self.status == ExchangeStatus.APPROVED else "Rejected"
        if self.approval_stage == ApprovalStage.AWAITING_EMPLOYEE:
            return "Awaiting Employee Acceptance"
        if self.approval_stage == ApprovalStage.AWAITING_HR:
            return "Pending HR Approval"
        return "Pending"


@dataclass(frozen=True)
class NewExchangeRequest:
    requester: ExchangeSide
    accepting: ExchangeSide
    requested_by: int
    created_at: datetime


@dataclass(frozen=True)
class ExchangeUpdate:
    """Columns written by one transition; None leaves a column unchanged."""

    status: ExchangeStatus
    approval_stage: ApprovalStage
    updated_at: datetime
    employee_decision_at: Optional[datetime] = None
    employee_rejection_reason: Optional[str] = None
    hr_decision_by: Optional[int] = None
    hr_decision_at: Optional[datetime] = None
    hr_rejection_reason: Optional[str] = None
