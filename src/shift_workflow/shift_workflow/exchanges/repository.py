from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import ApprovalStage, ExchangeStatus
from .model import ExchangeUpdate, NewExchangeRequest, ShiftExchangeRequest


class ShiftExchangeRepository(Protocol):
    def insert(self, new: NewExchangeRequest) -> ShiftExchangeRequest:
        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[ShiftExchangeRequest]:
        raise NotImplementedError

    def has_pending_for_shift(self, *, company_id: int, shift_id: int) -> bool:
        raise NotImplementedError

    def transition(
        self, *, request_id: int, expected_stage: ApprovalStage, update: ExchangeUpdate
    ) -> Optional[ShiftExchangeRequest]:
        """Apply `update` only if the request is still pending at `expected_stage`.

        Returns None when another actor moved the request first.
        """

        raise NotImplementedError

    def list_for_company(
        self,
        *,
        company_id: int,
        branch_ids: Sequence[int] = (),
        status: Optional[ExchangeStatus] = None,
    ) -> Sequence[ShiftExchangeRequest]:
        raise NotImplementedError
