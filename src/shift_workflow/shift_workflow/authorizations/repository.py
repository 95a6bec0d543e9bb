from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AuthorizationStatus, AuthorizationType, OvertimeType
from .model import NewAuthorization, ShiftAuthorization


class AuthorizationRepository(Protocol):
    def create(self, new: NewAuthorization) -> Optional[ShiftAuthorization]:
        """Insert unless one already exists for (shift log, type).

        A `pending` insert increments the shift's pending-approval counter in
        the same transaction. Returns None for a duplicate.
        """

        raise NotImplementedError

    def get_by_id(self, authorization_id: int) -> Optional[ShiftAuthorization]:
        raise NotImplementedError

    def find_for_log(self, *, shift_log_id: int, auth_type: AuthorizationType) -> Optional[ShiftAuthorization]:
        raise NotImplementedError

    def set_employee_reason(self, *, authorization_id: int, reason: str) -> Optional[ShiftAuthorization]:
        raise NotImplementedError

    def resolve(
        self,
        *,
        authorization_id: int,
        status: AuthorizationStatus,
        resolved_by: int,
        resolved_at: datetime,
        overtime_type: Optional[OvertimeType] = None,
        rejection_reason: Optional[str] = None,
    ) -> Optional[ShiftAuthorization]:
        """Move a `pending` authorization to approved/rejected and decrement the
        shift's pending-approval counter in one transaction.

        Returns None when the authorization was no longer pending.
        """

        raise NotImplementedError

    def list(
        self,
        *,
        branch_ids: Sequence[int] = (),
        status: Optional[AuthorizationStatus] = None,
        limit: int = 200,
    ) -> Sequence[ShiftAuthorization]:
        raise NotImplementedError
