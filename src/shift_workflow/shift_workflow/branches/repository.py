from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Branch, UserBranchAssignment


class BranchRepository(Protocol):
    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        raise NotImplementedError

    def get_by_erp_id(self, odoo_branch_id: str) -> Optional[Branch]:
        raise NotImplementedError

    def list_assignments(self, user_ids: Sequence[int]) -> Sequence[UserBranchAssignment]:
        raise NotImplementedError

    def reassign_user_to_branch(self, *, user_id: int, branch_id: int) -> list[int]:
        """Drop the user's non-main-branch assignments and make sure `branch_id`
        is assigned, in a single transaction.

        Returns the branch ids assigned afterwards.
        """

        raise NotImplementedError
