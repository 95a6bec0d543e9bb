from __future__ import annotations

from typing import Dict, Optional, Protocol, Sequence, Set, Tuple

from .model import ApproverRef, Company, DirectoryUser, TenantUser


class DirectoryRepository(Protocol):
    """Master-scoped companies, users, roles and cross-company access."""

    def get_active_company(self, company_id: int) -> Optional[Company]:
        raise NotImplementedError

    def list_active_companies(self) -> Sequence[Company]:
        raise NotImplementedError

    def list_accessible_companies(self, user_id: int) -> Sequence[Company]:
        """Active companies where the user has active access, ordered by name."""

        raise NotImplementedError

    def load_users(self, user_ids: Sequence[int]) -> Dict[int, DirectoryUser]:
        raise NotImplementedError

    def load_designations(
        self, user_ids: Sequence[int]
    ) -> Tuple[Set[Tuple[int, int]], Set[Tuple[int, int, int]]]:
        """Return ({(user, company)} with active access, {(user, company, branch)})."""

        raise NotImplementedError

    def has_active_access(self, *, user_id: int, company_id: int) -> bool:
        raise NotImplementedError

    def any_user_with_role(self, *, company_ids: Sequence[int], role_name: str) -> bool:
        """True if an active user holding `role_name` has active access to any company."""

        raise NotImplementedError

    def list_users_with_role(
        self,
        *,
        company_ids: Sequence[int],
        role_name: str,
        exclude_user_ids: Sequence[int] = (),
    ) -> Sequence[ApproverRef]:
        raise NotImplementedError


class TenantUserRepository(Protocol):
    def get_by_id(self, user_id: int) -> Optional[TenantUser]:
        raise NotImplementedError
