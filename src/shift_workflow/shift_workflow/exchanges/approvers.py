from __future__ import annotations

from typing import Iterable, Sequence, Tuple

from ..core.constants import HR_ROLE_NAME, MANAGEMENT_ROLE_NAME
from ..core.enums import ApproverMode
from ..core.exceptions import ForbiddenError, ValidationError
from ..directory.model import ApproverRef
from ..directory.repository import DirectoryRepository


def has_role(role_names: Iterable[str], expected: str) -> bool:
    expected = expected.strip().lower()
    return any(str(name).strip().lower() == expected for name in role_names)


def role_name_for(mode: ApproverMode) -> str:
    return HR_ROLE_NAME if mode == ApproverMode.HR else MANAGEMENT_ROLE_NAME


class ApproverPolicy:
    """Who may take the final decision on an exchange.

    HR when any active HR user has active access to one of the companies,
    Management otherwise. Recomputed on every call; role membership can change
    between stages.
    """

    def __init__(self, directory: DirectoryRepository):
        self._directory = directory

    def resolve_mode(self, company_ids: Sequence[int]) -> ApproverMode:
        unique = sorted({int(c) for c in company_ids if c})
        if not unique:
            raise ValidationError("No company scope found for shift exchange approval")
        if self._directory.any_user_with_role(company_ids=unique, role_name=HR_ROLE_NAME):
            return ApproverMode.HR
        return ApproverMode.MANAGEMENT_FALLBACK

    def ensure_access(self, *, actor_user_id: int, actor_roles: Sequence[str], company_ids: Sequence[int]) -> ApproverMode:
        mode = self.resolve_mode(company_ids)
        for company_id in {int(c) for c in company_ids}:
            if not self._directory.has_active_access(user_id=int(actor_user_id), company_id=company_id):
                raise ForbiddenError("Approver is not assigned to the involved companies")

        if mode == ApproverMode.HR:
            if not has_role(actor_roles, HR_ROLE_NAME):
                raise ForbiddenError("Only Human Resources can approve this shift exchange")
        elif not has_role(actor_roles, MANAGEMENT_ROLE_NAME):
            raise ForbiddenError("Only Management can approve this shift exchange")
        return mode

    def list_approvers(
        self, company_ids: Sequence[int], *, exclude_user_ids: Sequence[int] = ()
    ) -> Tuple[ApproverMode, Sequence[ApproverRef]]:
        mode = self.resolve_mode(company_ids)
        approvers = self._directory.list_users_with_role(
            company_ids=sorted({int(c) for c in company_ids}),
            role_name=role_name_for(mode),
            exclude_user_ids=[int(u) for u in exclude_user_ids],
        )
        return mode, approvers
