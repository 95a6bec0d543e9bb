from __future__ import annotations

from ..core.exceptions import NotFoundError
from .model import Branch
from .repository import BranchRepository


def require_branch_for_erp_company(branches: BranchRepository, erp_company_id: int) -> Branch:
    """The branch an ERP company id maps to; webhooks address branches this way."""
    branch = branches.get_by_erp_id(str(erp_company_id))
    if not branch:
        raise NotFoundError(f"Branch not found for ERP company_id: {erp_company_id}")
    return branch
