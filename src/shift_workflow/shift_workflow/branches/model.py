from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Branch:
    """A physical location of a company; shifts and POS sessions are scoped to it."""

    branch_id: int
    name: str
    odoo_branch_id: Optional[str]
    is_main_branch: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class UserBranchAssignment:
    user_id: int
    branch_id: int
    is_primary: bool = False
