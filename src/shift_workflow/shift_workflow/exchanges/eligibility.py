from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Set, Tuple

from ..directory.model import Company
from ..shifts.model import ShiftRecord


class DesignationIndex:
    """Which users may work which (company, branch).

    A user is designated to a branch only with active access to its company
    AND a branch designation there; a missing mapping denies.
    """

    def __init__(
        self,
        access: Iterable[Tuple[int, int]] = (),
        branches: Iterable[Tuple[int, int, int]] = (),
    ):
        self._access: Set[Tuple[int, int]] = {(int(u), int(c)) for u, c in access}
        self._branches: Set[Tuple[int, int, int]] = {(int(u), int(c), int(b)) for u, c, b in branches}

    def add_branch(self, user_id: int, company_id: int, branch_id: int) -> None:
        self._branches.add((int(user_id), int(company_id), int(branch_id)))

    def is_designated(self, user_id: int, company_id: int, branch_id: int) -> bool:
        return (int(user_id), int(company_id)) in self._access and (
            int(user_id),
            int(company_id),
            int(branch_id),
        ) in self._branches


@dataclass(frozen=True)
class ShiftOption:
    """An open, assigned shift as offered for exchange."""

    company_id: int
    company_name: str
    company_slug: str
    company_db_name: str
    shift_id: int
    odoo_shift_id: int
    branch_id: int
    branch_name: Optional[str]
    branch_odoo_id: Optional[str]
    user_id: int
    employee_name: str
    employee_avatar_url: Optional[str]
    duty_type: Optional[str]
    shift_start: datetime
    shift_end: datetime
    allocated_hours: float

    @classmethod
    def from_shift(cls, company: Company, shift: ShiftRecord) -> "ShiftOption":
        assert shift.user_id is not None
        return cls(
            company_id=company.company_id,
            company_name=company.name,
            company_slug=company.slug,
            company_db_name=company.db_name,
            shift_id=shift.shift_id,
            odoo_shift_id=shift.odoo_shift_id,
            branch_id=shift.branch_id,
            branch_name=shift.branch_name,
            branch_odoo_id=shift.branch_odoo_id,
            user_id=shift.user_id,
            employee_name=shift.employee_name,
            employee_avatar_url=shift.employee_avatar_url,
            duty_type=shift.duty_type,
            shift_start=shift.shift_start,
            shift_end=shift.shift_end,
            allocated_hours=shift.allocated_hours,
        )


@dataclass(frozen=True)
class ExchangeOptions:
    from_shift: ShiftOption
    options: List[ShiftOption] = field(default_factory=list)

    def find(self, *, company_id: int, shift_id: int) -> Optional[ShiftOption]:
        for option in self.options:
            if option.company_id == int(company_id) and option.shift_id == int(shift_id):
                return option
        return None


def is_cross_company_match(
    designations: DesignationIndex,
    *,
    requester_user_id: int,
    source: ShiftOption,
    target: ShiftOption,
) -> bool:
    """Both employees must be designated to the other party's branch."""
    requester_can_work_target = designations.is_designated(requester_user_id, target.company_id, target.branch_id)
    target_can_work_source = designations.is_designated(target.user_id, source.company_id, source.branch_id)
    return requester_can_work_target and target_can_work_source
