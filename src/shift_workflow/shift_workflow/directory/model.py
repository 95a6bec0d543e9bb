from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import EmploymentStatus


@dataclass(frozen=True)
class Company:
    """A tenant: its rows live in the database named `db_name`."""

    company_id: int
    name: str
    slug: str
    db_name: str
    is_active: bool = True


@dataclass(frozen=True)
class DirectoryUser:
    user_id: int
    first_name: str
    last_name: str
    email: str
    user_key: Optional[str] = None
    is_active: bool = True
    employment_status: EmploymentStatus = EmploymentStatus.ACTIVE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or "Unknown User"

    @property
    def is_suspended(self) -> bool:
        return self.employment_status == EmploymentStatus.SUSPENDED


@dataclass(frozen=True)
class TenantUser:
    user_id: int
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class ApproverRef:
    user_id: int
    company_id: int
    company_db_name: str


def display_name(user: Optional[DirectoryUser]) -> str:
    return user.full_name if user else "Unknown User"
