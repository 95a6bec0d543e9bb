from __future__ import annotations

from dataclasses import dataclass

from ..authorizations.repository import AuthorizationRepository
from ..branches.repository import BranchRepository
from ..directory.repository import TenantUserRepository
from ..notifications.repository import NotificationRepository
from ..pos.repository import PosRepository
from ..shifts.repository import ShiftLogRepository, ShiftRepository


@dataclass(frozen=True)
class TenantStores:
    """Handle to one tenant's data store: its repositories, keyed by database name."""

    name: str
    branches: BranchRepository
    shifts: ShiftRepository
    logs: ShiftLogRepository
    authorizations: AuthorizationRepository
    notifications: NotificationRepository
    users: TenantUserRepository
    pos: PosRepository
