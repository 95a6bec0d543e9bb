from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import PosSessionStatus, PosVerificationType


@dataclass(frozen=True)
class PosSession:
    session_id: int
    branch_id: int
    odoo_session_id: str
    session_name: str
    status: PosSessionStatus = PosSessionStatus.OPEN
    odoo_payload: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class PosVerification:
    """A pending cash/order check raised from a POS event."""

    verification_id: int
    branch_id: int
    pos_session_id: Optional[int]
    verification_type: PosVerificationType
    title: str
    amount: Optional[float]
    status: str = "pending"
    description: Optional[str] = None
    cashier_user_id: Optional[int] = None
    customer_user_id: Optional[int] = None
    odoo_payload: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class NewPosVerification:
    branch_id: int
    pos_session_id: Optional[int]
    verification_type: PosVerificationType
    title: str
    amount: Optional[float]
    odoo_payload: Dict[str, Any]
    cashier_user_id: Optional[int] = None
    customer_user_id: Optional[int] = None
