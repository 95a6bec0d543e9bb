from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from .model import NewPosVerification, PosSession, PosVerification


class PosRepository(Protocol):
    def get_session(self, *, odoo_session_id: str, branch_id: int) -> Optional[PosSession]:
        raise NotImplementedError

    def find_session_by_name(self, *, branch_id: int, session_name: str) -> Optional[PosSession]:
        raise NotImplementedError

    def create_session(
        self, *, branch_id: int, odoo_session_id: str, session_name: str, odoo_payload: Dict[str, Any]
    ) -> PosSession:
        raise NotImplementedError

    def update_session(self, *, session_id: int, session_name: str, odoo_payload: Dict[str, Any]) -> PosSession:
        raise NotImplementedError

    def count_verifications(self, session_id: int) -> int:
        raise NotImplementedError

    def add_verification(self, new: NewPosVerification) -> PosVerification:
        raise NotImplementedError
