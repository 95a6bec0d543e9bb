from __future__ import annotations

import logging
from typing import Any, List, Optional

from ..branches.service import require_branch_for_erp_company
from ..core.enums import PosVerificationType
from ..ingestion.payloads import (
    PosOrderPayload,
    PosSessionPayload,
    parse_pos_order_payload,
    parse_pos_session_payload,
)
from ..notifications.fanout import Publisher, branch_room, safe_publish
from ..tenants.router import TenantRouter
from .model import NewPosVerification, PosSession, PosVerification

logger = logging.getLogger(__name__)


class PosIngestionService:
    """POS sessions and orders from the ERP become pending cash verifications."""

    def __init__(self, tenants: TenantRouter, publisher: Publisher):
        self._tenants = tenants
        self._publisher = publisher

    def ingest_pos_session(self, tenant: str, raw: Any) -> PosSession:
        payload = raw if isinstance(raw, PosSessionPayload) else parse_pos_session_payload(raw)
        stores = self._tenants.resolve(tenant)
        branch = require_branch_for_erp_company(stores.branches, payload.erp_company_id)

        existing = stores.pos.get_session(odoo_session_id=payload.name, branch_id=branch.branch_id)
        if existing:
            session = stores.pos.update_session(
                session_id=existing.session_id,
                session_name=payload.session_name,
                odoo_payload=payload.raw,
            )
            event = "pos-session:updated"
            # Sessions opened before verifications existed get them on their next update.
            needs_breakdowns = stores.pos.count_verifications(session.session_id) == 0
        else:
            session = stores.pos.create_session(
                branch_id=branch.branch_id,
                odoo_session_id=payload.name,
                session_name=payload.session_name,
                odoo_payload=payload.raw,
            )
            event = "pos-session:new"
            needs_breakdowns = True
            logger.info("POS session %s opened for branch %s in %s", payload.name, branch.branch_id, tenant)

        created: List[PosVerification] = []
        if needs_breakdowns:
            for verification_type, title, amount in (
                (PosVerificationType.CF_BREAKDOWN, "Opening Change Fund Breakdown", payload.cash_register_balance_end),
                (PosVerificationType.PCF_BREAKDOWN, "Opening PCF Breakdown", payload.closing_pcf),
            ):
                created.append(
                    stores.pos.add_verification(
                        NewPosVerification(
                            branch_id=branch.branch_id,
                            pos_session_id=session.session_id,
                            verification_type=verification_type,
                            title=title,
                            amount=amount,
                            odoo_payload=payload.raw,
                        )
                    )
                )

        room = branch_room(branch.branch_id)
        safe_publish(self._publisher, tenant, room, event, {"session": session, "verifications": []})
        for verification in created:
            safe_publish(self._publisher, tenant, room, "pos-verification:new", verification)
        return session

    def ingest_pos_order(self, tenant: str, kind: str, raw: Any) -> PosVerification:
        payload = raw if isinstance(raw, PosOrderPayload) else parse_pos_order_payload(kind, raw)
        stores = self._tenants.resolve(tenant)
        branch = require_branch_for_erp_company(stores.branches, payload.erp_company_id)

        session_id: Optional[int] = None
        if payload.session_name:
            session = stores.pos.find_session_by_name(branch_id=branch.branch_id, session_name=payload.session_name)
            if session:
                session_id = session.session_id

        verification = stores.pos.add_verification(
            NewPosVerification(
                branch_id=branch.branch_id,
                pos_session_id=session_id,
                verification_type=payload.kind,
                title=payload.title,
                amount=payload.amount_total,
                odoo_payload=payload.raw,
                cashier_user_id=payload.cashier_user_id,
                customer_user_id=payload.customer_user_id,
            )
        )
        safe_publish(self._publisher, tenant, branch_room(branch.branch_id), "pos-verification:new", verification)
        return verification
