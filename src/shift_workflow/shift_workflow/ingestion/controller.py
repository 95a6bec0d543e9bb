from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.request_context import json_body
from ..common.serialization import to_payload
from ..container import Container
from .payloads import erp_company_id_of, is_delete_action


def register(app: Flask, container: Container) -> None:
    def _tenant_for(raw: dict) -> str:
        tenant = (request.headers.get("X-Tenant") or "").strip()
        if tenant:
            return tenant
        company = container.ingestion_service.resolve_tenant_for_erp_company(erp_company_id_of(raw))
        return company.db_name

    @app.route("/webhooks/attendance", methods=["POST"], endpoint="webhook_attendance")
    def webhook_attendance():
        raw = json_body()
        result = container.ingestion_service.ingest_attendance_event(_tenant_for(raw), raw)
        return jsonify({"success": True, "created": result.created, "log": to_payload(result.log)}), 200

    @app.route("/webhooks/employee-shift", methods=["POST"], endpoint="webhook_employee_shift")
    def webhook_employee_shift():
        raw = json_body()
        tenant = _tenant_for(raw)
        if is_delete_action(raw):
            deleted = container.ingestion_service.ingest_shift_delete_event(tenant, raw)
            return jsonify({"success": True, "deleted": deleted.deleted, "result": to_payload(deleted)}), 200

        result = container.ingestion_service.ingest_shift_event(tenant, raw)
        return jsonify(
            {
                "success": True,
                "created": result.created,
                "shift": to_payload(result.shift),
                "changes": to_payload(result.changes),
            }
        ), 200

    @app.route("/webhooks/pos-session", methods=["POST"], endpoint="webhook_pos_session")
    def webhook_pos_session():
        raw = json_body()
        session = container.pos_service.ingest_pos_session(_tenant_for(raw), raw)
        return jsonify({"success": True, "session": to_payload(session)}), 200

    @app.route("/webhooks/pos-order/<kind>", methods=["POST"], endpoint="webhook_pos_order")
    def webhook_pos_order(kind: str):
        raw = json_body()
        verification = container.pos_service.ingest_pos_order(_tenant_for(raw), kind, raw)
        return jsonify({"success": True, "verification": to_payload(verification)}), 200
