from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.request_context import current_actor, json_body, require_tenant
from ..common.serialization import to_payload
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/authorizations", methods=["GET"], endpoint="list_authorizations")
    def list_authorizations():
        actor = current_actor()
        branch_ids = [int(b) for b in request.args.getlist("branch_id") if b.strip().isdigit()]
        rows = container.authorization_service.list_authorizations(
            require_tenant(actor),
            branch_ids=branch_ids,
            status=request.args.get("status"),
        )
        return jsonify({"success": True, "data": to_payload(list(rows))}), 200

    @app.route("/authorizations/<int:authorization_id>/reason", methods=["POST"], endpoint="submit_authorization_reason")
    def submit_reason(authorization_id: int):
        actor = current_actor()
        body = json_body()
        updated = container.authorization_service.submit_employee_reason(
            require_tenant(actor),
            authorization_id=authorization_id,
            actor_user_id=actor.user_id,
            reason=body.get("reason"),
        )
        return jsonify({"success": True, "data": to_payload(updated)}), 200

    @app.route("/authorizations/<int:authorization_id>/approve", methods=["POST"], endpoint="approve_authorization")
    def approve(authorization_id: int):
        actor = current_actor()
        body = json_body(required=False)
        updated = container.authorization_service.approve(
            require_tenant(actor),
            authorization_id=authorization_id,
            actor_user_id=actor.user_id,
            overtime_type=body.get("overtime_type"),
        )
        return jsonify({"success": True, "data": to_payload(updated)}), 200

    @app.route("/authorizations/<int:authorization_id>/reject", methods=["POST"], endpoint="reject_authorization")
    def reject(authorization_id: int):
        actor = current_actor()
        body = json_body()
        updated = container.authorization_service.reject(
            require_tenant(actor),
            authorization_id=authorization_id,
            actor_user_id=actor.user_id,
            reason=body.get("reason"),
        )
        return jsonify({"success": True, "data": to_payload(updated)}), 200
