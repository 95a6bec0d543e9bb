from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.request_context import current_actor, json_body, require_company
from ..common.serialization import to_payload
from ..common.validators import require_int
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/shift-exchanges/options", methods=["GET"], endpoint="shift_exchange_options")
    def options():
        actor = current_actor()
        result = container.exchange_service.list_eligible_targets(
            requester_user_id=actor.user_id,
            company_id=require_company(actor),
            from_shift_id=require_int(request.args.get("from_shift_id"), "from_shift_id"),
        )
        return jsonify({"success": True, "data": to_payload(result)}), 200

    @app.route("/shift-exchanges", methods=["POST"], endpoint="propose_shift_exchange")
    def propose():
        actor = current_actor()
        body = json_body()
        detail = container.exchange_service.propose_exchange(
            requester_user_id=actor.user_id,
            company_id=require_company(actor),
            from_shift_id=require_int(body.get("from_shift_id"), "from_shift_id"),
            to_shift_id=require_int(body.get("to_shift_id"), "to_shift_id"),
            to_company_id=require_int(body.get("to_company_id"), "to_company_id"),
        )
        return jsonify({"success": True, "data": detail}), 201

    @app.route("/shift-exchanges/<int:request_id>/respond", methods=["POST"], endpoint="respond_shift_exchange")
    def respond(request_id: int):
        actor = current_actor()
        body = json_body()
        detail = container.exchange_service.respond_to_exchange(
            request_id=request_id,
            actor_user_id=actor.user_id,
            action=body.get("action"),
            reason=body.get("reason"),
        )
        return jsonify({"success": True, "data": detail}), 200

    @app.route("/shift-exchanges/<int:request_id>/approve", methods=["POST"], endpoint="approve_shift_exchange")
    def approve(request_id: int):
        actor = current_actor()
        detail = container.exchange_service.approve_exchange(
            request_id=request_id, actor_user_id=actor.user_id, actor_roles=actor.roles
        )
        return jsonify({"success": True, "data": detail}), 200

    @app.route("/shift-exchanges/<int:request_id>/reject", methods=["POST"], endpoint="reject_shift_exchange")
    def reject(request_id: int):
        actor = current_actor()
        body = json_body()
        detail = container.exchange_service.reject_exchange(
            request_id=request_id,
            actor_user_id=actor.user_id,
            actor_roles=actor.roles,
            reason=body.get("reason"),
        )
        return jsonify({"success": True, "data": detail}), 200

    @app.route("/shift-exchanges/<int:request_id>", methods=["GET"], endpoint="shift_exchange_detail")
    def detail(request_id: int):
        actor = current_actor()
        data = container.exchange_service.get_exchange_detail(
            request_id=request_id, actor_user_id=actor.user_id, actor_roles=actor.roles
        )
        return jsonify({"success": True, "data": data}), 200

    @app.route("/shift-exchanges", methods=["GET"], endpoint="shift_exchange_queue")
    def approval_queue():
        actor = current_actor()
        branch_ids = [int(b) for b in request.args.getlist("branch_id") if b.strip().isdigit()]
        rows = container.exchange_service.list_exchange_requests_for_approval_queue(
            company_id=require_company(actor),
            branch_ids=branch_ids,
            status=request.args.get("status"),
        )
        return jsonify({"success": True, "data": rows}), 200
