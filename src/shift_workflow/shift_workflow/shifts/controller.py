from __future__ import annotations

from flask import Flask, jsonify

from ..common.request_context import current_actor, require_tenant
from ..common.serialization import to_payload
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/shifts/<int:shift_id>/end", methods=["POST"], endpoint="end_shift")
    def end_shift(shift_id: int):
        actor = current_actor()
        result = container.authorization_service.end_shift(
            require_tenant(actor),
            shift_id=shift_id,
            actor_user_id=actor.user_id,
        )
        return jsonify({
            "success": True,
            "data": to_payload(result.shift),
            "authorization": to_payload(result.authorization),
        }), 200
