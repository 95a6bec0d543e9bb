from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from flask import request
from werkzeug.exceptions import BadRequest

from ..core.exceptions import ForbiddenError, ValidationError


@dataclass(frozen=True)
class Actor:
    """The acting user as asserted by the upstream authentication layer."""

    user_id: int
    company_id: Optional[int]
    tenant: Optional[str]
    roles: Tuple[str, ...]


def _header_int(name: str) -> Optional[int]:
    value = (request.headers.get(name) or "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} header must be an integer")


def current_actor() -> Actor:
    user_id = _header_int("X-User-Id")
    if user_id is None:
        raise ForbiddenError("Authenticated user is required")
    roles = tuple(r.strip() for r in (request.headers.get("X-Roles") or "").split(",") if r.strip())
    return Actor(
        user_id=user_id,
        company_id=_header_int("X-Company-Id"),
        tenant=(request.headers.get("X-Tenant") or "").strip() or None,
        roles=roles,
    )


def require_tenant(actor: Actor) -> str:
    if not actor.tenant:
        raise ValidationError("X-Tenant header is required")
    return actor.tenant


def require_company(actor: Actor) -> int:
    if actor.company_id is None:
        raise ValidationError("X-Company-Id header is required")
    return actor.company_id


def json_body(*, required: bool = True) -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        if required:
            raise BadRequest("Request body must be JSON")
        return {}
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data
