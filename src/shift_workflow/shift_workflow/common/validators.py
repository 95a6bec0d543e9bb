from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    if value is None or value is False:
        return None
    text = str(value).strip()
    return text or None


def require_int(value: Any, field_name: str) -> int:
    # The ERP serialises "no value" as False.
    if value is None or value is False or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value is False or value == "":
        return None
    return require_int(value, field_name)


def parse_positive_int(value: Any, field_name: str) -> int:
    try:
        parsed = int(str(value).strip()) if value is not None else 0
    except (TypeError, ValueError):
        parsed = 0
    if parsed <= 0:
        raise ValidationError(f"{field_name} is missing or invalid")
    return parsed
