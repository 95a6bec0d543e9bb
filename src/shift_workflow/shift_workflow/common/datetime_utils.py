from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

from ..core.constants import ERP_DATETIME_FORMAT
from ..core.exceptions import ValidationError


def utc_now() -> datetime:
    """Current UTC time as a naive datetime.

    Note: Wrapped so tests can patch/mocked easier. Every datetime stored by the
    workflow is naive UTC, matching what the ERP sends.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_erp_datetime(value: Any, field_name: str) -> datetime:
    """Parse an ERP "YYYY-MM-DD HH:MM:SS" (UTC) string into a naive UTC datetime."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo is None else value.astimezone(timezone.utc).replace(tzinfo=None)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")

    text = value.strip()
    try:
        return datetime.strptime(text, ERP_DATETIME_FORMAT)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid datetime: {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_erp_datetime(value: datetime) -> str:
    return value.strftime(ERP_DATETIME_FORMAT)


def diff_minutes(later: datetime, earlier: datetime) -> int:
    """Whole minutes from `earlier` to `later`, halves rounded up (+30s -> 1, -30s -> 0)."""
    seconds = (later - earlier).total_seconds()
    return int(math.floor(seconds / 60.0 + 0.5))


def format_diff_minutes(minutes: int) -> str:
    """45 -> '45m', 60 -> '1h', 65 -> '1h 5m'."""
    if minutes >= 60:
        hours, rest = divmod(minutes, 60)
        return f"{hours}h {rest}m" if rest else f"{hours}h"
    return f"{minutes}m"
