"""Inbound ERP webhook payloads.

Each webhook body is parsed once, here, into one of a closed set of frozen
variant types. Anything malformed raises ValidationError before storage is
touched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..common.datetime_utils import parse_erp_datetime
from ..common.validators import optional_int, optional_text, require_int, require_non_empty
from ..core.enums import LogType, PosVerificationType
from ..core.exceptions import ValidationError

ORDER_KINDS = (
    PosVerificationType.DISCOUNT_ORDER,
    PosVerificationType.REFUND_ORDER,
    PosVerificationType.TOKEN_PAY_ORDER,
    PosVerificationType.NON_CASH_ORDER,
)


def _as_mapping(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValidationError("Payload must be a JSON object")
    return dict(raw)


def _optional_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or value is False or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")


def is_delete_action(raw: Mapping[str, Any]) -> bool:
    return "delete" in str(raw.get("_action") or "").lower()


@dataclass(frozen=True)
class AttendancePayload:
    attendance_id: int
    erp_company_id: int
    planning_slot_id: Optional[int]
    log_type: LogType
    event_time: datetime
    worked_hours: Optional[float]
    cumulative_minutes: Optional[int]
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_check_out(self) -> bool:
        return self.log_type == LogType.CHECK_OUT


@dataclass(frozen=True)
class ShiftUpsertPayload:
    odoo_shift_id: int
    erp_company_id: int
    shift_start: datetime
    shift_end: datetime
    employee_name: str
    employee_avatar_url: Optional[str]
    role_name: Optional[str]
    role_color: Optional[int]
    website_user_id: Optional[int]
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def allocated_hours(self) -> float:
        return (self.shift_end - self.shift_start).total_seconds() / 3600.0


@dataclass(frozen=True)
class ShiftDeletePayload:
    odoo_shift_id: int
    erp_company_id: int
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PosSessionPayload:
    name: str
    display_name: Optional[str]
    erp_company_id: int
    cash_register_balance_end: Optional[float]
    closing_pcf: Optional[float]
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def session_name(self) -> str:
        return self.display_name or self.name


@dataclass(frozen=True)
class PosOrderLine:
    product_name: str
    qty: float
    uom_name: Optional[str]
    price_unit: float


@dataclass(frozen=True)
class PosOrderPayload:
    kind: PosVerificationType
    erp_company_id: int
    amount_total: Optional[float]
    session_name: Optional[str]
    cashier_user_id: Optional[int]
    customer_user_id: Optional[int]
    lines: Tuple[PosOrderLine, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        if self.kind == PosVerificationType.DISCOUNT_ORDER:
            for line in self.lines:
                if line.price_unit < 0:
                    return f"{line.product_name} Order"
            return "Discount Order"
        return {
            PosVerificationType.REFUND_ORDER: "Refund Order",
            PosVerificationType.TOKEN_PAY_ORDER: "Token Pay Order",
            PosVerificationType.NON_CASH_ORDER: "Non-Cash Order",
        }[self.kind]


WebhookPayload = Union[AttendancePayload, ShiftUpsertPayload, ShiftDeletePayload, PosSessionPayload, PosOrderPayload]


def parse_attendance_payload(raw: Any) -> AttendancePayload:
    data = _as_mapping(raw)
    check_out = data.get("check_out")
    is_check_out = bool(check_out)
    event_time = (
        parse_erp_datetime(check_out, "check_out")
        if is_check_out
        else parse_erp_datetime(data.get("check_in"), "check_in")
    )
    return AttendancePayload(
        attendance_id=require_int(data.get("id"), "id"),
        erp_company_id=require_int(data.get("x_company_id"), "x_company_id"),
        planning_slot_id=optional_int(data.get("x_planning_slot_id"), "x_planning_slot_id"),
        log_type=LogType.CHECK_OUT if is_check_out else LogType.CHECK_IN,
        event_time=event_time,
        worked_hours=_optional_float(data.get("worked_hours"), "worked_hours"),
        cumulative_minutes=optional_int(data.get("x_cumulative_minutes"), "x_cumulative_minutes"),
        raw=data,
    )


def parse_shift_upsert_payload(raw: Any) -> ShiftUpsertPayload:
    data = _as_mapping(raw)
    start = parse_erp_datetime(data.get("start_datetime"), "start_datetime")
    end = parse_erp_datetime(data.get("end_datetime"), "end_datetime")
    if end < start:
        raise ValidationError("end_datetime must not be before start_datetime")
    return ShiftUpsertPayload(
        odoo_shift_id=require_int(data.get("id"), "id"),
        erp_company_id=require_int(data.get("company_id"), "company_id"),
        shift_start=start,
        shift_end=end,
        employee_name=optional_text(data.get("x_employee_contact_name")) or "",
        employee_avatar_url=optional_text(data.get("x_employee_avatar")),
        role_name=optional_text(data.get("x_role_name")),
        role_color=optional_int(data.get("x_role_color"), "x_role_color"),
        website_user_id=optional_int(data.get("x_website_id"), "x_website_id"),
        raw=data,
    )


def parse_shift_delete_payload(raw: Any) -> ShiftDeletePayload:
    data = _as_mapping(raw)
    slot_id = data.get("id") or data.get("_id")
    if not slot_id:
        raise ValidationError("Missing planning slot id (id or _id) for delete action")
    return ShiftDeletePayload(
        odoo_shift_id=require_int(slot_id, "id"),
        erp_company_id=require_int(data.get("company_id"), "company_id"),
        raw=data,
    )


def parse_pos_session_payload(raw: Any) -> PosSessionPayload:
    data = _as_mapping(raw)
    return PosSessionPayload(
        name=require_non_empty(optional_text(data.get("name")), "name"),
        display_name=optional_text(data.get("display_name")),
        erp_company_id=require_int(data.get("company_id"), "company_id"),
        cash_register_balance_end=_optional_float(data.get("cash_register_balance_end"), "cash_register_balance_end"),
        closing_pcf=_optional_float(data.get("x_closing_pcf"), "x_closing_pcf"),
        raw=data,
    )


def _parse_order_lines(value: Any) -> Tuple[PosOrderLine, ...]:
    if value in (None, False):
        return ()
    if not isinstance(value, list):
        raise ValidationError("x_order_lines must be a list")
    lines: List[PosOrderLine] = []
    for item in value:
        line = _as_mapping(item)
        lines.append(
            PosOrderLine(
                product_name=optional_text(line.get("product_name")) or "",
                qty=_optional_float(line.get("qty"), "qty") or 0.0,
                uom_name=optional_text(line.get("uom_name")),
                price_unit=_optional_float(line.get("price_unit"), "price_unit") or 0.0,
            )
        )
    return tuple(lines)


def parse_pos_order_payload(kind: str, raw: Any) -> PosOrderPayload:
    try:
        order_kind = PosVerificationType(kind)
    except ValueError:
        raise ValidationError(f"Unknown POS order kind: {kind}")
    if order_kind not in ORDER_KINDS:
        raise ValidationError(f"Unknown POS order kind: {kind}")

    data = _as_mapping(raw)
    return PosOrderPayload(
        kind=order_kind,
        erp_company_id=require_int(data.get("company_id"), "company_id"),
        amount_total=_optional_float(data.get("amount_total"), "amount_total"),
        session_name=optional_text(data.get("x_session_name")),
        cashier_user_id=optional_int(data.get("x_website_id"), "x_website_id"),
        customer_user_id=(
            optional_int(data.get("x_customer_website_id"), "x_customer_website_id")
            if order_kind == PosVerificationType.TOKEN_PAY_ORDER
            else None
        ),
        lines=_parse_order_lines(data.get("x_order_lines")),
        raw=data,
    )


def erp_company_id_of(raw: Any) -> int:
    """ERP company id used to locate the tenant, whichever key the webhook uses."""
    data = _as_mapping(raw)
    value = data.get("x_company_id")
    if value in (None, False, ""):
        value = data.get("company_id")
    return require_int(value, "company_id")
