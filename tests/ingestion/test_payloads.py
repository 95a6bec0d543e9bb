from datetime import datetime

import pytest

from src.shift_workflow.shift_workflow.core.enums import LogType, PosVerificationType
from src.shift_workflow.shift_workflow.core.exceptions import ValidationError
from src.shift_workflow.shift_workflow.ingestion.payloads import (
    erp_company_id_of,
    is_delete_action,
    parse_attendance_payload,
    parse_pos_order_payload,
    parse_pos_session_payload,
    parse_shift_delete_payload,
    parse_shift_upsert_payload,
)


def test_check_in_payload():
    payload = parse_attendance_payload(
        {
            "id": 3001,
            "x_company_id": 11,
            "x_planning_slot_id": 501,
            "check_in": "2026-03-02 09:15:00",
            "check_out": False,
            "worked_hours": 0,
        }
    )

    assert payload.log_type == LogType.CHECK_IN
    assert payload.event_time == datetime(2026, 3, 2, 9, 15)
    assert payload.planning_slot_id == 501
    assert not payload.is_check_out


def test_check_out_payload_uses_check_out_time():
    payload = parse_attendance_payload(
        {
            "id": 3001,
            "x_company_id": 11,
            "x_planning_slot_id": False,
            "check_in": "2026-03-02 09:00:00",
            "check_out": "2026-03-02 17:10:00",
            "x_cumulative_minutes": 490,
        }
    )

    assert payload.is_check_out
    assert payload.event_time == datetime(2026, 3, 2, 17, 10)
    assert payload.planning_slot_id is None
    assert payload.cumulative_minutes == 490


def test_attendance_payload_rejects_missing_fields():
    with pytest.raises(ValidationError, match="id is required"):
        parse_attendance_payload({"x_company_id": 11, "check_in": "2026-03-02 09:00:00"})
    with pytest.raises(ValidationError, match="check_in"):
        parse_attendance_payload({"id": 1, "x_company_id": 11, "check_in": "yesterday"})
    with pytest.raises(ValidationError, match="JSON object"):
        parse_attendance_payload(["not", "a", "dict"])


def test_shift_upsert_payload():
    payload = parse_shift_upsert_payload(
        {
            "id": 501,
            "company_id": 11,
            "start_datetime": "2026-03-02 09:00:00",
            "end_datetime": "2026-03-02 17:00:00",
            "x_employee_contact_name": "Ana Cruz",
            "x_role_name": "Cashier",
            "x_role_color": 3,
            "x_website_id": 7,
        }
    )

    assert payload.allocated_hours == 8.0
    assert payload.role_name == "Cashier"
    assert payload.website_user_id == 7


def test_shift_upsert_rejects_end_before_start():
    with pytest.raises(ValidationError, match="end_datetime"):
        parse_shift_upsert_payload(
            {
                "id": 501,
                "company_id": 11,
                "start_datetime": "2026-03-02 17:00:00",
                "end_datetime": "2026-03-02 09:00:00",
            }
        )


def test_shift_delete_payload_accepts_underscore_id():
    raw = {"_id": 501, "company_id": 11, "_action": "Delete planning slot"}

    assert is_delete_action(raw)
    assert parse_shift_delete_payload(raw).odoo_shift_id == 501


def test_shift_delete_payload_requires_an_id():
    with pytest.raises(ValidationError, match="Missing planning slot id"):
        parse_shift_delete_payload({"company_id": 11, "_action": "delete"})


def test_pos_session_payload_prefers_display_name():
    payload = parse_pos_session_payload(
        {"name": "POS/0001", "display_name": "Main Register", "company_id": 11, "x_closing_pcf": "1500.5"}
    )

    assert payload.session_name == "Main Register"
    assert payload.closing_pcf == 1500.5
    assert payload.cash_register_balance_end is None


def test_discount_order_title_comes_from_negative_line():
    payload = parse_pos_order_payload(
        "discount_order",
        {
            "company_id": 11,
            "amount_total": 90,
            "x_order_lines": [
                {"product_name": "Latte", "qty": 1, "price_unit": 100},
                {"product_name": "Senior Discount", "qty": 1, "price_unit": -10},
            ],
        },
    )

    assert payload.kind == PosVerificationType.DISCOUNT_ORDER
    assert payload.title == "Senior Discount Order"


def test_token_pay_order_keeps_customer():
    payload = parse_pos_order_payload(
        "token_pay_order", {"company_id": 11, "x_website_id": 7, "x_customer_website_id": 8}
    )

    assert payload.title == "Token Pay Order"
    assert payload.cashier_user_id == 7
    assert payload.customer_user_id == 8


def test_unknown_or_session_kinds_are_not_orders():
    with pytest.raises(ValidationError, match="Unknown POS order kind"):
        parse_pos_order_payload("gift_card", {"company_id": 11})
    with pytest.raises(ValidationError, match="Unknown POS order kind"):
        parse_pos_order_payload("cf_breakdown", {"company_id": 11})


def test_erp_company_id_prefers_x_company_id():
    assert erp_company_id_of({"x_company_id": 12, "company_id": 11}) == 12
    assert erp_company_id_of({"x_company_id": False, "company_id": 11}) == 11
    with pytest.raises(ValidationError):
        erp_company_id_of({})
