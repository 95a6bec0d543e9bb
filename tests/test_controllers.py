from __future__ import annotations

import pytest

from shift_fakes import FakeExchangeRepo, make_shift
from src.shift_workflow.shift_workflow.container import Container
from src.shift_workflow.shift_workflow.core.enums import ShiftStatus
from src.shift_workflow.shift_workflow.exchanges.service import ShiftExchangeService
from src.shift_workflow.shift_workflow.main import create_app
from src.shift_workflow.shift_workflow.notifications.service import NotificationService
from src.shift_workflow.shift_workflow.pos.service import PosIngestionService

USER = {"X-User-Id": "90", "X-Tenant": "tenant_a", "X-Company-Id": "1", "X-Roles": "Human Resources"}


@pytest.fixture
def client(monkeypatch, tenants, directory, erp, publisher, scheduler, review_queue, auth_service, ingestion_service, clock):
    monkeypatch.setenv("APP_ENV", "testing")
    exchanges = FakeExchangeRepo()
    notifier = NotificationService(publisher)
    container = Container(
        master_conn=None,
        tenants=tenants,
        directory_repo=directory,
        exchanges_repo=exchanges,
        jobs_repo=None,
        erp=erp,
        publisher=publisher,
        scheduler=scheduler,
        review_queue=review_queue,
        notification_service=notifier,
        authorization_service=auth_service,
        ingestion_service=ingestion_service,
        pos_service=PosIngestionService(tenants, publisher),
        exchange_service=ShiftExchangeService(directory, tenants, exchanges, erp, notifier, clock=clock),
    )
    app = create_app(container=container)
    return app.test_client()


def test_shift_webhook_resolves_tenant_from_erp_company(client, stores):
    response = client.post(
        "/webhooks/employee-shift",
        json={
            "id": 501,
            "company_id": 11,
            "start_datetime": "2026-03-02 09:00:00",
            "end_datetime": "2026-03-02 17:00:00",
            "x_website_id": 7,
        },
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["created"] is True
    assert body["shift"]["user_id"] == 7
    assert len(stores.shifts.shifts) == 1


def test_shift_delete_webhook(client, stores):
    stores.shifts.shifts[1] = make_shift(1, odoo_shift_id=501, branch_id=1)

    response = client.post(
        "/webhooks/employee-shift",
        json={"_id": 501, "company_id": 11, "_action": "delete"},
        headers={"X-Tenant": "tenant_a"},
    )

    assert response.status_code == 200
    assert response.get_json()["deleted"] is True
    assert stores.shifts.shifts == {}


def test_late_check_in_shows_up_in_authorization_list(client, stores):
    stores.shifts.shifts[1] = make_shift(1, odoo_shift_id=501, branch_id=2, user_id=7)

    posted = client.post(
        "/webhooks/attendance",
        json={"id": 3001, "x_company_id": 12, "x_planning_slot_id": 501, "check_in": "2026-03-02 09:20:00", "check_out": False},
        headers={"X-Tenant": "tenant_a"},
    )
    listed = client.get("/authorizations?status=pending", headers=USER)

    assert posted.status_code == 200
    assert posted.get_json()["created"] is True
    rows = listed.get_json()["data"]
    assert len(rows) == 1
    assert rows[0]["diff_minutes"] == 20


def test_unknown_erp_company_maps_to_404(client):
    response = client.post("/webhooks/pos-session", json={"name": "POS/1", "company_id": 99})

    assert response.status_code == 404
    assert response.get_json() == {"success": False, "error": "No company found for ERP company_id: 99"}


def test_non_json_body_is_a_bad_request(client):
    response = client.post("/webhooks/attendance", data="id=1", headers={"X-Tenant": "tenant_a"})

    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_actor_header_is_required(client):
    response = client.get("/authorizations", headers={"X-Tenant": "tenant_a"})

    assert response.status_code == 403
    assert response.get_json()["error"] == "Authenticated user is required"


def test_unknown_authorization_is_404(client):
    response = client.post("/authorizations/42/approve", headers=USER)

    assert response.status_code == 404
    assert response.get_json()["error"] == "Authorization not found"


def test_rejecting_without_reason_is_400(client):
    response = client.post("/authorizations/42/reject", json={"reason": ""}, headers=USER)

    assert response.status_code == 400
    assert response.get_json()["error"] == "Rejection reason is required"


def test_unknown_exchange_request_is_404(client):
    response = client.get("/shift-exchanges/5", headers=USER)

    assert response.status_code == 404
    assert response.get_json()["error"] == "Shift exchange request not found"


def test_exchange_queue_is_empty_by_default(client):
    response = client.get("/shift-exchanges?status=pending", headers=USER)

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "data": []}


def test_ending_an_active_shift_returns_overtime(client, stores):
    stores.shifts.shifts[1] = make_shift(1, user_id=7, status=ShiftStatus.ACTIVE, total_worked_hours=9.0)

    response = client.post("/shifts/1/end", headers=USER)
    again = client.post("/shifts/1/end", headers=USER)

    assert response.status_code == 200
    body = response.get_json()
    assert body["data"]["status"] == "ended"
    assert body["authorization"]["auth_type"] == "overtime"
    assert body["authorization"]["diff_minutes"] == 60
    assert again.status_code == 409
    assert again.get_json()["error"] == "Shift is already ended"
