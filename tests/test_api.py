from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from jose import jwt

import config
from database import get_session
from main import app
from services.notifications import get_notifier


@pytest.fixture
def client(session_factory, notifier):
    def override_session():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _auth(user_id, role):
    token = jwt.encode({"id": user_id, "role": role}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_headers(staff_user):
    return _auth(staff_user.id, "manager")


@pytest.fixture
def tenant_headers(staff_user):
    return _auth(staff_user.id, "tenant")


def _create(client, headers, tenant, **overrides):
    today = date.today()
    body = {
        "tenant_id": tenant.tenant_id,
        "invoice_date": today.isoformat(),
        "due_date": (today + timedelta(days=30)).isoformat(),
    }
    body.update(overrides)
    return client.post("/api/invoices", json=body, headers=headers)


def test_health(client, monkeypatch):
    assert client.get("/api/health").json() == {"status": "ok", "database": "connected"}

    monkeypatch.setattr("main.check_connection", lambda: False)
    assert client.get("/api/health").status_code == 503


def test_unknown_route(client):
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    assert response.json() == {"error": "Route not found"}


def test_requests_need_a_valid_token(client):
    assert client.get("/api/invoices").status_code == 401
    assert client.get("/api/invoices", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 403


def test_create_invoice(client, staff_headers, tenant):
    response = _create(client, staff_headers, tenant, additional_charges=[{"description": "Water", "amount": "35.50"}])

    assert response.status_code == 201
    body = response.json()
    assert body["invoice_number"] == f"INV-{date.today().year}-0001"
    assert body["status"] == "DRAFT"
    assert Decimal(body["total_amount"]) == Decimal("1335.50")
    assert body["tenant_name"] == "John Doe"
    assert body["unit_number"] == "Unit 101"


def test_create_invoice_errors(client, staff_headers, tenant):
    response = _create(client, staff_headers, tenant, tenant_id=999)
    assert response.status_code == 404
    assert "Tenant" in response.json()["detail"]

    today = date.today()
    response = _create(client, staff_headers, tenant, due_date=(today - timedelta(days=1)).isoformat())
    assert response.status_code == 400

    response = _create(client, staff_headers, tenant, base_rent="-5")
    assert response.status_code == 422


def test_unknown_invoice(client, staff_headers):
    response = client.get("/api/invoices/12345", headers=staff_headers)
    assert response.status_code == 404
    assert "detail" in response.json()


def test_send_pay_and_download(client, staff_headers, tenant, sender):
    invoice_id = _create(client, staff_headers, tenant).json()["id"]

    response = client.post(f"/api/invoices/{invoice_id}/send", headers=staff_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "SENT"
    assert sender.sent[-1]["attachments"][0][0].startswith("INV-")

    payment = {
        "amount": "300.00",
        "payment_method": "BANK_TRANSFER",
        "payment_date": date.today().isoformat(),
        "transaction_reference": "TRX-1",
    }
    response = client.post(f"/api/invoices/{invoice_id}/payments", json=payment, headers=staff_headers)
    assert response.status_code == 201
    payment_id = response.json()["id"]
    assert response.json()["recorded_by_name"] == "Maria Santos"

    detail = client.get(f"/api/invoices/{invoice_id}", headers=staff_headers).json()
    assert detail["status"] == "PARTIALLY_PAID"
    assert Decimal(detail["balance_amount"]) == Decimal("1000.00")
    assert [p["id"] for p in detail["payments"]] == [payment_id]

    overpay = dict(payment, amount="1000.01")
    response = client.post(f"/api/invoices/{invoice_id}/payments", json=overpay, headers=staff_headers)
    assert response.status_code == 400

    listing = client.get("/api/payments", params={"invoice_id": invoice_id}, headers=staff_headers).json()
    assert listing["total"] == 1

    response = client.get(f"/api/invoices/{invoice_id}/pdf", headers=staff_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")

    response = client.get(f"/api/payments/{payment_id}/receipt", headers=staff_headers)
    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")


def test_draft_cannot_be_paid(client, staff_headers, tenant):
    invoice_id = _create(client, staff_headers, tenant).json()["id"]
    payment = {"amount": "10.00", "payment_method": "CASH", "payment_date": date.today().isoformat()}
    response = client.post(f"/api/invoices/{invoice_id}/payments", json=payment, headers=staff_headers)
    assert response.status_code == 400


def test_delete_is_staff_only(client, staff_headers, tenant_headers, tenant):
    invoice_id = _create(client, staff_headers, tenant).json()["id"]

    assert client.delete(f"/api/invoices/{invoice_id}", headers=tenant_headers).status_code == 403
    assert client.delete(f"/api/invoices/{invoice_id}", headers=staff_headers).status_code == 204
    assert client.get(f"/api/invoices/{invoice_id}", headers=staff_headers).status_code == 404


def test_list_and_summary(client, staff_headers, tenant):
    invoice_id = _create(client, staff_headers, tenant).json()["id"]
    _create(client, staff_headers, tenant)
    client.post(f"/api/invoices/{invoice_id}/send", headers=staff_headers)

    listing = client.get("/api/invoices", params={"search": "doe", "status": "SENT"}, headers=staff_headers).json()
    assert listing["total"] == 1
    assert listing["invoices"][0]["id"] == invoice_id

    outstanding = client.get(f"/api/invoices/tenant/{tenant.tenant_id}/outstanding", headers=staff_headers).json()
    assert Decimal(outstanding["total_outstanding"]) == Decimal("1300.00")

    summary = client.get("/api/invoices/summary", headers=staff_headers).json()
    assert Decimal(summary["total_invoiced"]) == Decimal("2600.00")
    assert Decimal(summary["collection_rate"]) == Decimal("0")


def test_billing_job_trigger(client, staff_headers, tenant_headers, tenant):
    invoice_id = _create(client, staff_headers, tenant).json()["id"]
    client.post(f"/api/invoices/{invoice_id}/send", headers=staff_headers)
    run_date = (date.today() + timedelta(days=31)).isoformat()

    assert client.post("/api/billing-jobs/mark-overdue", headers=tenant_headers).status_code == 403
    assert client.post("/api/billing-jobs/close-books", headers=staff_headers).status_code == 422

    response = client.post("/api/billing-jobs/mark-overdue", params={"run_date": run_date}, headers=staff_headers)
    assert response.status_code == 200
    assert response.json() == {
        "job": "mark-overdue",
        "processed": 1,
        "failed": 0,
        "errors": [],
        "run_date": run_date,
    }
    detail = client.get(f"/api/invoices/{invoice_id}", headers=staff_headers).json()
    assert detail["status"] == "OVERDUE"
