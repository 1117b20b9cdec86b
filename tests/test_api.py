import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from billing import models

CLIENT_PAYLOAD = {
    "name": "Acme Corp",
    "email": "billing@acme.test",
    "phone": "555-0100",
    "address": {
        "street": "1 Main St",
        "city": "Springfield",
        "state": "IL",
        "zipCode": "62701",
        "country": "US",
    },
}


def invoice_payload(client_id, **extra):
    payload = {
        "clientId": client_id,
        "taxRate": "0.08",
        "lineItems": [
            {"description": "Design", "quantity": "2", "rate": "50.00"},
            {"description": "Hosting", "quantity": "1", "rate": "25.00"},
        ],
    }
    payload.update(extra)
    return payload


@pytest.mark.django_db
class TestAuthentication:
    def test_requires_login(self):
        response = APIClient().get("/api/v1/clients/")

        assert response.status_code in (401, 403)
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "AUTHENTICATION_REQUIRED"
        assert body["request_id"]


@pytest.mark.django_db
class TestClientEndpoints:
    def test_create_returns_201_envelope(self, api_client):
        response = api_client.post("/api/v1/clients/", CLIENT_PAYLOAD, format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["name"] == "Acme Corp"
        assert body["data"]["address"]["zipCode"] == "62701"
        assert body["data"]["id"]

    def test_validation_error_lists_fields(self, api_client):
        response = api_client.post("/api/v1/clients/", {"name": "", "email": "not-an-email"}, format="json")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        fields = {f["field"] for f in error["fields"]}
        assert {"name", "email", "address"} <= fields

    def test_not_found(self, api_client):
        response = api_client.get("/api/v1/clients/missing/")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_list_is_paginated(self, api_client):
        for index in range(3):
            api_client.post("/api/v1/clients/", dict(CLIENT_PAYLOAD, name=f"Client {index}"), format="json")

        response = api_client.get("/api/v1/clients/", {"limit": 2, "sortBy": "name", "sortOrder": "desc"})

        body = response.json()
        assert response.status_code == 200
        assert [c["name"] for c in body["data"]] == ["Client 2", "Client 1"]
        assert body["meta"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2, "hasMore": True}

    def test_unknown_sort_field(self, api_client):
        response = api_client.get("/api/v1/clients/", {"sortBy": "password"})

        assert response.status_code == 400
        assert response.json()["error"]["fields"][0]["field"] == "sortBy"

    def test_delete_with_invoices_is_conflict(self, api_client):
        client_id = api_client.post("/api/v1/clients/", CLIENT_PAYLOAD, format="json").json()["data"]["id"]
        api_client.post("/api/v1/invoices/", invoice_payload(client_id), format="json")

        response = api_client.delete(f"/api/v1/clients/{client_id}/")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "RESOURCE_CONFLICT"


@pytest.mark.django_db
class TestInvoiceEndpoints:
    @pytest.fixture
    def client_id(self, api_client):
        return api_client.post("/api/v1/clients/", CLIENT_PAYLOAD, format="json").json()["data"]["id"]

    @pytest.fixture
    def invoice_id(self, api_client, client_id):
        return api_client.post("/api/v1/invoices/", invoice_payload(client_id), format="json").json()["data"]["id"]

    def test_create_computes_totals(self, api_client, client_id):
        response = api_client.post("/api/v1/invoices/", invoice_payload(client_id), format="json")

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["subtotal"] == 125.0
        assert data["taxAmount"] == 10.0
        assert data["total"] == 135.0
        assert data["balance"] == 135.0
        assert data["status"] == "draft"
        assert data["invoiceNumber"].startswith("INV-")

    def test_accepts_fractional_hours(self, api_client, client_id):
        payload = invoice_payload(
            client_id, lineItems=[{"description": "Consulting", "quantity": "1.125", "rate": "80.00"}],
        )

        response = api_client.post("/api/v1/invoices/", payload, format="json")

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["lineItems"][0]["quantity"] == 1.125
        assert data["subtotal"] == 90.0
        assert data["total"] == 97.2

    def test_due_date_before_issue_date(self, api_client, client_id):
        response = api_client.post(
            "/api/v1/invoices/",
            invoice_payload(client_id, issueDate="2024-02-01", dueDate="2024-01-01"),
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["error"]["fields"][0]["field"] == "dueDate"

    def test_invalid_line_item_is_reported_by_index(self, api_client, client_id):
        payload = invoice_payload(client_id)
        payload["lineItems"][1]["rate"] = "-5"

        response = api_client.post("/api/v1/invoices/", payload, format="json")

        assert response.status_code == 400
        assert response.json()["error"]["fields"][0]["field"] == "lineItems.1.rate"

    def test_payment_updates_invoice(self, api_client, invoice_id):
        response = api_client.post(
            "/api/v1/payments/", {"invoiceId": invoice_id, "amount": "135.00", "paymentMethod": "cash"}, format="json"
        )
        assert response.status_code == 201

        invoice = api_client.get(f"/api/v1/invoices/{invoice_id}/").json()["data"]
        assert invoice["status"] == "paid"
        assert invoice["balance"] == 0.0

    def test_status_transition(self, api_client, invoice_id):
        response = api_client.post(f"/api/v1/invoices/{invoice_id}/status/", {"status": "sent"}, format="json")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "sent"
        assert response.json()["data"]["sentDate"]

    def test_invalid_transition_is_422(self, api_client, invoice_id):
        api_client.post(f"/api/v1/invoices/{invoice_id}/status/", {"status": "cancelled"}, format="json")

        response = api_client.post(f"/api/v1/invoices/{invoice_id}/status/", {"status": "sent"}, format="json")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_STATE_TRANSITION"

    def test_transitions(self, api_client, invoice_id):
        data = api_client.get(f"/api/v1/invoices/{invoice_id}/transitions/").json()["data"]

        assert data == {"currentStatus": "draft", "availableTransitions": ["sent", "paid", "cancelled"]}

    def test_delete_with_payments_is_conflict(self, api_client, invoice_id):
        api_client.post("/api/v1/payments/", {"invoiceId": invoice_id, "amount": "10.00"}, format="json")

        response = api_client.delete(f"/api/v1/invoices/{invoice_id}/")

        assert response.status_code == 409
        assert models.Invoice.objects.filter(pk=invoice_id).exists()

    def test_delete_payment_returns_invoice(self, api_client, invoice_id):
        payment_id = api_client.post(
            "/api/v1/payments/", {"invoiceId": invoice_id, "amount": "135.00"}, format="json"
        ).json()["data"]["id"]

        response = api_client.delete(f"/api/v1/payments/{payment_id}/")

        assert response.status_code == 200
        assert response.json()["data"]["invoice"]["balance"] == 135.0

    def test_history(self, api_client, invoice_id):
        api_client.post(f"/api/v1/invoices/{invoice_id}/status/", {"status": "sent"}, format="json")

        data = api_client.get(f"/api/v1/invoices/{invoice_id}/history/").json()["data"]

        assert [entry["type"] for entry in data] == ["invoice_sent", "invoice_created"]

    def test_filter_by_status(self, api_client, client_id, invoice_id):
        api_client.post("/api/v1/invoices/", invoice_payload(client_id), format="json")
        api_client.post(f"/api/v1/invoices/{invoice_id}/status/", {"status": "sent"}, format="json")

        body = api_client.get("/api/v1/invoices/", {"status": "sent"}).json()

        assert [i["id"] for i in body["data"]] == [invoice_id]
        assert body["meta"]["total"] == 1


@pytest.mark.django_db
class TestOtherEndpoints:
    def test_company_settings_patch(self, api_client):
        response = api_client.patch("/api/v1/settings/company/", {"name": "BillingMonk LLC", "paymentTerms": 15}, format="json")

        assert response.status_code == 200
        data = api_client.get("/api/v1/settings/company/").json()["data"]
        assert data["name"] == "BillingMonk LLC"
        assert data["paymentTerms"] == 15

    def test_app_settings_reject_unknown_theme(self, api_client):
        response = api_client.patch("/api/v1/settings/app/", {"theme": "neon"}, format="json")
        assert response.status_code == 400

    def test_reports(self, api_client):
        dashboard = api_client.get("/api/v1/reports/dashboard/").json()["data"]
        statuses = api_client.get("/api/v1/reports/status/").json()["data"]
        revenue = api_client.get("/api/v1/reports/revenue/", {"period": "quarter", "range": "this_year"})

        assert dashboard["totalInvoices"] == 0
        assert [row["status"] for row in statuses] == ["draft", "sent", "paid", "overdue", "cancelled"]
        assert revenue.status_code == 200
        assert revenue.json()["data"] == []

    def test_unknown_revenue_range(self, api_client):
        response = api_client.get("/api/v1/reports/revenue/", {"range": "fortnight"})
        assert response.status_code == 400

    def test_activity_feed(self, api_client):
        api_client.post("/api/v1/clients/", CLIENT_PAYLOAD, format="json")

        body = api_client.get("/api/v1/activity/", {"entityType": "client"}).json()

        assert body["meta"]["total"] == 1
        assert body["data"][0]["type"] == "client_added"

    def test_project_task_time_entry_flow(self, api_client):
        client_id = api_client.post("/api/v1/clients/", CLIENT_PAYLOAD, format="json").json()["data"]["id"]
        project = api_client.post(
            "/api/v1/projects/", {"name": "Website", "clientId": client_id, "hourlyRate": "80.00"}, format="json"
        ).json()["data"]
        task = api_client.post(
            "/api/v1/tasks/", {"projectId": project["id"], "title": "Build pages"}, format="json"
        ).json()["data"]

        response = api_client.post("/api/v1/time-entries/", {
            "taskId": task["id"],
            "startTime": "2024-03-01T09:00:00Z",
            "endTime": "2024-03-01T10:30:00Z",
        }, format="json")

        assert response.status_code == 201
        assert response.json()["data"]["duration"] == 90
        task = api_client.get(f"/api/v1/tasks/{task['id']}/").json()["data"]
        assert task["actualHours"] == 1.5

    def test_recurring_process(self, api_client):
        response = api_client.post("/api/v1/recurring/process/", {"date": "2024-02-01"}, format="json")

        assert response.status_code == 200
        assert response.json()["data"]["total"] == 0

    def test_schema(self, api_client):
        assert api_client.get(reverse("api-schema")).status_code == 200


@pytest.mark.django_db
class TestHealth:
    def test_health(self, client):
        response = client.get("/health/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness(self, client):
        response = client.get("/health/ready/")
        assert response.status_code == 200
        assert response.json()["database"] == "up"

    def test_request_id_header(self, client):
        response = client.get("/health/live/", HTTP_X_REQUEST_ID="abc-123")
        assert response["X-Request-ID"] == "abc-123"
