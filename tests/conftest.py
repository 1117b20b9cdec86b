from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from billing.services import ClientService, InvoiceService
from billing.storage.django_store import DjangoBillingStore


@pytest.fixture(autouse=True)
def fast_password_hashing(settings):
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username="owner",
        email="owner@example.com",
        password="correct-horse-battery",
    )


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def store(db):
    return DjangoBillingStore()


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def client_record(store):
    return ClientService(store, user_id="1").create_client({
        "name": "Acme Corp",
        "email": "billing@acme.test",
        "phone": "555-0100",
        "address": {
            "street": "1 Main St",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62701",
            "country": "US",
        },
    })


@pytest.fixture
def invoice_data(client_record, today):
    return {
        "client_id": client_record.id,
        "issue_date": today,
        "due_date": today + timedelta(days=30),
        "tax_rate": Decimal("0.08"),
        "line_items": [
            {"description": "Design", "quantity": Decimal("2"), "rate": Decimal("50.00")},
            {"description": "Hosting", "quantity": Decimal("1"), "rate": Decimal("25.00")},
        ],
    }


@pytest.fixture
def invoice(store, invoice_data):
    """Draft invoice: subtotal 125.00, tax 10.00, total 135.00."""
    return InvoiceService(store, user_id="1").create_invoice(invoice_data)
