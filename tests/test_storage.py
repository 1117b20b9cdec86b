from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
from django.db import DatabaseError, IntegrityError

from billing.domain.calculator import apply_totals
from billing.domain.entities import InvoiceStatus
from billing.storage import get_store
from billing.storage.django_store import DjangoBillingStore, translate_errors
from billing.validation.errors import ConflictError, StorageError
from tests.factories import (
    ClientFactory,
    InvoiceDataFactory,
    InvoiceFactory,
    LineItemFactory,
    PaymentFactory,
    ScheduleFactory,
)


class TestTranslateErrors:
    def test_database_error_becomes_storage_error(self):
        @translate_errors
        def broken():
            raise DatabaseError("connection lost")

        with pytest.raises(StorageError) as exc_info:
            broken()
        assert exc_info.value.retryable
        assert exc_info.value.status == 503

    def test_integrity_error_becomes_conflict(self):
        @translate_errors
        def duplicate():
            raise IntegrityError("UNIQUE constraint failed")

        with pytest.raises(ConflictError):
            duplicate()


@pytest.mark.django_db
class TestDjangoBillingStore:
    def test_get_store_uses_setting(self):
        assert isinstance(get_store(), DjangoBillingStore)

    def test_loads_model_rows(self, store):
        row = InvoiceFactory(status="sent")
        LineItemFactory(invoice=row, quantity=Decimal("2"), rate=Decimal("50.00"), amount=Decimal("100.00"))
        PaymentFactory(invoice=row, amount=Decimal("40.00"))

        invoice = store.get_invoice(row.id)

        assert invoice.status == InvoiceStatus.SENT
        assert invoice.client_id == row.client_id
        assert [item.rate for item in invoice.line_items] == [Decimal("50.00")]
        assert [p.amount for p in store.list_payments_for_invoice(row.id)] == [Decimal("40.00")]

    def test_invoice_round_trip_with_schedule(self, store):
        client = ClientFactory()
        invoice = apply_totals(
            InvoiceDataFactory(client_id=client.id, is_recurring=True, recurring_schedule=ScheduleFactory()),
            [],
        )

        store.create_invoice(invoice)
        loaded = store.get_invoice(invoice.id)

        assert loaded.recurring_schedule == invoice.recurring_schedule
        assert loaded.total == Decimal("135.00")
        assert [item.description for item in loaded.line_items] == [item.description for item in invoice.line_items]

    def test_update_replaces_line_items(self, store):
        client = ClientFactory()
        invoice = store.create_invoice(apply_totals(InvoiceDataFactory(client_id=client.id), []))

        updated = store.update_invoice(replace(invoice, line_items=invoice.line_items[:1]))

        assert len(updated.line_items) == 1

    def test_find_recurring_instance(self, store):
        parent = InvoiceFactory()
        child = InvoiceFactory(client=parent.client, recurring_parent_id=parent.id, recurring_period=date(2024, 2, 1))

        assert store.find_recurring_instance(parent.id, date(2024, 2, 1)).id == child.id
        assert store.find_recurring_instance(parent.id, date(2024, 3, 1)) is None

    def test_invoice_numbers_by_prefix(self, store):
        InvoiceFactory(invoice_number="INV-2024-0007")
        InvoiceFactory(invoice_number="INV-2023-0001")

        assert store.invoice_numbers("INV-2024-") == ["INV-2024-0007"]

    def test_update_payment_never_moves_it(self, store):
        payment = PaymentFactory()
        other = InvoiceFactory()
        loaded = store.get_payment(payment.id)

        saved = store.update_payment(replace(loaded, invoice_id=other.id, amount=Decimal("60.00")))

        assert saved.invoice_id == payment.invoice_id
        assert saved.amount == Decimal("60.00")

    def test_protected_client_delete_is_conflict(self, store):
        invoice = InvoiceFactory()

        with pytest.raises(ConflictError):
            store.delete_client(invoice.client_id)

    def test_missing_rows(self, store):
        assert store.get_invoice("missing") is None
        assert store.get_payment("missing") is None
        assert store.delete_invoice("missing") is False
