from decimal import Decimal
from unittest import mock

import pytest

from billing import models
from billing.domain.entities import ActivityType, InvoiceStatus, PaymentMethod
from billing.services import InvoiceService, PaymentService
from billing.validation.errors import (
    InvalidTransitionError,
    NotFoundError,
    ReconciliationError,
    StorageError,
    ValidationError,
)


@pytest.mark.django_db
class TestPaymentService:
    @pytest.fixture
    def service(self, store):
        return PaymentService(store, user_id="1")

    @pytest.fixture
    def invoices(self, store):
        return InvoiceService(store, user_id="1")

    def pay(self, service, invoice, amount, **extra):
        return service.record_payment(dict({"invoice_id": invoice.id, "amount": Decimal(amount)}, **extra))

    def test_partial_payment_updates_balance(self, service, invoices, invoice):
        payment = self.pay(service, invoice, "100.00", payment_method="bank_transfer")

        current = invoices.get_invoice(invoice.id)
        assert payment.payment_method == PaymentMethod.BANK_TRANSFER
        assert current.paid_amount == Decimal("100.00")
        assert current.balance == Decimal("35.00")
        assert current.status == InvoiceStatus.DRAFT

    def test_cached_fields_are_persisted(self, service, invoice):
        self.pay(service, invoice, "100.00")

        row = models.Invoice.objects.get(pk=invoice.id)
        assert row.paid_amount == Decimal("100.00")
        assert row.balance == Decimal("35.00")

    def test_full_payment_marks_paid(self, service, invoices, invoice, store):
        self.pay(service, invoice, "100.00")
        self.pay(service, invoice, "35.00")

        assert invoices.get_invoice(invoice.id).status == InvoiceStatus.PAID
        types = [entry.type for entry in store.list_activity()]
        assert ActivityType.INVOICE_PAID in types
        assert types.count(ActivityType.PAYMENT_RECEIVED) == 2

    def test_overpayment_is_accepted(self, service, invoices, invoice):
        self.pay(service, invoice, "150.00")

        current = invoices.get_invoice(invoice.id)
        assert current.balance == Decimal("-15.00")
        assert current.status == InvoiceStatus.PAID

    def test_rejects_non_positive_amount(self, service, invoice):
        with pytest.raises(ValidationError) as exc_info:
            self.pay(service, invoice, "0")
        assert exc_info.value.fields[0].field == "amount"
        assert models.Payment.objects.count() == 0

    def test_unknown_invoice(self, service):
        with pytest.raises(NotFoundError):
            service.record_payment({"invoice_id": "missing", "amount": Decimal("10.00")})

    def test_payment_on_cancelled_invoice_keeps_status(self, service, invoices, invoice):
        invoices.change_status(invoice.id, "cancelled")
        self.pay(service, invoice, "135.00")

        current = invoices.get_invoice(invoice.id)
        assert current.status == InvoiceStatus.CANCELLED
        assert current.paid_amount == Decimal("135.00")

    def test_delete_reopens_paid_invoice(self, service, invoices, invoice):
        invoices.change_status(invoice.id, "sent")
        first = self.pay(service, invoice, "100.00")
        self.pay(service, invoice, "35.00")

        after = service.delete_payment(first.id)

        assert after.status == InvoiceStatus.SENT
        assert after.paid_amount == Decimal("35.00")
        assert after.balance == Decimal("100.00")
        assert not models.Payment.objects.filter(pk=first.id).exists()

    def test_delete_unknown_payment(self, service):
        with pytest.raises(NotFoundError):
            service.delete_payment("missing")

    def test_update_in_place(self, service, invoices, invoice):
        payment = self.pay(service, invoice, "100.00")

        updated = service.update_payment(payment.id, {"amount": Decimal("135.00"), "notes": "Corrected"})

        assert updated.id == payment.id
        assert updated.notes == "Corrected"
        assert invoices.get_invoice(invoice.id).status == InvoiceStatus.PAID
        assert models.Payment.objects.count() == 1

    def test_update_cannot_move_payment(self, service, invoices, invoice, invoice_data):
        other = invoices.create_invoice(invoice_data)
        payment = self.pay(service, invoice, "100.00")

        with pytest.raises(ValidationError):
            service.update_payment(payment.id, {"invoice_id": other.id, "amount": Decimal("100.00")})

    def test_replace_without_in_place_update(self, service, store, invoices, invoice):
        payment = self.pay(service, invoice, "100.00")

        with mock.patch.object(store, "supports_in_place_update", False):
            updated = service.update_payment(payment.id, {"amount": Decimal("120.00")})

        assert updated.id == payment.id
        assert models.Payment.objects.get(pk=payment.id).amount == Decimal("120.00")
        assert invoices.get_invoice(invoice.id).balance == Decimal("15.00")

    def test_failed_replace_restores_original(self, service, store, invoices, invoice):
        payment = self.pay(service, invoice, "100.00")
        real_create = store.create_payment
        attempts = []

        def flaky_create(p):
            attempts.append(p)
            if len(attempts) == 1:
                raise StorageError("Storage unavailable during create_payment")
            return real_create(p)

        with mock.patch.object(store, "supports_in_place_update", False), \
                mock.patch.object(store, "create_payment", side_effect=flaky_create):
            with pytest.raises(StorageError):
                service.update_payment(payment.id, {"amount": Decimal("120.00")})

        assert len(attempts) == 2
        assert models.Payment.objects.get(pk=payment.id).amount == Decimal("100.00")
        assert invoices.get_invoice(invoice.id).paid_amount == Decimal("100.00")

    def test_failed_restore_requires_reconciliation(self, service, store, invoice):
        payment = self.pay(service, invoice, "100.00")

        with mock.patch.object(store, "supports_in_place_update", False), \
                mock.patch.object(store, "create_payment", side_effect=StorageError("down")):
            with pytest.raises(ReconciliationError) as exc_info:
                service.update_payment(payment.id, {"amount": Decimal("120.00")})

        assert exc_info.value.invoice_id == invoice.id
        assert exc_info.value.status == 409
        assert not models.Payment.objects.filter(pk=payment.id).exists()
        # cached fields match what is actually stored
        row = models.Invoice.objects.get(pk=invoice.id)
        assert row.paid_amount == Decimal("0.00")
        assert row.balance == Decimal("135.00")

    def test_list_filters_by_invoice(self, service, invoices, invoice, invoice_data):
        other = invoices.create_invoice(invoice_data)
        self.pay(service, invoice, "10.00")
        self.pay(service, invoice, "20.00")
        self.pay(service, other, "30.00")

        page = service.list_payments({"invoice_id": invoice.id})

        assert page.total == 2
        assert {p.amount for p in page.items} == {Decimal("10.00"), Decimal("20.00")}


@pytest.mark.django_db
class TestMarkPaid:
    def test_records_settlement_payment(self, store, invoice):
        service = InvoiceService(store, user_id="1")

        result = service.change_status(invoice.id, "paid")

        assert result.status == InvoiceStatus.PAID
        assert result.balance == Decimal("0.00")
        settlement = store.list_payments_for_invoice(invoice.id)
        assert len(settlement) == 1
        assert settlement[0].amount == Decimal("135.00")
        assert settlement[0].payment_method == PaymentMethod.OTHER
        assert settlement[0].notes == "Recorded when the invoice was marked as paid"

    def test_settlement_covers_only_remaining_balance(self, store, invoice):
        PaymentService(store, user_id="1").record_payment({"invoice_id": invoice.id, "amount": Decimal("100.00")})

        InvoiceService(store, user_id="1").change_status(invoice.id, "paid")

        amounts = sorted(p.amount for p in store.list_payments_for_invoice(invoice.id))
        assert amounts == [Decimal("35.00"), Decimal("100.00")]

    def test_cancelled_cannot_be_marked_paid(self, store, invoice):
        service = InvoiceService(store, user_id="1")
        service.change_status(invoice.id, "cancelled")

        with pytest.raises(InvalidTransitionError):
            service.change_status(invoice.id, "paid")
        assert store.list_payments_for_invoice(invoice.id) == []
