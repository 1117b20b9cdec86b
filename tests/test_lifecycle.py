from dataclasses import replace
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from billing.domain.calculator import apply_totals
from billing.domain.entities import InvoiceStatus
from billing.domain.lifecycle import (
    available_transitions,
    effective_status,
    is_overdue,
    settle_status,
    stored_status,
    transition,
)
from billing.validation.errors import InvalidTransitionError
from tests.factories import InvoiceDataFactory, PaymentDataFactory

NOW = datetime(2024, 1, 10, 12, 0, tzinfo=dt_timezone.utc)


def make_invoice(status=InvoiceStatus.DRAFT, paid=None):
    invoice = InvoiceDataFactory(status=status)
    payments = [PaymentDataFactory(invoice_id=invoice.id, amount=paid)] if paid else []
    return apply_totals(invoice, payments)


class TestTransition:
    def test_draft_to_sent_sets_sent_date(self):
        result = transition(make_invoice(), InvoiceStatus.SENT, NOW)

        assert result.status == InvoiceStatus.SENT
        assert result.sent_date == NOW

    def test_resend_keeps_first_sent_date(self):
        first = datetime(2024, 1, 2, tzinfo=dt_timezone.utc)
        invoice = replace(make_invoice(InvoiceStatus.PAID, paid=Decimal("100.00")), sent_date=first)

        result = transition(invoice, InvoiceStatus.SENT, NOW)
        assert result.sent_date == first

    @pytest.mark.parametrize("target", [InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.CANCELLED])
    def test_allowed_from_draft(self, target):
        assert transition(make_invoice(), target, NOW).status == target

    def test_sent_cannot_go_back_to_draft(self):
        with pytest.raises(InvalidTransitionError):
            transition(make_invoice(InvoiceStatus.SENT), InvoiceStatus.DRAFT, NOW)

    @pytest.mark.parametrize("target", [InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.PAID])
    def test_cancelled_is_final(self, target):
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(make_invoice(InvoiceStatus.CANCELLED), target, NOW)
        assert "cancelled invoices are final" in exc_info.value.message

    def test_explicit_overdue_is_refused(self):
        with pytest.raises(InvalidTransitionError):
            transition(make_invoice(InvoiceStatus.SENT), InvoiceStatus.OVERDUE, NOW)

    def test_same_status_is_a_no_op(self):
        invoice = make_invoice(InvoiceStatus.SENT)
        assert transition(invoice, InvoiceStatus.SENT, NOW) == invoice

    def test_paid_to_sent_needs_open_balance(self):
        settled = make_invoice(InvoiceStatus.PAID, paid=Decimal("135.00"))
        with pytest.raises(InvalidTransitionError):
            transition(settled, InvoiceStatus.SENT, NOW)

        reopened = make_invoice(InvoiceStatus.PAID, paid=Decimal("100.00"))
        assert transition(reopened, InvoiceStatus.SENT, NOW).status == InvoiceStatus.SENT

    def test_legacy_overdue_is_read_as_sent(self):
        invoice = make_invoice(InvoiceStatus.OVERDUE)
        assert stored_status(invoice) == InvoiceStatus.SENT
        assert transition(invoice, InvoiceStatus.PAID, NOW).status == InvoiceStatus.PAID


class TestAvailableTransitions:
    def test_draft(self):
        assert available_transitions(make_invoice()) == [
            InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.CANCELLED,
        ]

    def test_settled_paid_has_none(self):
        assert available_transitions(make_invoice(InvoiceStatus.PAID, paid=Decimal("135.00"))) == []

    def test_cancelled_has_none(self):
        assert available_transitions(make_invoice(InvoiceStatus.CANCELLED)) == []


class TestSettleStatus:
    def test_full_payment_marks_paid(self):
        invoice = make_invoice(InvoiceStatus.SENT, paid=Decimal("135.00"))
        assert settle_status(invoice, NOW).status == InvoiceStatus.PAID

    def test_draft_fully_paid_marks_paid(self):
        invoice = make_invoice(InvoiceStatus.DRAFT, paid=Decimal("200.00"))
        assert settle_status(invoice, NOW).status == InvoiceStatus.PAID

    def test_partial_payment_keeps_status(self):
        invoice = make_invoice(InvoiceStatus.SENT, paid=Decimal("35.00"))
        assert settle_status(invoice, NOW).status == InvoiceStatus.SENT

    def test_paid_with_reopened_balance_goes_back_to_sent(self):
        invoice = make_invoice(InvoiceStatus.PAID, paid=Decimal("35.00"))
        result = settle_status(invoice, NOW)

        assert result.status == InvoiceStatus.SENT
        assert result.sent_date == NOW

    def test_cancelled_stays_cancelled(self):
        invoice = make_invoice(InvoiceStatus.CANCELLED, paid=Decimal("135.00"))
        assert settle_status(invoice, NOW).status == InvoiceStatus.CANCELLED


class TestOverdue:
    def test_past_due_with_balance_is_overdue(self):
        invoice = make_invoice(InvoiceStatus.SENT)
        assert is_overdue(invoice, date(2024, 2, 1))
        assert effective_status(invoice, date(2024, 2, 1)) == InvoiceStatus.OVERDUE

    def test_due_today_is_not_overdue(self):
        assert not is_overdue(make_invoice(InvoiceStatus.SENT), date(2024, 1, 31))

    def test_draft_past_due_is_overdue(self):
        assert is_overdue(make_invoice(InvoiceStatus.DRAFT), date(2024, 2, 1))

    def test_paid_and_cancelled_are_never_overdue(self):
        assert not is_overdue(make_invoice(InvoiceStatus.PAID, paid=Decimal("135.00")), date(2024, 6, 1))
        assert not is_overdue(make_invoice(InvoiceStatus.CANCELLED), date(2024, 6, 1))

    def test_no_balance_is_not_overdue(self):
        invoice = make_invoice(InvoiceStatus.SENT, paid=Decimal("135.00"))
        assert not is_overdue(invoice, date(2024, 6, 1))
