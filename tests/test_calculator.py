from decimal import Decimal

from billing.domain.calculator import apply_totals, compute_totals, line_amount, round_currency
from tests.factories import InvoiceDataFactory, LineItemDataFactory, PaymentDataFactory


class TestComputeTotals:
    def setup_method(self):
        self.items = [
            LineItemDataFactory(quantity=Decimal("2"), rate=Decimal("50.00")),
            LineItemDataFactory(quantity=Decimal("1"), rate=Decimal("25.00")),
        ]

    def test_subtotal_tax_and_total(self):
        totals = compute_totals(self.items, Decimal("0.08"))

        assert totals.subtotal == Decimal("125.00")
        assert totals.tax_amount == Decimal("10.00")
        assert totals.total == Decimal("135.00")
        assert totals.paid_amount == Decimal("0.00")
        assert totals.balance == Decimal("135.00")
        assert not totals.is_settled

    def test_partial_payment_leaves_balance(self):
        totals = compute_totals(self.items, Decimal("0.08"), [Decimal("100.00")])

        assert totals.paid_amount == Decimal("100.00")
        assert totals.balance == Decimal("35.00")

    def test_overpayment_gives_negative_balance(self):
        totals = compute_totals(self.items, Decimal("0.08"), [Decimal("100.00"), Decimal("50.00")])

        assert totals.balance == Decimal("-15.00")
        assert totals.is_settled

    def test_empty_invoice_is_zero(self):
        totals = compute_totals([], Decimal("0.08"))
        assert totals.total == Decimal("0.00")
        assert totals.balance == Decimal("0.00")


class TestRounding:
    def test_half_up_to_cents(self):
        assert round_currency(Decimal("1.005")) == Decimal("1.01")
        assert round_currency(Decimal("1.004")) == Decimal("1.00")

    def test_line_amount_is_rounded(self):
        assert line_amount(Decimal("3"), Decimal("0.335")) == Decimal("1.01")

    def test_tax_is_rounded_after_subtotal(self):
        items = [LineItemDataFactory(quantity=Decimal("1"), rate=Decimal("10.00"))]
        totals = compute_totals(items, Decimal("0.0825"))

        assert totals.tax_amount == Decimal("0.83")
        assert totals.total == Decimal("10.83")


class TestApplyTotals:
    def test_sets_line_amounts_and_totals(self):
        invoice = InvoiceDataFactory()
        result = apply_totals(invoice, [])

        assert [item.amount for item in result.line_items] == [Decimal("100.00"), Decimal("25.00")]
        assert result.total == Decimal("135.00")
        assert invoice.total == Decimal("0.00")

    def test_ignores_payments_of_other_invoices(self):
        invoice = InvoiceDataFactory()
        payments = [
            PaymentDataFactory(invoice_id=invoice.id, amount=Decimal("35.00")),
            PaymentDataFactory(amount=Decimal("500.00")),
        ]
        result = apply_totals(invoice, payments)

        assert result.paid_amount == Decimal("35.00")
        assert result.balance == Decimal("100.00")
