"""Invoice money arithmetic: line amounts, tax, totals and balance."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence

from .entities import ZERO, Invoice, LineItem, Payment, as_decimal

CENT = Decimal("0.01")


def round_currency(amount: Decimal) -> Decimal:
    return as_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    paid_amount: Decimal
    balance: Decimal

    @property
    def is_settled(self) -> bool:
        return self.balance <= ZERO


def line_amount(quantity, rate) -> Decimal:
    return round_currency(as_decimal(quantity) * as_decimal(rate))


def compute_subtotal(line_items: Iterable) -> Decimal:
    subtotal = ZERO
    for item in line_items:
        subtotal += line_amount(item.quantity, item.rate)
    return round_currency(subtotal)


def compute_totals(
    line_items: Sequence,
    tax_rate,
    payment_amounts: Iterable = (),
) -> InvoiceTotals:
    """
    Derive the monetary fields of an invoice.

    ``tax_rate`` is a fraction (0.08 for 8%). Balance goes negative when the
    invoice is overpaid.
    """
    subtotal = compute_subtotal(line_items)
    tax_amount = round_currency(subtotal * as_decimal(tax_rate))
    total = subtotal + tax_amount
    paid_amount = round_currency(sum((as_decimal(a) for a in payment_amounts), ZERO))
    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total=total,
        paid_amount=paid_amount,
        balance=total - paid_amount,
    )


def with_line_amounts(line_items: Sequence[LineItem]) -> list:
    return [replace(item, amount=line_amount(item.quantity, item.rate)) for item in line_items]


def apply_totals(invoice: Invoice, payments: Iterable[Payment]) -> Invoice:
    """Return a copy of ``invoice`` with amounts recomputed from its payments."""
    amounts = [p.amount for p in payments if p.invoice_id == invoice.id]
    totals = compute_totals(invoice.line_items, invoice.tax_rate, amounts)
    return replace(
        invoice,
        line_items=with_line_amounts(invoice.line_items),
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        total=totals.total,
        paid_amount=totals.paid_amount,
        balance=totals.balance,
    )
