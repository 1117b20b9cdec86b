"""Keeping an invoice's paid amount, balance and status in step with its payments."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List

from billing.validation.errors import NotFoundError, ValidationError

from .calculator import apply_totals
from .entities import ZERO, Invoice, Payment
from .lifecycle import settle_status, with_effective_status


def validate_payment(invoice: Invoice, payment: Payment) -> None:
    if payment.amount is None or payment.amount <= ZERO:
        raise ValidationError.for_field("amount", "Payment amount must be greater than 0")
    if payment.invoice_id != invoice.id:
        raise ValidationError.for_field(
            "invoiceId",
            f"Payment references invoice {payment.invoice_id}, not {invoice.id}",
        )


def recompute_invoice(invoice: Invoice, payments: Iterable[Payment], now: datetime) -> Invoice:
    """Re-derive amounts and status from the complete current payment set."""
    return settle_status(apply_totals(invoice, payments), now)


def current_view(invoice: Invoice, payments: Iterable[Payment], today: date, now: datetime) -> Invoice:
    """The invoice as it should be shown right now, overdue included."""
    return with_effective_status(recompute_invoice(invoice, payments, now), today)


def apply_payment(
    invoice: Invoice,
    payments: Iterable[Payment],
    payment: Payment,
    now: datetime,
) -> Invoice:
    validate_payment(invoice, payment)
    current: List[Payment] = [p for p in payments if p.id != payment.id]
    current.append(payment)
    return recompute_invoice(invoice, current, now)


def remove_payment(
    invoice: Invoice,
    payments: Iterable[Payment],
    payment_id: str,
    now: datetime,
) -> Invoice:
    payments = list(payments)
    remaining = [p for p in payments if p.id != payment_id]
    if len(remaining) == len(payments):
        raise NotFoundError("Payment", payment_id)
    return recompute_invoice(invoice, remaining, now)
