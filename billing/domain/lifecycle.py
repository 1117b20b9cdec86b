"""
Invoice status rules.

Stored statuses are draft, sent, paid and cancelled. ``overdue`` is derived
when the invoice is read (past due, balance left, not paid or cancelled) and
is never written back.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import List

from billing.validation.errors import InvalidTransitionError

from .entities import ZERO, Invoice, InvoiceStatus

VALID_TRANSITIONS = {
    InvoiceStatus.DRAFT: [InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.CANCELLED],
    InvoiceStatus.SENT: [InvoiceStatus.PAID, InvoiceStatus.CANCELLED],
    InvoiceStatus.PAID: [InvoiceStatus.SENT],
    InvoiceStatus.CANCELLED: [],
}


def stored_status(invoice: Invoice) -> InvoiceStatus:
    # Legacy rows may carry a persisted "overdue".
    if invoice.status == InvoiceStatus.OVERDUE:
        return InvoiceStatus.SENT
    return invoice.status


def can_transition(invoice: Invoice, new_status: InvoiceStatus) -> bool:
    current = stored_status(invoice)
    if new_status not in VALID_TRANSITIONS.get(current, []):
        return False
    if current == InvoiceStatus.PAID and new_status == InvoiceStatus.SENT:
        return invoice.balance > ZERO
    return True


def available_transitions(invoice: Invoice) -> List[InvoiceStatus]:
    current = stored_status(invoice)
    return [status for status in VALID_TRANSITIONS.get(current, []) if can_transition(invoice, status)]


def _mark_sent(invoice: Invoice, now: datetime) -> Invoice:
    return replace(
        invoice,
        status=InvoiceStatus.SENT,
        sent_date=invoice.sent_date or now,
    )


def transition(invoice: Invoice, new_status: InvoiceStatus, now: datetime) -> Invoice:
    """Apply an explicit, user-requested status change."""
    new_status = InvoiceStatus(new_status)
    current = stored_status(invoice)

    if new_status == InvoiceStatus.OVERDUE:
        raise InvalidTransitionError(current.value, new_status.value, "overdue is derived from the due date")
    if current == new_status:
        return replace(invoice, status=current)
    if not can_transition(invoice, new_status):
        reason = ""
        if current == InvoiceStatus.CANCELLED:
            reason = "cancelled invoices are final"
        elif current == InvoiceStatus.PAID and new_status == InvoiceStatus.SENT:
            reason = "invoice has no outstanding balance"
        raise InvalidTransitionError(current.value, new_status.value, reason)

    if new_status == InvoiceStatus.SENT:
        return _mark_sent(invoice, now)
    return replace(invoice, status=new_status)


def settle_status(invoice: Invoice, now: datetime) -> Invoice:
    """
    Apply the automatic rules after amounts were recomputed.

    A cancelled invoice keeps its status whatever its balance. Money received
    that covers the total settles the invoice as paid; a paid invoice whose
    balance reopened goes back to sent.
    """
    current = stored_status(invoice)
    if current == InvoiceStatus.CANCELLED:
        return replace(invoice, status=current)
    if invoice.paid_amount > ZERO and invoice.balance <= ZERO:
        return replace(invoice, status=InvoiceStatus.PAID)
    if current == InvoiceStatus.PAID and invoice.balance > ZERO:
        return _mark_sent(invoice, now)
    return replace(invoice, status=current)


def is_overdue(invoice: Invoice, today: date) -> bool:
    return (
        stored_status(invoice) in (InvoiceStatus.DRAFT, InvoiceStatus.SENT)
        and invoice.balance > ZERO
        and today > invoice.due_date
    )


def effective_status(invoice: Invoice, today: date) -> InvoiceStatus:
    if is_overdue(invoice, today):
        return InvoiceStatus.OVERDUE
    return stored_status(invoice)


def with_effective_status(invoice: Invoice, today: date) -> Invoice:
    return replace(invoice, status=effective_status(invoice, today))
