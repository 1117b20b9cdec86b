"""Recurring schedule arithmetic and invoice cloning."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from .calculator import apply_totals
from .entities import (
    Invoice, InvoiceStatus, LineItem, RecurringFrequency, RecurringSchedule, new_id,
)


def add_period(base: date, frequency: RecurringFrequency, interval: int) -> date:
    if interval < 1:
        raise ValueError("Recurring interval must be a positive integer")
    frequency = RecurringFrequency(frequency)
    if frequency == RecurringFrequency.WEEKLY:
        return base + timedelta(weeks=interval)
    elif frequency == RecurringFrequency.MONTHLY:
        return base + relativedelta(months=interval)
    elif frequency == RecurringFrequency.QUARTERLY:
        return base + relativedelta(months=3 * interval)
    return base + relativedelta(years=interval)


def has_ended(schedule: RecurringSchedule, today: date) -> bool:
    return schedule.end_date is not None and today > schedule.end_date


def is_due(schedule: RecurringSchedule, today: date) -> bool:
    return (
        schedule.is_active
        and schedule.next_invoice_date <= today
        and not has_ended(schedule, today)
    )


def advance(schedule: RecurringSchedule, today: date) -> RecurringSchedule:
    """
    Move ``next_invoice_date`` past ``today``.

    Steps are taken from the last scheduled date, never from ``today``, so a
    schedule that missed several runs lands on its next real occurrence
    instead of drifting.
    """
    next_date = add_period(schedule.next_invoice_date, schedule.frequency, schedule.interval)
    while next_date <= today:
        next_date = add_period(next_date, schedule.frequency, schedule.interval)

    is_active = schedule.is_active
    if schedule.end_date is not None and next_date > schedule.end_date:
        is_active = False
    return replace(schedule, next_invoice_date=next_date, is_active=is_active)


def expire(schedule: RecurringSchedule) -> RecurringSchedule:
    return replace(schedule, is_active=False)


def build_recurring_invoice(
    template: Invoice,
    period: date,
    today: date,
    invoice_number: str,
    now: Optional[datetime] = None,
) -> Invoice:
    """Clone a recurring invoice into a fresh draft for ``period``."""
    payment_terms = template.due_date - template.issue_date
    invoice = Invoice(
        id=new_id(),
        invoice_number=invoice_number,
        client_id=template.client_id,
        template_id=template.template_id,
        status=InvoiceStatus.DRAFT,
        issue_date=today,
        due_date=today + payment_terms,
        line_items=[
            LineItem(id=new_id(), description=item.description, quantity=item.quantity, rate=item.rate)
            for item in template.line_items
        ],
        tax_rate=template.tax_rate,
        notes=template.notes,
        is_recurring=False,
        recurring_parent_id=template.id,
        recurring_period=period,
        created_at=now,
        updated_at=now,
    )
    return apply_totals(invoice, [])
