from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings

from billing.domain.calculator import apply_totals
from billing.domain.entities import (
    ZERO,
    ActivityType,
    EntityType,
    Invoice,
    InvoiceStatus,
    LineItem,
    Payment,
    PaymentMethod,
    RecurringFrequency,
    RecurringSchedule,
    as_decimal,
    new_id,
)
from billing.domain.filters import Page, filter_invoices, paginate
from billing.domain.lifecycle import available_transitions, can_transition, stored_status, transition
from billing.domain.payments import current_view, recompute_invoice
from billing.domain.time_tracking import billable_line_items
from billing.validation.errors import (
    BillingError,
    ConflictError,
    FieldError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

from .base import BillingService

logger = logging.getLogger(__name__)

STATUS_ACTIVITY = {
    InvoiceStatus.SENT: ActivityType.INVOICE_SENT,
    InvoiceStatus.PAID: ActivityType.INVOICE_PAID,
    InvoiceStatus.CANCELLED: ActivityType.INVOICE_CANCELLED,
}


def group_payments(payments: Iterable[Payment]) -> Dict[str, List[Payment]]:
    grouped: Dict[str, List[Payment]] = defaultdict(list)
    for payment in payments:
        grouped[payment.invoice_id].append(payment)
    return grouped


def build_line_items(items: Iterable[Dict[str, Any]]) -> List[LineItem]:
    line_items = []
    for index, item in enumerate(items):
        quantity = as_decimal(item.get("quantity"), Decimal("1"))
        rate = as_decimal(item.get("rate"))
        if quantity < 0 or rate < 0:
            raise ValidationError.for_field(f"lineItems.{index}", "Quantity and rate cannot be negative")
        line_items.append(LineItem(
            id=item.get("id") or new_id(),
            description=item.get("description", ""),
            quantity=quantity,
            rate=rate,
        ))
    return line_items


def build_schedule(data: Dict[str, Any]) -> RecurringSchedule:
    start_date = data.get("start_date")
    if start_date is None:
        raise ValidationError.for_field("recurringSchedule.startDate", "Start date is required")
    schedule = RecurringSchedule(
        frequency=RecurringFrequency(data.get("frequency", RecurringFrequency.MONTHLY)),
        interval=int(data.get("interval") or 1),
        start_date=start_date,
        end_date=data.get("end_date"),
        next_invoice_date=data.get("next_invoice_date") or start_date,
        is_active=data.get("is_active", True),
    )
    errors = []
    if schedule.interval < 1:
        errors.append(FieldError("recurringSchedule.interval", "FIELD_OUT_OF_RANGE", "Interval must be at least 1"))
    if schedule.next_invoice_date < schedule.start_date:
        errors.append(FieldError(
            "recurringSchedule.nextInvoiceDate", "FIELD_OUT_OF_RANGE", "Next invoice date cannot be before the start date"
        ))
    if schedule.end_date is not None and schedule.end_date < schedule.start_date:
        errors.append(FieldError(
            "recurringSchedule.endDate", "FIELD_OUT_OF_RANGE", "End date cannot be before the start date"
        ))
    if errors:
        raise ValidationError("Recurring schedule is invalid", fields=errors)
    return schedule


class InvoiceService(BillingService):

    # Numbering

    def next_invoice_number(self, today: Optional[date] = None) -> str:
        year = (today or self.today()).year
        prefix = f"{settings.BILLING['INVOICE_NUMBER_PREFIX']}-{year}-"
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        highest = 0
        for number in self.store.invoice_numbers(prefix):
            match = pattern.match(number)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{prefix}{highest + 1:04d}"

    # Reads

    def _load(self, invoice_id: str) -> Invoice:
        invoice = self.store.get_invoice(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    def view(self, invoice: Invoice, payments: Optional[List[Payment]] = None) -> Invoice:
        if payments is None:
            payments = self.store.list_payments_for_invoice(invoice.id)
        return current_view(invoice, payments, self.today(), self.now())

    def current_invoices(self) -> List[Invoice]:
        """Every invoice recomputed from the full payment set, overdue applied."""
        by_invoice = group_payments(self.store.list_payments())
        return [self.view(invoice, by_invoice.get(invoice.id, [])) for invoice in self.store.list_invoices()]

    def get_invoice(self, invoice_id: str) -> Invoice:
        return self.view(self._load(invoice_id))

    def list_invoices(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: Optional[str] = "created_at",
        sort_order: str = "desc",
    ) -> Page:
        filters = dict(filters or {})
        if filters.get("search"):
            filters["client_names"] = {c.id: c.name for c in self.store.list_clients()}
        invoices = filter_invoices(self.current_invoices(), **filters)
        return paginate(invoices, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)

    def list_payments(self, invoice_id: str) -> List[Payment]:
        self._load(invoice_id)
        return sorted(
            self.store.list_payments_for_invoice(invoice_id),
            key=lambda p: (p.payment_date, p.created_at or self.now()),
        )

    def transitions(self, invoice_id: str) -> List[InvoiceStatus]:
        return available_transitions(recompute_invoice(
            self._load(invoice_id), self.store.list_payments_for_invoice(invoice_id), self.now()
        ))

    # Writes

    def _require_client(self, client_id: Optional[str]) -> None:
        if not client_id:
            raise ValidationError.for_field("clientId", "Client is required")
        if self.store.get_client(client_id) is None:
            raise ValidationError.for_field("clientId", f"Client {client_id} does not exist")

    def _line_items_from_tasks(self, task_ids: List[str], default_rate: Decimal) -> List[LineItem]:
        tasks = []
        for task_id in task_ids:
            task = self.store.get_task(task_id)
            if task is None:
                raise ValidationError.for_field("taskIds", f"Task {task_id} does not exist")
            tasks.append(task)
        entries = [e for e in self.store.list_time_entries() if e.task_id in set(task_ids)]
        return billable_line_items(tasks, entries, self.store.list_projects(), default_rate)

    def create_invoice(self, data: Dict[str, Any]) -> Invoice:
        self._require_client(data.get("client_id"))
        company = self.store.get_company_settings()
        now = self.now()

        template = None
        if data.get("template_id"):
            template = self.store.get_template(data["template_id"])
            if template is None:
                raise ValidationError.for_field("templateId", f"Template {data['template_id']} does not exist")

        line_items = build_line_items(data.get("line_items") or [])
        if not line_items and template is not None:
            line_items = build_line_items(item.to_record() for item in template.line_items)
        if data.get("task_ids"):
            line_items += self._line_items_from_tasks(data["task_ids"], data.get("default_rate") or ZERO)

        tax_rate = data.get("tax_rate")
        if tax_rate is None:
            tax_rate = template.tax_rate if template is not None else company.tax_rate

        issue_date = data.get("issue_date") or self.today()
        due_date = data.get("due_date") or issue_date + timedelta(days=company.payment_terms)
        if due_date < issue_date:
            raise ValidationError.for_field("dueDate", "Due date cannot be before issue date")

        schedule = None
        if data.get("is_recurring"):
            if not data.get("recurring_schedule"):
                raise ValidationError.for_field("recurringSchedule", "Recurring schedule is required")
            schedule = build_schedule(data["recurring_schedule"])

        invoice = Invoice(
            id=new_id(),
            invoice_number=self.next_invoice_number(issue_date),
            client_id=data["client_id"],
            template_id=template.id if template is not None else None,
            status=InvoiceStatus.DRAFT,
            issue_date=issue_date,
            due_date=due_date,
            line_items=line_items,
            tax_rate=as_decimal(tax_rate),
            notes=data.get("notes", template.notes if template is not None else None),
            is_recurring=schedule is not None,
            recurring_schedule=schedule,
            created_at=now,
            updated_at=now,
        )
        invoice = self.store.create_invoice(apply_totals(invoice, []))
        logger.info(f"Invoice {invoice.id} ({invoice.invoice_number}) created")
        self.activity.record(
            ActivityType.INVOICE_CREATED,
            f"Invoice {invoice.invoice_number} created",
            entity_type=EntityType.INVOICE,
            entity_id=invoice.id,
            entity_name=invoice.invoice_number,
            amount=invoice.total,
            new=invoice,
        )
        return self.view(invoice, [])

    def update_invoice(self, invoice_id: str, data: Dict[str, Any]) -> Invoice:
        existing = self._load(invoice_id)
        changes: Dict[str, Any] = {}

        if "client_id" in data and data["client_id"] != existing.client_id:
            self._require_client(data["client_id"])
            changes["client_id"] = data["client_id"]
        if "line_items" in data:
            changes["line_items"] = build_line_items(data["line_items"])
        for name in ("issue_date", "due_date", "tax_rate", "notes"):
            if name in data and data[name] is not None:
                changes[name] = data[name]
        if "is_recurring" in data or "recurring_schedule" in data:
            is_recurring = data.get("is_recurring", existing.is_recurring)
            schedule_data = data.get("recurring_schedule")
            if is_recurring and schedule_data:
                changes["recurring_schedule"] = build_schedule(schedule_data)
            elif is_recurring and existing.recurring_schedule is None:
                raise ValidationError.for_field("recurringSchedule", "Recurring schedule is required")
            elif not is_recurring:
                changes["recurring_schedule"] = None
            changes["is_recurring"] = bool(is_recurring)

        invoice = replace(existing, updated_at=self.now(), **changes)
        if invoice.due_date < invoice.issue_date:
            raise ValidationError.for_field("dueDate", "Due date cannot be before issue date")

        payments = self.store.list_payments_for_invoice(invoice_id)
        invoice = self.store.update_invoice(recompute_invoice(invoice, payments, self.now()))
        logger.info(f"Invoice {invoice_id} updated")
        self.activity.record(
            ActivityType.INVOICE_UPDATED,
            f"Invoice {invoice.invoice_number} updated",
            entity_type=EntityType.INVOICE,
            entity_id=invoice.id,
            entity_name=invoice.invoice_number,
            amount=invoice.total,
            previous=existing,
            new=invoice,
        )
        return self.view(invoice, payments)

    def delete_invoice(self, invoice_id: str) -> None:
        invoice = self._load(invoice_id)
        if self.store.list_payments_for_invoice(invoice_id):
            raise ConflictError(
                f"Invoice {invoice.invoice_number} has payments; delete them before deleting the invoice"
            )
        if not self.store.delete_invoice(invoice_id):
            raise NotFoundError("Invoice", invoice_id)
        logger.info(f"Invoice {invoice_id} deleted")
        self.activity.record(
            ActivityType.INVOICE_DELETED,
            f"Invoice {invoice.invoice_number} deleted",
            entity_type=EntityType.INVOICE,
            entity_id=invoice.id,
            entity_name=invoice.invoice_number,
            amount=invoice.total,
            previous=invoice,
        )

    def change_status(self, invoice_id: str, new_status: str) -> Invoice:
        """
        Apply a user-requested status change.

        Marking an invoice with an open balance as paid records a payment
        for that balance, so paid keeps meaning "fully covered by payments".
        """
        try:
            new_status = InvoiceStatus(new_status)
        except ValueError:
            raise ValidationError.for_field("status", f"'{new_status}' is not a valid status")

        existing = self._load(invoice_id)
        payments = self.store.list_payments_for_invoice(invoice_id)
        now = self.now()
        invoice = recompute_invoice(existing, payments, now)
        previous_status = stored_status(invoice)

        if new_status == InvoiceStatus.PAID and invoice.balance > ZERO and previous_status != InvoiceStatus.PAID:
            if not can_transition(invoice, new_status):
                raise InvalidTransitionError(previous_status.value, new_status.value)
            settlement = self.store.create_payment(Payment(
                id=new_id(),
                invoice_id=invoice.id,
                amount=invoice.balance,
                payment_date=self.today(),
                payment_method=PaymentMethod.OTHER,
                notes="Recorded when the invoice was marked as paid",
                created_at=now,
            ))
            logger.info(f"Settlement payment {settlement.id} of {settlement.amount} recorded for invoice {invoice_id}")
            payments = payments + [settlement]
            updated = recompute_invoice(invoice, payments, now)
        else:
            updated = transition(invoice, new_status, now)

        if stored_status(updated) == previous_status:
            return self.view(updated, payments)

        updated = self.store.update_invoice(replace(updated, updated_at=now))
        logger.info(f"Invoice {invoice_id} transitioned from {previous_status.value} to {updated.status.value}")
        self.activity.record(
            STATUS_ACTIVITY.get(updated.status, ActivityType.INVOICE_UPDATED),
            f"Invoice {updated.invoice_number} marked as {updated.status.value}",
            entity_type=EntityType.INVOICE,
            entity_id=updated.id,
            entity_name=updated.invoice_number,
            amount=updated.total,
            previous=existing,
            new=updated,
            metadata={"from": previous_status.value, "to": updated.status.value},
        )
        return self.view(updated, payments)

    def reconcile(self, invoice_id: str) -> Invoice:
        """Re-derive the cached amounts and status from the persisted payments."""
        existing = self._load(invoice_id)
        payments = self.store.list_payments_for_invoice(invoice_id)
        invoice = recompute_invoice(existing, payments, self.now())

        drifted = (
            (existing.subtotal, existing.tax_amount, existing.total, existing.paid_amount, existing.balance, existing.status)
            != (invoice.subtotal, invoice.tax_amount, invoice.total, invoice.paid_amount, invoice.balance, invoice.status)
        )
        if drifted:
            invoice = self.store.update_invoice(invoice)
            logger.warning(
                f"Invoice {invoice_id} reconciled: paid {existing.paid_amount} -> {invoice.paid_amount}, "
                f"balance {existing.balance} -> {invoice.balance}, status {existing.status.value} -> {invoice.status.value}"
            )
        return self.view(invoice, payments)

    def reconcile_all(self) -> Dict[str, int]:
        results = {"total": 0, "success": 0, "failed": 0}
        for invoice in self.store.list_invoices():
            results["total"] += 1
            try:
                self.reconcile(invoice.id)
                results["success"] += 1
            except BillingError as e:
                logger.exception(f"Failed to reconcile invoice {invoice.id}: {e}")
                results["failed"] += 1
        return results
