from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Optional

from billing.domain.entities import ActivityType, EntityType, Invoice
from billing.domain.recurring import advance, build_recurring_invoice, expire, has_ended, is_due
from billing.validation.errors import BillingError, NotFoundError, ValidationError

from .base import BillingService
from .invoice_service import InvoiceService

logger = logging.getLogger(__name__)


@dataclass
class ScheduleRun:
    parent_id: str
    period: date
    invoice: Optional[Invoice] = None
    created: bool = False

    def to_record(self) -> Dict[str, Any]:
        return {
            "recurringParentId": self.parent_id,
            "period": self.period.isoformat(),
            "invoiceId": self.invoice.id if self.invoice else None,
            "invoiceNumber": self.invoice.invoice_number if self.invoice else None,
            "created": self.created,
        }


@dataclass
class SweepResult:
    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    expired: int = 0
    runs: List[ScheduleRun] = field(default_factory=list)

    def to_record(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "success": self.success,
            "failed": self.failed,
            "skipped": self.skipped,
            "expired": self.expired,
            "runs": [run.to_record() for run in self.runs],
        }


class RecurringService(BillingService):
    """
    Generates invoices from recurring templates.

    Each run is keyed by (template invoice id, scheduled date). The new
    invoice is created first and the schedule advanced only once that
    create has returned; if advancing then fails, the next run finds the
    invoice already generated for the period and only advances.
    """

    def recurring_invoices(self) -> List[Invoice]:
        return [i for i in self.store.list_invoices() if i.is_recurring and i.recurring_schedule is not None]

    def due_invoices(self, today: Optional[date] = None) -> List[Invoice]:
        today = today or self.today()
        return [i for i in self.recurring_invoices() if is_due(i.recurring_schedule, today)]

    def process_schedule(self, invoice_id: str, today: Optional[date] = None, dry_run: bool = False) -> ScheduleRun:
        today = today or self.today()
        template = self.store.get_invoice(invoice_id)
        if template is None:
            raise NotFoundError("Invoice", invoice_id)
        schedule = template.recurring_schedule
        if not template.is_recurring or schedule is None:
            raise ValidationError.for_field("isRecurring", f"Invoice {template.invoice_number} is not recurring")

        period = schedule.next_invoice_date
        run = ScheduleRun(parent_id=template.id, period=period)
        if not is_due(schedule, today):
            logger.info(f"Schedule on invoice {template.id} is not due (next {period})")
            return run

        run.invoice = self.store.find_recurring_instance(template.id, period)
        if run.invoice is not None:
            logger.info(f"Invoice {run.invoice.invoice_number} already generated for {template.id} period {period}")
        elif dry_run:
            logger.info(f"[dry run] Would generate invoice from {template.invoice_number} for period {period}")
            return run
        else:
            number = InvoiceService(self.store, user_id=self.user_id).next_invoice_number(today)
            new_invoice = build_recurring_invoice(template, period, today, number, now=self.now())
            run.invoice = self.store.create_invoice(new_invoice)
            run.created = True
            logger.info(f"Generated invoice {run.invoice.invoice_number} from {template.invoice_number} for period {period}")
            self.activity.record(
                ActivityType.INVOICE_CREATED,
                f"Recurring invoice {run.invoice.invoice_number} generated from {template.invoice_number}",
                entity_type=EntityType.INVOICE,
                entity_id=run.invoice.id,
                entity_name=run.invoice.invoice_number,
                amount=run.invoice.total,
                new=run.invoice,
                metadata={"recurringParentId": template.id, "period": period},
            )

        if dry_run:
            return run

        advanced = advance(schedule, today)
        self.store.update_invoice(replace(template, recurring_schedule=advanced, updated_at=self.now()))
        logger.info(
            f"Schedule on invoice {template.id} advanced to {advanced.next_invoice_date}"
            + ("" if advanced.is_active else " and is now inactive")
        )
        return run

    def expire_schedule(self, template: Invoice) -> Invoice:
        invoice = self.store.update_invoice(
            replace(template, recurring_schedule=expire(template.recurring_schedule), updated_at=self.now())
        )
        logger.info(f"Schedule on invoice {template.id} ended on {template.recurring_schedule.end_date}; marked inactive")
        return invoice

    def process_due(self, today: Optional[date] = None, dry_run: bool = False) -> SweepResult:
        today = today or self.today()
        result = SweepResult()

        for template in self.recurring_invoices():
            schedule = template.recurring_schedule
            if not schedule.is_active:
                continue
            if has_ended(schedule, today):
                if not dry_run:
                    try:
                        self.expire_schedule(template)
                    except BillingError:
                        logger.exception(f"Failed to expire schedule on invoice {template.id}")
                        result.failed += 1
                        continue
                result.expired += 1
                continue
            if not is_due(schedule, today):
                continue

            result.total += 1
            try:
                run = self.process_schedule(template.id, today, dry_run=dry_run)
            except BillingError:
                logger.exception(f"Failed to process schedule on invoice {template.id}")
                result.failed += 1
                continue

            result.runs.append(run)
            if run.created:
                result.success += 1
            else:
                result.skipped += 1

        logger.info(
            f"Recurring sweep for {today}: {result.success} generated, {result.skipped} skipped, "
            f"{result.failed} failed, {result.expired} expired"
        )
        return result
