from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from billing.domain.entities import ActivityType, EntityType, Invoice, InvoiceStatus, Payment, PaymentMethod, as_decimal, new_id
from billing.domain.filters import Page, filter_payments, paginate
from billing.domain.payments import apply_payment, recompute_invoice, remove_payment, validate_payment
from billing.validation.errors import BillingError, NotFoundError, ReconciliationError, ValidationError

from .base import BillingService

logger = logging.getLogger(__name__)


class PaymentService(BillingService):
    """
    Recording, editing and removing payments.

    The owning invoice's paid amount, balance and status are always
    re-derived from the payments actually persisted, never adjusted by a
    delta, so a retry after any failure converges on the right numbers.
    """

    def _invoice(self, invoice_id: str) -> Invoice:
        invoice = self.store.get_invoice(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.store.get_payment(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    def list_payments(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: Optional[str] = "payment_date",
        sort_order: str = "desc",
    ) -> Page:
        payments = filter_payments(self.store.list_payments(), **(filters or {}))
        return paginate(payments, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)

    def resync_invoice(self, invoice_id: str) -> Invoice:
        """Persist the invoice's derived fields as implied by its stored payments."""
        invoice = self._invoice(invoice_id)
        payments = self.store.list_payments_for_invoice(invoice_id)
        return self.store.update_invoice(recompute_invoice(invoice, payments, self.now()))

    def _record_status_change(self, before: Invoice, after: Invoice) -> None:
        if before.status == after.status:
            return
        logger.info(f"Invoice {after.id} moved from {before.status.value} to {after.status.value} after payment change")
        if after.status == InvoiceStatus.PAID:
            self.activity.record(
                ActivityType.INVOICE_PAID,
                f"Invoice {after.invoice_number} paid in full",
                entity_type=EntityType.INVOICE,
                entity_id=after.id,
                entity_name=after.invoice_number,
                amount=after.total,
                metadata={"from": before.status.value, "to": after.status.value},
            )

    def record_payment(self, data: Dict[str, Any]) -> Payment:
        invoice_id = data.get("invoice_id")
        if not invoice_id:
            raise ValidationError.for_field("invoiceId", "Invoice is required")
        invoice = self._invoice(invoice_id)

        payment = Payment(
            id=new_id(),
            invoice_id=invoice_id,
            amount=as_decimal(data.get("amount")),
            payment_date=data.get("payment_date") or self.today(),
            payment_method=PaymentMethod(data.get("payment_method") or PaymentMethod.OTHER),
            notes=data.get("notes"),
            created_at=self.now(),
        )
        existing = self.store.list_payments_for_invoice(invoice_id)
        before = recompute_invoice(invoice, existing, self.now())
        apply_payment(invoice, existing, payment, self.now())

        payment = self.store.create_payment(payment)
        logger.info(f"Payment {payment.id} of {payment.amount} recorded for invoice {invoice_id}")
        after = self.resync_invoice(invoice_id)

        self.activity.record(
            ActivityType.PAYMENT_RECEIVED,
            f"Payment of {payment.amount} received for invoice {invoice.invoice_number}",
            entity_type=EntityType.PAYMENT,
            entity_id=payment.id,
            entity_name=invoice.invoice_number,
            amount=payment.amount,
            new=payment,
            metadata={"invoiceId": invoice_id, "balance": after.balance},
        )
        self._record_status_change(before, after)
        return payment

    def delete_payment(self, payment_id: str) -> Invoice:
        payment = self.get_payment(payment_id)
        invoice = self._invoice(payment.invoice_id)
        payments = self.store.list_payments_for_invoice(invoice.id)
        before = recompute_invoice(invoice, payments, self.now())
        remove_payment(invoice, payments, payment_id, self.now())

        if not self.store.delete_payment(payment_id):
            raise NotFoundError("Payment", payment_id)
        logger.info(f"Payment {payment_id} deleted from invoice {invoice.id}")
        after = self.resync_invoice(invoice.id)

        self.activity.record(
            ActivityType.PAYMENT_DELETED,
            f"Payment of {payment.amount} removed from invoice {invoice.invoice_number}",
            entity_type=EntityType.PAYMENT,
            entity_id=payment.id,
            entity_name=invoice.invoice_number,
            amount=payment.amount,
            previous=payment,
            metadata={"invoiceId": invoice.id, "balance": after.balance},
        )
        self._record_status_change(before, after)
        return after

    def update_payment(self, payment_id: str, data: Dict[str, Any]) -> Payment:
        existing = self.get_payment(payment_id)
        if data.get("invoice_id") and data["invoice_id"] != existing.invoice_id:
            raise ValidationError.for_field("invoiceId", "A payment cannot be moved to another invoice")

        updated = replace(
            existing,
            amount=as_decimal(data["amount"]) if "amount" in data else existing.amount,
            payment_date=data.get("payment_date") or existing.payment_date,
            payment_method=PaymentMethod(data.get("payment_method") or existing.payment_method),
            notes=data["notes"] if "notes" in data else existing.notes,
        )
        invoice = self._invoice(existing.invoice_id)
        validate_payment(invoice, updated)
        payments = self.store.list_payments_for_invoice(invoice.id)
        before = recompute_invoice(invoice, payments, self.now())

        if self.store.supports_in_place_update:
            saved = self.store.update_payment(updated)
        else:
            saved = self._replace_payment(existing, updated)
        logger.info(f"Payment {payment_id} updated on invoice {invoice.id}")
        after = self.resync_invoice(invoice.id)

        self.activity.record(
            ActivityType.PAYMENT_UPDATED,
            f"Payment on invoice {invoice.invoice_number} updated",
            entity_type=EntityType.PAYMENT,
            entity_id=saved.id,
            entity_name=invoice.invoice_number,
            amount=saved.amount,
            previous=existing,
            new=saved,
            metadata={"invoiceId": invoice.id, "balance": after.balance},
        )
        self._record_status_change(before, after)
        return saved

    def _replace_payment(self, existing: Payment, updated: Payment) -> Payment:
        """
        Delete-then-create for stores without in-place updates.

        If the create fails the original payment is put back. If that fails
        too, the invoice is left short a payment: its derived fields are
        re-synced to what is actually stored and a ReconciliationError is
        raised so the caller can repair it.
        """
        if not self.store.delete_payment(existing.id):
            raise NotFoundError("Payment", existing.id)
        try:
            return self.store.create_payment(updated)
        except BillingError as create_error:
            logger.error(f"Re-creating payment {existing.id} failed, restoring the original: {create_error}")
            try:
                self.store.create_payment(existing)
            except BillingError:
                logger.exception(f"Could not restore payment {existing.id} on invoice {existing.invoice_id}")
                self._try_resync(existing.invoice_id)
                raise ReconciliationError(
                    f"Payment {existing.id} was removed but could not be re-created; "
                    f"invoice {existing.invoice_id} needs reconciliation",
                    invoice_id=existing.invoice_id,
                ) from create_error
            raise

    def _try_resync(self, invoice_id: str) -> None:
        try:
            self.resync_invoice(invoice_id)
        except BillingError:
            logger.exception(f"Could not re-sync invoice {invoice_id}; it is recomputed on next read")
