"""
Re-derive invoice amounts and status from the stored payments.

Repairs invoices left inconsistent by an interrupted payment change.
"""

import logging

from django.core.management.base import BaseCommand, CommandError

from billing.services import InvoiceService
from billing.validation.errors import BillingError

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Reconcile invoice paid amounts, balances and status with their payments"

    def add_arguments(self, parser):
        parser.add_argument(
            "--invoice",
            type=str,
            help="Reconcile a single invoice by id (default: all invoices)",
        )

    def handle(self, *args, **options):
        service = InvoiceService(user_id="system")

        if options["invoice"]:
            try:
                invoice = service.reconcile(options["invoice"])
            except BillingError as e:
                raise CommandError(e.message)
            self.stdout.write(self.style.SUCCESS(
                f"{invoice.invoice_number}: paid {invoice.paid_amount}, "
                f"balance {invoice.balance}, status {invoice.status.value}"
            ))
            return

        results = service.reconcile_all()
        self.stdout.write(self.style.SUCCESS(
            f"Reconciliation complete: {results['success']} reconciled, "
            f"{results['failed']} failed (of {results['total']} total)"
        ))
        if results["failed"] > 0:
            self.stdout.write(self.style.WARNING(
                f"Check logs for details on {results['failed']} failed invoices."
            ))
