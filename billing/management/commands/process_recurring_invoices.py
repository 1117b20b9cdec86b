import logging
from datetime import date

from django.core.management.base import BaseCommand

from billing.services import RecurringService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Generate invoices for every recurring schedule that is due"

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            type=str,
            help='Target date for processing (YYYY-MM-DD). Defaults to today.',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be generated without creating invoices or advancing schedules.',
        )

    def handle(self, *args, **options):
        target_date = None
        if options['date']:
            try:
                target_date = date.fromisoformat(options['date'])
            except ValueError:
                self.stderr.write(self.style.ERROR(f"Invalid date format: {options['date']}"))
                return

        service = RecurringService(user_id="system")
        target_date = target_date or service.today()
        dry_run = options['dry_run']

        self.stdout.write(f"Processing recurring schedules for {target_date}")

        if dry_run:
            due = service.due_invoices(target_date)
            self.stdout.write(f"[DRY RUN] Found {len(due)} schedules due for processing:")
            for template in due:
                schedule = template.recurring_schedule
                self.stdout.write(
                    f"  - {template.invoice_number}: next {schedule.next_invoice_date} "
                    f"({schedule.frequency.value} x{schedule.interval}) - {template.total}"
                )
            return

        results = service.process_due(target_date)

        self.stdout.write(self.style.SUCCESS(
            f"Processing complete: "
            f"{results.success} generated, "
            f"{results.failed} failed, "
            f"{results.skipped} skipped, "
            f"{results.expired} expired "
            f"(of {results.total} due)"
        ))
        for run in results.runs:
            if run.created:
                self.stdout.write(f"  + {run.invoice.invoice_number} for period {run.period}")

        if results.failed > 0:
            self.stdout.write(self.style.WARNING(
                f"Check logs for details on {results.failed} failed generations."
            ))
