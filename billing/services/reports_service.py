"""
Reports Service

Dashboard metrics, revenue by period, per-client totals and the status
breakdown. Every report is computed from the current invoices and payments
on each call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

from dateutil.relativedelta import relativedelta
from django.conf import settings

from billing.domain.reporting import (
    PERIODS,
    ClientReport,
    DashboardMetrics,
    InvoiceStatusReport,
    RevenueReport,
    client_report,
    dashboard_metrics,
    revenue_by_period,
    status_report,
)
from billing.validation.errors import ValidationError

from .base import BillingService
from .invoice_service import InvoiceService

logger = logging.getLogger(__name__)


@dataclass
class DateRange:
    start_date: Optional[date]
    end_date: Optional[date]
    label: str = ""

    @classmethod
    def from_preset(cls, preset: str, today: date) -> "DateRange":
        quarter_start = cls._quarter_start(today)
        presets = {
            "this_month": (today.replace(day=1), today, "This Month"),
            "last_month": (
                today.replace(day=1) - relativedelta(months=1),
                today.replace(day=1) - timedelta(days=1),
                "Last Month",
            ),
            "this_quarter": (quarter_start, today, "This Quarter"),
            "last_quarter": (
                quarter_start - relativedelta(months=3),
                quarter_start - timedelta(days=1),
                "Last Quarter",
            ),
            "this_year": (today.replace(month=1, day=1), today, "This Year"),
            "last_year": (date(today.year - 1, 1, 1), date(today.year - 1, 12, 31), "Last Year"),
            "last_30_days": (today - timedelta(days=30), today, "Last 30 Days"),
            "last_90_days": (today - timedelta(days=90), today, "Last 90 Days"),
            "last_365_days": (today - timedelta(days=365), today, "Last 365 Days"),
        }

        if preset in presets:
            start, end, label = presets[preset]
            return cls(start_date=start, end_date=end, label=label)
        if preset == "all_time":
            return cls(start_date=None, end_date=None, label="All Time")
        raise ValidationError.for_field("range", f"Unknown date range '{preset}'")

    @staticmethod
    def _quarter_start(d: date) -> date:
        quarter = (d.month - 1) // 3
        return date(d.year, quarter * 3 + 1, 1)


class ReportsService(BillingService):

    def _invoices(self):
        return InvoiceService(self.store, user_id=self.user_id).current_invoices()

    def dashboard(self) -> DashboardMetrics:
        return dashboard_metrics(
            self._invoices(),
            self.store.list_payments(),
            self.store.list_clients(),
            self.store.list_activity(),
            activity_limit=settings.BILLING["RECENT_ACTIVITY_LIMIT"],
        )

    def revenue(
        self,
        period: str = "month",
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        preset: Optional[str] = None,
    ) -> List[RevenueReport]:
        if period not in PERIODS:
            raise ValidationError.for_field("period", f"Period must be one of: {', '.join(PERIODS)}")
        if preset:
            date_range = DateRange.from_preset(preset, self.today())
            date_from, date_to = date_range.start_date, date_range.end_date
        if date_from and date_to and date_from > date_to:
            raise ValidationError.for_field("dateTo", "End date cannot be before start date")
        return revenue_by_period(self._invoices(), self.store.list_payments(), period, date_from, date_to)

    def clients(self) -> List[ClientReport]:
        return client_report(self._invoices(), self.store.list_clients())

    def statuses(self) -> List[InvoiceStatusReport]:
        return status_report(self._invoices())
