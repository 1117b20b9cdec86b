"""
Read-side projections over invoices, payments, clients and activity.

Invoices handed to these functions are expected to be current views: amounts
recomputed from payments and overdue already derived (see
``payments.current_view``). Nothing here is cached; every call reflects the
data it is given.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .entities import ZERO, ActivityLog, Client, Invoice, InvoiceStatus, Payment

BILLED_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.OVERDUE)
OPEN_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.OVERDUE)
PERIODS = ("month", "quarter", "year")


@dataclass
class DashboardMetrics:
    total_revenue: Decimal
    outstanding_amount: Decimal
    paid_amount: Decimal
    overdue_amount: Decimal
    total_clients: int
    active_clients: int
    total_invoices: int
    paid_invoices: int
    overdue_invoices: int
    recent_activity: List[ActivityLog] = field(default_factory=list)

    def to_record(self) -> Dict[str, Any]:
        return {
            "totalRevenue": self.total_revenue,
            "outstandingAmount": self.outstanding_amount,
            "paidAmount": self.paid_amount,
            "overdueAmount": self.overdue_amount,
            "totalClients": self.total_clients,
            "activeClients": self.active_clients,
            "totalInvoices": self.total_invoices,
            "paidInvoices": self.paid_invoices,
            "overdueInvoices": self.overdue_invoices,
            "recentActivity": [entry.to_record() for entry in self.recent_activity],
        }


@dataclass
class RevenueReport:
    period: str
    revenue: Decimal
    invoice_count: int
    client_count: int

    def to_record(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "revenue": self.revenue,
            "invoiceCount": self.invoice_count,
            "clientCount": self.client_count,
        }


@dataclass
class ClientReport:
    client_id: str
    client_name: str
    total_invoiced: Decimal
    total_paid: Decimal
    outstanding_amount: Decimal
    invoice_count: int

    def to_record(self) -> Dict[str, Any]:
        return {
            "clientId": self.client_id,
            "clientName": self.client_name,
            "totalInvoiced": self.total_invoiced,
            "totalPaid": self.total_paid,
            "outstandingAmount": self.outstanding_amount,
            "invoiceCount": self.invoice_count,
        }


@dataclass
class InvoiceStatusReport:
    status: InvoiceStatus
    count: int
    total_amount: Decimal

    def to_record(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "count": self.count,
            "totalAmount": self.total_amount,
        }


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def is_billed(invoice: Invoice) -> bool:
    # A draft past its due date reads as overdue but was never issued.
    if invoice.status == InvoiceStatus.OVERDUE:
        return invoice.sent_date is not None
    return invoice.status in BILLED_STATUSES


def _outstanding(invoice: Invoice) -> Decimal:
    if invoice.status in OPEN_STATUSES and is_billed(invoice) and invoice.balance > ZERO:
        return invoice.balance
    return ZERO


def period_key(day: date, period: str = "month") -> str:
    if period == "year":
        return f"{day.year}"
    if period == "quarter":
        return f"{day.year}-Q{(day.month - 1) // 3 + 1}"
    if period == "month":
        return f"{day.year}-{day.month:02d}"
    raise ValueError(f"Unknown period '{period}', expected one of {', '.join(PERIODS)}")


def recent_activity(activity: Iterable[ActivityLog], limit: int = 10) -> List[ActivityLog]:
    ordered = sorted(activity, key=lambda entry: (entry.timestamp is not None, entry.timestamp), reverse=True)
    return ordered[:limit]


def dashboard_metrics(
    invoices: Sequence[Invoice],
    payments: Sequence[Payment],
    clients: Sequence[Client],
    activity: Iterable[ActivityLog] = (),
    activity_limit: int = 10,
) -> DashboardMetrics:
    billed = [i for i in invoices if is_billed(i)]
    overdue = [i for i in billed if i.status == InvoiceStatus.OVERDUE]
    active_client_ids = {i.client_id for i in invoices if i.status != InvoiceStatus.CANCELLED}

    return DashboardMetrics(
        total_revenue=_sum(i.total for i in billed),
        outstanding_amount=_sum(_outstanding(i) for i in invoices),
        paid_amount=_sum(p.amount for p in payments),
        overdue_amount=_sum(_outstanding(i) for i in overdue),
        total_clients=len(clients),
        active_clients=len(active_client_ids & {c.id for c in clients}),
        total_invoices=len(invoices),
        paid_invoices=sum(1 for i in invoices if i.status == InvoiceStatus.PAID),
        overdue_invoices=len(overdue),
        recent_activity=recent_activity(activity, activity_limit),
    )


def revenue_by_period(
    invoices: Sequence[Invoice],
    payments: Sequence[Payment],
    period: str = "month",
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[RevenueReport]:
    """
    Cash-basis revenue per period.

    Revenue is bucketed by payment date; invoice and client counts by issue
    date of billed invoices.
    """
    def in_range(day: date) -> bool:
        return (date_from is None or day >= date_from) and (date_to is None or day <= date_to)

    revenue: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    invoice_counts: Dict[str, int] = defaultdict(int)
    client_ids: Dict[str, set] = defaultdict(set)

    for payment in payments:
        if in_range(payment.payment_date):
            revenue[period_key(payment.payment_date, period)] += payment.amount

    for invoice in invoices:
        if is_billed(invoice) and in_range(invoice.issue_date):
            key = period_key(invoice.issue_date, period)
            invoice_counts[key] += 1
            client_ids[key].add(invoice.client_id)

    keys = sorted(set(revenue) | set(invoice_counts))
    return [
        RevenueReport(
            period=key,
            revenue=revenue[key],
            invoice_count=invoice_counts[key],
            client_count=len(client_ids[key]),
        )
        for key in keys
    ]


def client_report(invoices: Sequence[Invoice], clients: Sequence[Client]) -> List[ClientReport]:
    by_client: Dict[str, List[Invoice]] = defaultdict(list)
    for invoice in invoices:
        if is_billed(invoice):
            by_client[invoice.client_id].append(invoice)

    reports = []
    for client in clients:
        billed = by_client.get(client.id, [])
        reports.append(ClientReport(
            client_id=client.id,
            client_name=client.name,
            total_invoiced=_sum(i.total for i in billed),
            total_paid=_sum(i.paid_amount for i in billed),
            outstanding_amount=_sum(_outstanding(i) for i in billed),
            invoice_count=len(billed),
        ))
    reports.sort(key=lambda r: (r.total_invoiced, r.client_name), reverse=True)
    return reports


def status_report(invoices: Sequence[Invoice]) -> List[InvoiceStatusReport]:
    counts: Dict[InvoiceStatus, int] = defaultdict(int)
    totals: Dict[InvoiceStatus, Decimal] = defaultdict(lambda: ZERO)
    for invoice in invoices:
        counts[invoice.status] += 1
        totals[invoice.status] += invoice.total
    return [
        InvoiceStatusReport(status=status, count=counts[status], total_amount=totals[status])
        for status in InvoiceStatus
    ]
