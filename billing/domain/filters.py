"""List filtering, sorting and page slicing for the collection endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from .entities import ActivityLog, Client, Invoice, Payment

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _contains(needle: str, *haystack: Optional[str]) -> bool:
    needle = needle.strip().lower()
    return any(needle in (value or "").lower() for value in haystack)


def _as_day(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def _within(day: Optional[date], date_from: Optional[date], date_to: Optional[date]) -> bool:
    day = _as_day(day)
    if day is None:
        return date_from is None and date_to is None
    if date_from is not None and day < date_from:
        return False
    if date_to is not None and day > date_to:
        return False
    return True


def filter_invoices(
    invoices: Iterable[Invoice],
    status: Optional[str] = None,
    client_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
    client_names: Optional[Dict[str, str]] = None,
) -> List[Invoice]:
    """
    Filter invoices already carrying their effective status, so
    ``status="overdue"`` matches the derived condition.

    Date bounds apply to the issue date. ``search`` matches the invoice
    number, notes and, when ``client_names`` is given, the client name.
    """
    client_names = client_names or {}
    result = []
    for invoice in invoices:
        if status and invoice.status.value != status:
            continue
        if client_id and invoice.client_id != client_id:
            continue
        if not _within(invoice.issue_date, date_from, date_to):
            continue
        if search and not _contains(
            search, invoice.invoice_number, invoice.notes, client_names.get(invoice.client_id)
        ):
            continue
        result.append(invoice)
    return result


def filter_clients(
    clients: Iterable[Client],
    search: Optional[str] = None,
    country: Optional[str] = None,
    state: Optional[str] = None,
) -> List[Client]:
    result = []
    for client in clients:
        if search and not _contains(search, client.name, client.email, client.phone):
            continue
        if country and client.address.country.lower() != country.lower():
            continue
        if state and client.address.state.lower() != state.lower():
            continue
        result.append(client)
    return result


def filter_payments(
    payments: Iterable[Payment],
    invoice_id: Optional[str] = None,
    payment_method: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[Payment]:
    return [
        payment for payment in payments
        if (not invoice_id or payment.invoice_id == invoice_id)
        and (not payment_method or payment.payment_method.value == payment_method)
        and _within(payment.payment_date, date_from, date_to)
    ]


def filter_activity(
    activity: Iterable[ActivityLog],
    type: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    user_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
) -> List[ActivityLog]:
    result = []
    for entry in activity:
        if type and entry.type.value != type:
            continue
        if entity_type and (entry.entity_type is None or entry.entity_type.value != entity_type):
            continue
        if entity_id and entry.entity_id != entity_id:
            continue
        if user_id and entry.user_id != user_id:
            continue
        if (date_from or date_to) and not _within(entry.timestamp, date_from, date_to):
            continue
        if search and not _contains(search, entry.description, entry.entity_name):
            continue
        result.append(entry)
    return result


@dataclass
class Page:
    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 1

    def meta(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
        }


def _sort_key(sort_by: str) -> Callable[[Any], Any]:
    def key(item: Any):
        value = getattr(item, sort_by, None)
        if hasattr(value, "value"):
            value = value.value
        # None sorts first ascending, last descending
        return (value is not None, value)
    return key


def paginate(
    items: Sequence[T],
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    sort_by: Optional[str] = None,
    sort_order: str = "desc",
) -> Page:
    """
    Sort and slice ``items``.

    ``sort_by`` names an entity attribute (snake_case). Page numbers start at
    1; out-of-range values are clamped rather than rejected.
    """
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)

    ordered = list(items)
    if sort_by:
        ordered.sort(key=_sort_key(sort_by), reverse=(sort_order != "asc"))

    start = (page - 1) * limit
    return Page(items=ordered[start:start + limit], total=len(ordered), page=page, limit=limit)
