"""
Billing domain entities.

Plain value objects passed between the store, the domain functions and the
API layer. Ids are opaque strings assigned at creation. Money is Decimal with
two places; calendar fields are naive dates, audit fields are datetimes.

``to_record()`` produces the camelCase exchange format used by the API and by
activity-log snapshots.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

ZERO = Decimal("0.00")


def new_id() -> str:
    return uuid.uuid4().hex


def as_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid decimal value: {value!r}")


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CHECK = "check"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"
    OTHER = "other"


class RecurringFrequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class EntityType(str, Enum):
    INVOICE = "invoice"
    PAYMENT = "payment"
    CLIENT = "client"
    PROJECT = "project"
    TASK = "task"
    TIME_ENTRY = "time_entry"
    TEMPLATE = "template"
    SETTINGS = "settings"


class ActivityType(str, Enum):
    INVOICE_CREATED = "invoice_created"
    INVOICE_UPDATED = "invoice_updated"
    INVOICE_SENT = "invoice_sent"
    INVOICE_PAID = "invoice_paid"
    INVOICE_CANCELLED = "invoice_cancelled"
    INVOICE_DELETED = "invoice_deleted"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_UPDATED = "payment_updated"
    PAYMENT_DELETED = "payment_deleted"
    CLIENT_ADDED = "client_added"
    CLIENT_UPDATED = "client_updated"
    CLIENT_DELETED = "client_deleted"
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_COMPLETED = "project_completed"
    PROJECT_DELETED = "project_deleted"
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_COMPLETED = "task_completed"
    TASK_DELETED = "task_deleted"
    TIME_ENTRY_CREATED = "time_entry_created"
    TIME_ENTRY_UPDATED = "time_entry_updated"
    TIME_ENTRY_DELETED = "time_entry_deleted"
    TEMPLATE_CREATED = "template_created"
    TEMPLATE_UPDATED = "template_updated"
    TEMPLATE_DELETED = "template_deleted"
    SETTINGS_UPDATED = "settings_updated"


@dataclass
class Address:
    street: str
    city: str
    state: str
    zip_code: str
    country: str

    def is_complete(self) -> bool:
        return all(
            (value or "").strip()
            for value in (self.street, self.city, self.state, self.zip_code, self.country)
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }

    @classmethod
    def empty(cls) -> "Address":
        return cls(street="", city="", state="", zip_code="", country="")


@dataclass
class Client:
    id: str
    name: str
    email: str
    address: Address
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address.to_record(),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class LineItem:
    id: str
    description: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal = ZERO

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "quantity": self.quantity,
            "rate": self.rate,
            "amount": self.amount,
        }


@dataclass
class TemplateLineItem:
    description: str
    quantity: Decimal
    rate: Decimal

    def to_record(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "quantity": str(self.quantity),
            "rate": str(self.rate),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TemplateLineItem":
        return cls(
            description=record.get("description", ""),
            quantity=as_decimal(record.get("quantity"), Decimal("1")),
            rate=as_decimal(record.get("rate")),
        )


@dataclass
class RecurringSchedule:
    frequency: RecurringFrequency
    interval: int
    start_date: date
    next_invoice_date: date
    end_date: Optional[date] = None
    is_active: bool = True

    def to_record(self) -> Dict[str, Any]:
        return {
            "frequency": self.frequency.value,
            "interval": self.interval,
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "nextInvoiceDate": _iso(self.next_invoice_date),
            "isActive": self.is_active,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "RecurringSchedule":
        start_date = parse_date(record["startDate"])
        return cls(
            frequency=RecurringFrequency(record["frequency"]),
            interval=int(record.get("interval") or 1),
            start_date=start_date,
            end_date=parse_date(record.get("endDate")),
            next_invoice_date=parse_date(record.get("nextInvoiceDate")) or start_date,
            is_active=bool(record.get("isActive", True)),
        )


@dataclass
class Invoice:
    id: str
    invoice_number: str
    client_id: str
    issue_date: date
    due_date: date
    status: InvoiceStatus = InvoiceStatus.DRAFT
    line_items: List[LineItem] = field(default_factory=list)
    tax_rate: Decimal = ZERO
    subtotal: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total: Decimal = ZERO
    paid_amount: Decimal = ZERO
    balance: Decimal = ZERO
    template_id: Optional[str] = None
    notes: Optional[str] = None
    is_recurring: bool = False
    recurring_schedule: Optional[RecurringSchedule] = None
    recurring_parent_id: Optional[str] = None
    recurring_period: Optional[date] = None
    sent_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "invoiceNumber": self.invoice_number,
            "clientId": self.client_id,
            "templateId": self.template_id,
            "status": self.status.value,
            "issueDate": _iso(self.issue_date),
            "dueDate": _iso(self.due_date),
            "lineItems": [item.to_record() for item in self.line_items],
            "subtotal": self.subtotal,
            "taxRate": self.tax_rate,
            "taxAmount": self.tax_amount,
            "total": self.total,
            "paidAmount": self.paid_amount,
            "balance": self.balance,
            "notes": self.notes,
            "isRecurring": self.is_recurring,
            "recurringSchedule": self.recurring_schedule.to_record() if self.recurring_schedule else None,
            "recurringParentId": self.recurring_parent_id,
            "recurringPeriod": _iso(self.recurring_period),
            "sentDate": _iso(self.sent_date),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class Payment:
    id: str
    invoice_id: str
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod = PaymentMethod.OTHER
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "invoiceId": self.invoice_id,
            "amount": self.amount,
            "paymentDate": _iso(self.payment_date),
            "paymentMethod": self.payment_method.value,
            "notes": self.notes,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class Template:
    id: str
    name: str
    line_items: List[TemplateLineItem] = field(default_factory=list)
    tax_rate: Decimal = ZERO
    description: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "lineItems": [item.to_record() for item in self.line_items],
            "taxRate": self.tax_rate,
            "notes": self.notes,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class Project:
    id: str
    name: str
    client_id: str
    start_date: date
    status: ProjectStatus = ProjectStatus.PLANNING
    description: Optional[str] = None
    end_date: Optional[date] = None
    budget: Optional[Decimal] = None
    hourly_rate: Optional[Decimal] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "clientId": self.client_id,
            "status": self.status.value,
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "budget": self.budget,
            "hourlyRate": self.hourly_rate,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class Task:
    id: str
    project_id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None
    estimated_hours: Optional[Decimal] = None
    actual_hours: Decimal = ZERO
    billable_hours: Decimal = ZERO
    is_billable: bool = True
    tags: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "assignedTo": self.assigned_to,
            "dueDate": _iso(self.due_date),
            "estimatedHours": self.estimated_hours,
            "actualHours": self.actual_hours,
            "billableHours": self.billable_hours,
            "isBillable": self.is_billable,
            "tags": list(self.tags),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class TimeEntry:
    id: str
    task_id: str
    project_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int = 0
    description: Optional[str] = None
    is_billable: bool = True
    hourly_rate: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "projectId": self.project_id,
            "description": self.description,
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "duration": self.duration,
            "isBillable": self.is_billable,
            "hourlyRate": self.hourly_rate,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass
class CompanySettings:
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    address: Address = field(default_factory=Address.empty)
    logo: Optional[str] = None
    tax_rate: Decimal = ZERO
    payment_terms: int = 30
    invoice_template: str = "default"
    currency: str = "USD"
    date_format: str = "MM/dd/yyyy"
    time_zone: str = "UTC"

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address.to_record(),
            "logo": self.logo,
            "taxRate": self.tax_rate,
            "paymentTerms": self.payment_terms,
            "invoiceTemplate": self.invoice_template,
            "currency": self.currency,
            "dateFormat": self.date_format,
            "timeZone": self.time_zone,
        }


@dataclass
class AppSettings:
    is_setup_complete: bool = False
    last_backup: Optional[datetime] = None
    auto_backup: bool = False
    backup_frequency: str = "weekly"
    theme: str = "system"
    color_theme: str = "default"

    def to_record(self) -> Dict[str, Any]:
        return {
            "isSetupComplete": self.is_setup_complete,
            "lastBackup": _iso(self.last_backup),
            "autoBackup": self.auto_backup,
            "backupFrequency": self.backup_frequency,
            "theme": self.theme,
            "colorTheme": self.color_theme,
        }


@dataclass
class ActivityLog:
    id: str
    type: ActivityType
    description: str
    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    user_id: Optional[str] = None
    amount: Optional[Decimal] = None
    previous_value: Optional[str] = None
    new_value: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "entityType": self.entity_type.value if self.entity_type else None,
            "entityId": self.entity_id,
            "entityName": self.entity_name,
            "userId": self.user_id,
            "amount": self.amount,
            "previousValue": self.previous_value,
            "newValue": self.new_value,
            "metadata": self.metadata,
            "timestamp": _iso(self.timestamp),
        }
