"""BillingStore backed by the Django ORM (``billing.models``)."""

from __future__ import annotations

import functools
import logging
from datetime import date
from typing import Callable, List, Optional, TypeVar

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from billing import models
from billing.domain.entities import (
    ActivityLog,
    ActivityType,
    Address,
    AppSettings,
    Client,
    CompanySettings,
    EntityType,
    Invoice,
    InvoiceStatus,
    LineItem,
    Payment,
    PaymentMethod,
    Project,
    ProjectStatus,
    RecurringSchedule,
    Task,
    TaskPriority,
    TaskStatus,
    Template,
    TemplateLineItem,
    TimeEntry,
)
from billing.validation.errors import ConflictError, NotFoundError, StorageError

from .base import BillingStore

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)


def translate_errors(func: F) -> F:
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as e:
            logger.warning("Store operation %s rejected: %s", func.__name__, e)
            raise ConflictError(f"{func.__name__} conflicts with existing data") from e
        except DatabaseError as e:
            logger.error("Store operation %s failed: %s", func.__name__, e)
            raise StorageError(f"Storage unavailable during {func.__name__}") from e
    return wrapper


def _address(row) -> Address:
    return Address(
        street=row.street,
        city=row.city,
        state=row.state,
        zip_code=row.zip_code,
        country=row.country,
    )


def _address_fields(address: Address) -> dict:
    return {
        "street": address.street,
        "city": address.city,
        "state": address.state,
        "zip_code": address.zip_code,
        "country": address.country,
    }


def client_from_row(row: models.Client) -> Client:
    return Client(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        address=_address(row),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def invoice_from_row(row: models.Invoice) -> Invoice:
    return Invoice(
        id=row.id,
        invoice_number=row.invoice_number,
        client_id=row.client_id,
        template_id=row.template_id,
        status=InvoiceStatus(row.status),
        issue_date=row.issue_date,
        due_date=row.due_date,
        line_items=[
            LineItem(id=item.id, description=item.description, quantity=item.quantity, rate=item.rate, amount=item.amount)
            for item in row.items.all()
        ],
        tax_rate=row.tax_rate,
        subtotal=row.subtotal,
        tax_amount=row.tax_amount,
        total=row.total,
        paid_amount=row.paid_amount,
        balance=row.balance,
        notes=row.notes,
        is_recurring=row.is_recurring,
        recurring_schedule=RecurringSchedule.from_record(row.recurring_schedule) if row.recurring_schedule else None,
        recurring_parent_id=row.recurring_parent_id,
        recurring_period=row.recurring_period,
        sent_date=row.sent_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def payment_from_row(row: models.Payment) -> Payment:
    return Payment(
        id=row.id,
        invoice_id=row.invoice_id,
        amount=row.amount,
        payment_date=row.payment_date,
        payment_method=PaymentMethod(row.payment_method),
        notes=row.notes,
        created_at=row.created_at,
    )


def template_from_row(row: models.Template) -> Template:
    return Template(
        id=row.id,
        name=row.name,
        description=row.description,
        line_items=[TemplateLineItem.from_record(item) for item in row.line_items or []],
        tax_rate=row.tax_rate,
        notes=row.notes,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def project_from_row(row: models.Project) -> Project:
    return Project(
        id=row.id,
        name=row.name,
        description=row.description,
        client_id=row.client_id,
        status=ProjectStatus(row.status),
        start_date=row.start_date,
        end_date=row.end_date,
        budget=row.budget,
        hourly_rate=row.hourly_rate,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def task_from_row(row: models.Task) -> Task:
    return Task(
        id=row.id,
        project_id=row.project_id,
        title=row.title,
        description=row.description,
        status=TaskStatus(row.status),
        priority=TaskPriority(row.priority),
        assigned_to=row.assigned_to,
        due_date=row.due_date,
        estimated_hours=row.estimated_hours,
        actual_hours=row.actual_hours,
        billable_hours=row.billable_hours,
        is_billable=row.is_billable,
        tags=list(row.tags or []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def time_entry_from_row(row: models.TimeEntry) -> TimeEntry:
    return TimeEntry(
        id=row.id,
        task_id=row.task_id,
        project_id=row.project_id,
        description=row.description,
        start_time=row.start_time,
        end_time=row.end_time,
        duration=row.duration,
        is_billable=row.is_billable,
        hourly_rate=row.hourly_rate,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def activity_from_row(row: models.ActivityLog) -> ActivityLog:
    return ActivityLog(
        id=row.id,
        type=ActivityType(row.type),
        description=row.description,
        entity_type=EntityType(row.entity_type) if row.entity_type else None,
        entity_id=row.entity_id,
        entity_name=row.entity_name,
        user_id=row.user_id,
        amount=row.amount,
        previous_value=row.previous_value,
        new_value=row.new_value,
        metadata=row.metadata or {},
        timestamp=row.timestamp,
    )


class DjangoBillingStore(BillingStore):
    supports_in_place_update = True

    # Clients

    @translate_errors
    def list_clients(self) -> List[Client]:
        return [client_from_row(row) for row in models.Client.objects.all()]

    @translate_errors
    def get_client(self, client_id: str) -> Optional[Client]:
        row = models.Client.objects.filter(pk=client_id).first()
        return client_from_row(row) if row else None

    @translate_errors
    def create_client(self, client: Client) -> Client:
        now = timezone.now()
        row = models.Client.objects.create(
            id=client.id,
            name=client.name,
            email=client.email,
            phone=client.phone,
            created_at=client.created_at or now,
            updated_at=client.updated_at or now,
            **_address_fields(client.address),
        )
        return client_from_row(row)

    @translate_errors
    def update_client(self, client: Client) -> Client:
        updated = models.Client.objects.filter(pk=client.id).update(
            name=client.name,
            email=client.email,
            phone=client.phone,
            updated_at=client.updated_at or timezone.now(),
            **_address_fields(client.address),
        )
        if not updated:
            raise NotFoundError("Client", client.id)
        return client_from_row(models.Client.objects.get(pk=client.id))

    @translate_errors
    def delete_client(self, client_id: str) -> bool:
        deleted, _ = models.Client.objects.filter(pk=client_id).delete()
        return bool(deleted)

    # Invoices

    def _invoice_fields(self, invoice: Invoice) -> dict:
        return {
            "invoice_number": invoice.invoice_number,
            "client_id": invoice.client_id,
            "template_id": invoice.template_id,
            "status": invoice.status.value,
            "issue_date": invoice.issue_date,
            "due_date": invoice.due_date,
            "sent_date": invoice.sent_date,
            "tax_rate": invoice.tax_rate,
            "subtotal": invoice.subtotal,
            "tax_amount": invoice.tax_amount,
            "total": invoice.total,
            "paid_amount": invoice.paid_amount,
            "balance": invoice.balance,
            "notes": invoice.notes,
            "is_recurring": invoice.is_recurring,
            "recurring_schedule": invoice.recurring_schedule.to_record() if invoice.recurring_schedule else None,
            "recurring_parent_id": invoice.recurring_parent_id,
            "recurring_period": invoice.recurring_period,
        }

    def _write_line_items(self, row: models.Invoice, invoice: Invoice) -> None:
        row.items.all().delete()
        models.LineItem.objects.bulk_create([
            models.LineItem(
                id=item.id,
                invoice=row,
                description=item.description,
                quantity=item.quantity,
                rate=item.rate,
                amount=item.amount,
                sort_order=index,
            )
            for index, item in enumerate(invoice.line_items)
        ])

    def _load_invoice(self, invoice_id: str) -> Optional[Invoice]:
        row = models.Invoice.objects.prefetch_related("items").filter(pk=invoice_id).first()
        return invoice_from_row(row) if row else None

    @translate_errors
    def list_invoices(self) -> List[Invoice]:
        return [invoice_from_row(row) for row in models.Invoice.objects.prefetch_related("items")]

    @translate_errors
    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return self._load_invoice(invoice_id)

    @translate_errors
    def create_invoice(self, invoice: Invoice) -> Invoice:
        now = timezone.now()
        with transaction.atomic():
            row = models.Invoice.objects.create(
                id=invoice.id,
                created_at=invoice.created_at or now,
                updated_at=invoice.updated_at or now,
                **self._invoice_fields(invoice),
            )
            self._write_line_items(row, invoice)
        return self._load_invoice(row.id)

    @translate_errors
    def update_invoice(self, invoice: Invoice) -> Invoice:
        with transaction.atomic():
            row = models.Invoice.objects.select_for_update().filter(pk=invoice.id).first()
            if row is None:
                raise NotFoundError("Invoice", invoice.id)
            for name, value in self._invoice_fields(invoice).items():
                setattr(row, name, value)
            row.updated_at = invoice.updated_at or timezone.now()
            row.save()
            self._write_line_items(row, invoice)
        return self._load_invoice(invoice.id)

    @translate_errors
    def delete_invoice(self, invoice_id: str) -> bool:
        deleted, _ = models.Invoice.objects.filter(pk=invoice_id).delete()
        return bool(deleted)

    @translate_errors
    def invoice_numbers(self, prefix: str) -> List[str]:
        return list(
            models.Invoice.objects.filter(invoice_number__startswith=prefix).values_list("invoice_number", flat=True)
        )

    @translate_errors
    def find_recurring_instance(self, parent_id: str, period: date) -> Optional[Invoice]:
        row = (
            models.Invoice.objects.prefetch_related("items")
            .filter(recurring_parent_id=parent_id, recurring_period=period)
            .first()
        )
        return invoice_from_row(row) if row else None

    # Payments

    @translate_errors
    def list_payments(self) -> List[Payment]:
        return [payment_from_row(row) for row in models.Payment.objects.all()]

    @translate_errors
    def list_payments_for_invoice(self, invoice_id: str) -> List[Payment]:
        return [payment_from_row(row) for row in models.Payment.objects.filter(invoice_id=invoice_id)]

    @translate_errors
    def get_payment(self, payment_id: str) -> Optional[Payment]:
        row = models.Payment.objects.filter(pk=payment_id).first()
        return payment_from_row(row) if row else None

    @translate_errors
    def create_payment(self, payment: Payment) -> Payment:
        row = models.Payment.objects.create(
            id=payment.id,
            invoice_id=payment.invoice_id,
            amount=payment.amount,
            payment_date=payment.payment_date,
            payment_method=payment.payment_method.value,
            notes=payment.notes,
            created_at=payment.created_at or timezone.now(),
        )
        return payment_from_row(row)

    @translate_errors
    def update_payment(self, payment: Payment) -> Payment:
        # invoice_id is deliberately not written
        updated = models.Payment.objects.filter(pk=payment.id).update(
            amount=payment.amount,
            payment_date=payment.payment_date,
            payment_method=payment.payment_method.value,
            notes=payment.notes,
        )
        if not updated:
            raise NotFoundError("Payment", payment.id)
        return payment_from_row(models.Payment.objects.get(pk=payment.id))

    @translate_errors
    def delete_payment(self, payment_id: str) -> bool:
        deleted, _ = models.Payment.objects.filter(pk=payment_id).delete()
        return bool(deleted)

    # Templates

    def _template_fields(self, template: Template) -> dict:
        return {
            "name": template.name,
            "description": template.description,
            "line_items": [item.to_record() for item in template.line_items],
            "tax_rate": template.tax_rate,
            "notes": template.notes,
            "is_active": template.is_active,
        }

    @translate_errors
    def list_templates(self) -> List[Template]:
        return [template_from_row(row) for row in models.Template.objects.all()]

    @translate_errors
    def get_template(self, template_id: str) -> Optional[Template]:
        row = models.Template.objects.filter(pk=template_id).first()
        return template_from_row(row) if row else None

    @translate_errors
    def create_template(self, template: Template) -> Template:
        now = timezone.now()
        row = models.Template.objects.create(
            id=template.id,
            created_at=template.created_at or now,
            updated_at=template.updated_at or now,
            **self._template_fields(template),
        )
        return template_from_row(row)

    @translate_errors
    def update_template(self, template: Template) -> Template:
        updated = models.Template.objects.filter(pk=template.id).update(
            updated_at=template.updated_at or timezone.now(),
            **self._template_fields(template),
        )
        if not updated:
            raise NotFoundError("Template", template.id)
        return template_from_row(models.Template.objects.get(pk=template.id))

    @translate_errors
    def delete_template(self, template_id: str) -> bool:
        deleted, _ = models.Template.objects.filter(pk=template_id).delete()
        return bool(deleted)

    # Projects

    def _project_fields(self, project: Project) -> dict:
        return {
            "name": project.name,
            "description": project.description,
            "client_id": project.client_id,
            "status": project.status.value,
            "start_date": project.start_date,
            "end_date": project.end_date,
            "budget": project.budget,
            "hourly_rate": project.hourly_rate,
            "is_active": project.is_active,
        }

    @translate_errors
    def list_projects(self) -> List[Project]:
        return [project_from_row(row) for row in models.Project.objects.all()]

    @translate_errors
    def get_project(self, project_id: str) -> Optional[Project]:
        row = models.Project.objects.filter(pk=project_id).first()
        return project_from_row(row) if row else None

    @translate_errors
    def create_project(self, project: Project) -> Project:
        now = timezone.now()
        row = models.Project.objects.create(
            id=project.id,
            created_at=project.created_at or now,
            updated_at=project.updated_at or now,
            **self._project_fields(project),
        )
        return project_from_row(row)

    @translate_errors
    def update_project(self, project: Project) -> Project:
        updated = models.Project.objects.filter(pk=project.id).update(
            updated_at=project.updated_at or timezone.now(),
            **self._project_fields(project),
        )
        if not updated:
            raise NotFoundError("Project", project.id)
        return project_from_row(models.Project.objects.get(pk=project.id))

    @translate_errors
    def delete_project(self, project_id: str) -> bool:
        deleted, _ = models.Project.objects.filter(pk=project_id).delete()
        return bool(deleted)

    # Tasks

    def _task_fields(self, task: Task) -> dict:
        return {
            "project_id": task.project_id,
            "title": task.title,
            "description": task.description,
            "status": task.status.value,
            "priority": task.priority.value,
            "assigned_to": task.assigned_to,
            "due_date": task.due_date,
            "estimated_hours": task.estimated_hours,
            "actual_hours": task.actual_hours,
            "billable_hours": task.billable_hours,
            "is_billable": task.is_billable,
            "tags": list(task.tags),
        }

    @translate_errors
    def list_tasks(self, project_id: Optional[str] = None) -> List[Task]:
        rows = models.Task.objects.all()
        if project_id:
            rows = rows.filter(project_id=project_id)
        return [task_from_row(row) for row in rows]

    @translate_errors
    def get_task(self, task_id: str) -> Optional[Task]:
        row = models.Task.objects.filter(pk=task_id).first()
        return task_from_row(row) if row else None

    @translate_errors
    def create_task(self, task: Task) -> Task:
        now = timezone.now()
        row = models.Task.objects.create(
            id=task.id,
            created_at=task.created_at or now,
            updated_at=task.updated_at or now,
            **self._task_fields(task),
        )
        return task_from_row(row)

    @translate_errors
    def update_task(self, task: Task) -> Task:
        updated = models.Task.objects.filter(pk=task.id).update(
            updated_at=task.updated_at or timezone.now(),
            **self._task_fields(task),
        )
        if not updated:
            raise NotFoundError("Task", task.id)
        return task_from_row(models.Task.objects.get(pk=task.id))

    @translate_errors
    def delete_task(self, task_id: str) -> bool:
        deleted, _ = models.Task.objects.filter(pk=task_id).delete()
        return bool(deleted)

    # Time entries

    def _time_entry_fields(self, entry: TimeEntry) -> dict:
        return {
            "task_id": entry.task_id,
            "project_id": entry.project_id,
            "description": entry.description,
            "start_time": entry.start_time,
            "end_time": entry.end_time,
            "duration": entry.duration,
            "is_billable": entry.is_billable,
            "hourly_rate": entry.hourly_rate,
        }

    @translate_errors
    def list_time_entries(self, task_id: Optional[str] = None, project_id: Optional[str] = None) -> List[TimeEntry]:
        rows = models.TimeEntry.objects.all()
        if task_id:
            rows = rows.filter(task_id=task_id)
        if project_id:
            rows = rows.filter(project_id=project_id)
        return [time_entry_from_row(row) for row in rows]

    @translate_errors
    def get_time_entry(self, entry_id: str) -> Optional[TimeEntry]:
        row = models.TimeEntry.objects.filter(pk=entry_id).first()
        return time_entry_from_row(row) if row else None

    @translate_errors
    def create_time_entry(self, entry: TimeEntry) -> TimeEntry:
        now = timezone.now()
        row = models.TimeEntry.objects.create(
            id=entry.id,
            created_at=entry.created_at or now,
            updated_at=entry.updated_at or now,
            **self._time_entry_fields(entry),
        )
        return time_entry_from_row(row)

    @translate_errors
    def update_time_entry(self, entry: TimeEntry) -> TimeEntry:
        updated = models.TimeEntry.objects.filter(pk=entry.id).update(
            updated_at=entry.updated_at or timezone.now(),
            **self._time_entry_fields(entry),
        )
        if not updated:
            raise NotFoundError("TimeEntry", entry.id)
        return time_entry_from_row(models.TimeEntry.objects.get(pk=entry.id))

    @translate_errors
    def delete_time_entry(self, entry_id: str) -> bool:
        deleted, _ = models.TimeEntry.objects.filter(pk=entry_id).delete()
        return bool(deleted)

    # Settings

    @translate_errors
    def get_company_settings(self) -> CompanySettings:
        row = models.CompanySettings.load()
        return CompanySettings(
            name=row.name,
            email=row.email,
            phone=row.phone,
            address=_address(row),
            logo=row.logo,
            tax_rate=row.tax_rate,
            payment_terms=row.payment_terms,
            invoice_template=row.invoice_template,
            currency=row.currency,
            date_format=row.date_format,
            time_zone=row.time_zone,
        )

    @translate_errors
    def save_company_settings(self, settings: CompanySettings) -> CompanySettings:
        row = models.CompanySettings.load()
        fields = {
            "name": settings.name,
            "email": settings.email,
            "phone": settings.phone,
            "logo": settings.logo,
            "tax_rate": settings.tax_rate,
            "payment_terms": settings.payment_terms,
            "invoice_template": settings.invoice_template,
            "currency": settings.currency,
            "date_format": settings.date_format,
            "time_zone": settings.time_zone,
            **_address_fields(settings.address),
        }
        for name, value in fields.items():
            setattr(row, name, value)
        row.save()
        return self.get_company_settings()

    @translate_errors
    def get_app_settings(self) -> AppSettings:
        row = models.AppSettings.load()
        return AppSettings(
            is_setup_complete=row.is_setup_complete,
            last_backup=row.last_backup,
            auto_backup=row.auto_backup,
            backup_frequency=row.backup_frequency,
            theme=row.theme,
            color_theme=row.color_theme,
        )

    @translate_errors
    def save_app_settings(self, settings: AppSettings) -> AppSettings:
        row = models.AppSettings.load()
        row.is_setup_complete = settings.is_setup_complete
        row.last_backup = settings.last_backup
        row.auto_backup = settings.auto_backup
        row.backup_frequency = settings.backup_frequency
        row.theme = settings.theme
        row.color_theme = settings.color_theme
        row.save()
        return self.get_app_settings()

    # Activity

    @translate_errors
    def append_activity(self, entry: ActivityLog) -> ActivityLog:
        row = models.ActivityLog.objects.create(
            id=entry.id,
            type=entry.type.value,
            description=entry.description,
            entity_type=entry.entity_type.value if entry.entity_type else None,
            entity_id=entry.entity_id,
            entity_name=entry.entity_name,
            user_id=entry.user_id,
            amount=entry.amount,
            previous_value=entry.previous_value,
            new_value=entry.new_value,
            metadata=entry.metadata,
            timestamp=entry.timestamp or timezone.now(),
        )
        return activity_from_row(row)

    @translate_errors
    def list_activity(self) -> List[ActivityLog]:
        return [activity_from_row(row) for row in models.ActivityLog.objects.all()]
