"""
The storage collaborator used by the billing services.

Every call stands on its own: there is no transaction spanning two calls, so
services must order multi-step writes so that a failure part-way leaves a
state they can detect and repair.

Conventions shared by all implementations:

- ``get_*`` returns ``None`` when the id does not exist.
- ``delete_*`` returns ``False`` when there was nothing to delete.
- ``create_*``/``update_*`` return the entity as persisted.
- Any failure of the backing store is raised as ``StorageError``.
"""

from __future__ import annotations

import abc
from datetime import date
from typing import List, Optional

from billing.domain.entities import (
    ActivityLog,
    AppSettings,
    Client,
    CompanySettings,
    Invoice,
    Payment,
    Project,
    Task,
    Template,
    TimeEntry,
)


class BillingStore(abc.ABC):
    #: True when ``update_payment`` rewrites a payment without deleting it.
    supports_in_place_update = False

    # Clients

    @abc.abstractmethod
    def list_clients(self) -> List[Client]: ...

    @abc.abstractmethod
    def get_client(self, client_id: str) -> Optional[Client]: ...

    @abc.abstractmethod
    def create_client(self, client: Client) -> Client: ...

    @abc.abstractmethod
    def update_client(self, client: Client) -> Client: ...

    @abc.abstractmethod
    def delete_client(self, client_id: str) -> bool: ...

    # Invoices

    @abc.abstractmethod
    def list_invoices(self) -> List[Invoice]: ...

    @abc.abstractmethod
    def get_invoice(self, invoice_id: str) -> Optional[Invoice]: ...

    @abc.abstractmethod
    def create_invoice(self, invoice: Invoice) -> Invoice: ...

    @abc.abstractmethod
    def update_invoice(self, invoice: Invoice) -> Invoice: ...

    @abc.abstractmethod
    def delete_invoice(self, invoice_id: str) -> bool: ...

    @abc.abstractmethod
    def invoice_numbers(self, prefix: str) -> List[str]:
        """Existing invoice numbers starting with ``prefix``."""

    @abc.abstractmethod
    def find_recurring_instance(self, parent_id: str, period: date) -> Optional[Invoice]:
        """The invoice already generated from ``parent_id`` for ``period``, if any."""

    # Payments

    @abc.abstractmethod
    def list_payments(self) -> List[Payment]: ...

    @abc.abstractmethod
    def list_payments_for_invoice(self, invoice_id: str) -> List[Payment]: ...

    @abc.abstractmethod
    def get_payment(self, payment_id: str) -> Optional[Payment]: ...

    @abc.abstractmethod
    def create_payment(self, payment: Payment) -> Payment: ...

    def update_payment(self, payment: Payment) -> Payment:
        raise NotImplementedError(f"{type(self).__name__} cannot update payments in place")

    @abc.abstractmethod
    def delete_payment(self, payment_id: str) -> bool: ...

    # Templates

    @abc.abstractmethod
    def list_templates(self) -> List[Template]: ...

    @abc.abstractmethod
    def get_template(self, template_id: str) -> Optional[Template]: ...

    @abc.abstractmethod
    def create_template(self, template: Template) -> Template: ...

    @abc.abstractmethod
    def update_template(self, template: Template) -> Template: ...

    @abc.abstractmethod
    def delete_template(self, template_id: str) -> bool: ...

    # Projects, tasks and time entries

    @abc.abstractmethod
    def list_projects(self) -> List[Project]: ...

    @abc.abstractmethod
    def get_project(self, project_id: str) -> Optional[Project]: ...

    @abc.abstractmethod
    def create_project(self, project: Project) -> Project: ...

    @abc.abstractmethod
    def update_project(self, project: Project) -> Project: ...

    @abc.abstractmethod
    def delete_project(self, project_id: str) -> bool: ...

    @abc.abstractmethod
    def list_tasks(self, project_id: Optional[str] = None) -> List[Task]: ...

    @abc.abstractmethod
    def get_task(self, task_id: str) -> Optional[Task]: ...

    @abc.abstractmethod
    def create_task(self, task: Task) -> Task: ...

    @abc.abstractmethod
    def update_task(self, task: Task) -> Task: ...

    @abc.abstractmethod
    def delete_task(self, task_id: str) -> bool: ...

    @abc.abstractmethod
    def list_time_entries(self, task_id: Optional[str] = None, project_id: Optional[str] = None) -> List[TimeEntry]: ...

    @abc.abstractmethod
    def get_time_entry(self, entry_id: str) -> Optional[TimeEntry]: ...

    @abc.abstractmethod
    def create_time_entry(self, entry: TimeEntry) -> TimeEntry: ...

    @abc.abstractmethod
    def update_time_entry(self, entry: TimeEntry) -> TimeEntry: ...

    @abc.abstractmethod
    def delete_time_entry(self, entry_id: str) -> bool: ...

    # Settings

    @abc.abstractmethod
    def get_company_settings(self) -> CompanySettings: ...

    @abc.abstractmethod
    def save_company_settings(self, settings: CompanySettings) -> CompanySettings: ...

    @abc.abstractmethod
    def get_app_settings(self) -> AppSettings: ...

    @abc.abstractmethod
    def save_app_settings(self, settings: AppSettings) -> AppSettings: ...

    # Activity

    @abc.abstractmethod
    def append_activity(self, entry: ActivityLog) -> ActivityLog: ...

    @abc.abstractmethod
    def list_activity(self) -> List[ActivityLog]: ...
