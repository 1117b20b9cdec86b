"""
Billing Services Layer

Business rules over the store:
- Domain: pure calculations and state rules (billing.domain)
- Services: orchestration, persistence, audit trail
- API: request parsing, serialization, response mapping

All mutations should flow through these services.
"""

from .activity_service import ActivityService
from .client_service import ClientService
from .invoice_service import InvoiceService
from .payment_service import PaymentService
from .project_service import ProjectService
from .recurring_service import RecurringService
from .reports_service import ReportsService
from .settings_service import SettingsService
from .template_service import TemplateService

__all__ = [
    "ActivityService",
    "ClientService",
    "InvoiceService",
    "PaymentService",
    "ProjectService",
    "RecurringService",
    "ReportsService",
    "SettingsService",
    "TemplateService",
]
