"""API URL routing for BillingMonk."""
from rest_framework.routers import DefaultRouter

from .views import (
    ActivityViewSet,
    ClientViewSet,
    InvoiceViewSet,
    PaymentViewSet,
    ProjectViewSet,
    RecurringViewSet,
    ReportViewSet,
    SettingsViewSet,
    TaskViewSet,
    TemplateViewSet,
    TimeEntryViewSet,
)

router = DefaultRouter()
router.register(r"clients", ClientViewSet, basename="api-clients")
router.register(r"invoices", InvoiceViewSet, basename="api-invoices")
router.register(r"payments", PaymentViewSet, basename="api-payments")
router.register(r"templates", TemplateViewSet, basename="api-templates")
router.register(r"projects", ProjectViewSet, basename="api-projects")
router.register(r"tasks", TaskViewSet, basename="api-tasks")
router.register(r"time-entries", TimeEntryViewSet, basename="api-time-entries")
router.register(r"settings", SettingsViewSet, basename="api-settings")
router.register(r"reports", ReportViewSet, basename="api-reports")
router.register(r"activity", ActivityViewSet, basename="api-activity")
router.register(r"recurring", RecurringViewSet, basename="api-recurring")

urlpatterns = router.urls
