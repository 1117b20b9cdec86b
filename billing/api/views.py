import re
from typing import Any, Dict, Optional, Type

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import serializers, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from billing.domain.entities import EntityType
from billing.services import (
    ClientService,
    InvoiceService,
    PaymentService,
    ProjectService,
    RecurringService,
    ReportsService,
    SettingsService,
    TemplateService,
)
from billing.services.base import BillingService
from billing.validation.errors import ValidationError

from .response import APIResponse
from .serializers import (
    ActivityQuerySerializer,
    AppSettingsSerializer,
    ClientQuerySerializer,
    ClientSerializer,
    CompanySettingsSerializer,
    InvoiceQuerySerializer,
    InvoiceSerializer,
    InvoiceStatusSerializer,
    PageQuerySerializer,
    PaymentQuerySerializer,
    PaymentSerializer,
    ProjectSerializer,
    RecurringRunSerializer,
    RevenueQuerySerializer,
    TaskSerializer,
    TemplateSerializer,
    TimeEntrySerializer,
)

ID_PARAM = OpenApiParameter(
    name="pk",
    description="Entity ID",
    required=True,
    type=OpenApiTypes.STR,
    location=OpenApiParameter.PATH,
)

PAGE_PARAMS = [
    OpenApiParameter(name="page", description="Page number, starting at 1", required=False, type=int),
    OpenApiParameter(name="limit", description="Page size (max 100)", required=False, type=int),
    OpenApiParameter(name="sortBy", description="Field to sort by, e.g. createdAt", required=False, type=str),
    OpenApiParameter(name="sortOrder", description="asc or desc", required=False, type=str),
]

CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def crud_schema(entity: str, **extra) -> Dict[str, Any]:
    schemas = {
        "list": extend_schema(summary=f"List {entity}s", parameters=PAGE_PARAMS),
        "retrieve": extend_schema(summary=f"Get {entity}", parameters=[ID_PARAM]),
        "create": extend_schema(summary=f"Create {entity}"),
        "update": extend_schema(summary=f"Replace {entity}", parameters=[ID_PARAM]),
        "partial_update": extend_schema(summary=f"Update {entity}", parameters=[ID_PARAM]),
        "destroy": extend_schema(summary=f"Delete {entity}", parameters=[ID_PARAM]),
    }
    schemas.update(extra)
    return schemas


class ServiceViewSet(viewsets.ViewSet):
    """Base for endpoints backed by a billing service instead of a queryset."""

    permission_classes = [IsAuthenticated]
    service_class: Type[BillingService] = BillingService
    sort_fields: tuple = ()

    def service(self, service_class: Optional[Type[BillingService]] = None) -> Any:
        return (service_class or self.service_class)(user_id=str(self.request.user.pk))

    def payload(self, serializer_class: Type[serializers.Serializer], partial: bool = False) -> Dict[str, Any]:
        serializer = serializer_class(data=self.request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        return dict(serializer.validated_data)

    def query(self, serializer_class: Type[serializers.Serializer]) -> Dict[str, Any]:
        serializer = serializer_class(data=self.request.query_params)
        serializer.is_valid(raise_exception=True)
        params = dict(serializer.validated_data)
        if params.get("sort_by"):
            sort_by = CAMEL_BOUNDARY.sub("_", params["sort_by"]).lower()
            if sort_by not in self.sort_fields:
                raise ValidationError.for_field(
                    "sortBy", f"Cannot sort by '{params['sort_by']}'"
                )
            params["sort_by"] = sort_by
        return params

    @staticmethod
    def paging(params: Dict[str, Any]) -> Dict[str, Any]:
        paging = {"page": params.pop("page", 1), "limit": params.pop("limit", 20)}
        for name in ("sort_by", "sort_order"):
            if name in params:
                paging[name] = params.pop(name)
        return paging


# ------------------------------
# Clients
# ------------------------------
@extend_schema_view(**crud_schema("client"))
class ClientViewSet(ServiceViewSet):
    service_class = ClientService
    sort_fields = ("name", "email", "created_at", "updated_at")

    def list(self, request: Request, version: Optional[str] = None) -> Response:
        params = self.query(ClientQuerySerializer)
        paging = self.paging(params)
        return APIResponse.paginated(self.service().list_clients(params, **paging))

    def retrieve(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().get_client(pk))

    def create(self, request: Request, version: Optional[str] = None) -> Response:
        client = self.service().create_client(self.payload(ClientSerializer))
        return APIResponse.created(client, message="Client created.")

    def update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        client = self.service().update_client(pk, self.payload(ClientSerializer))
        return APIResponse.success(client, message="Client updated.")

    def partial_update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        client = self.service().update_client(pk, self.payload(ClientSerializer, partial=True))
        return APIResponse.success(client, message="Client updated.")

    def destroy(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        self.service().delete_client(pk)
        return APIResponse.success(message="Client deleted.")

    @extend_schema(summary="List a client's invoices", parameters=[ID_PARAM] + PAGE_PARAMS)
    @action(detail=True, methods=["get"], url_path="invoices")
    def invoices(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        self.service().get_client(pk)
        params = self.query(PageQuerySerializer)
        paging = self.paging(params)
        return APIResponse.paginated(self.service(InvoiceService).list_invoices({"client_id": pk}, **paging))


# ------------------------------
# Invoices
# ------------------------------
@extend_schema_view(**crud_schema(
    "invoice",
    list=extend_schema(
        summary="List invoices",
        description="Invoices with amounts recomputed from payments and overdue derived from the due date.",
        parameters=PAGE_PARAMS + [
            OpenApiParameter(name="status", description="Filter by effective status", required=False, type=str),
            OpenApiParameter(name="clientId", description="Filter by client", required=False, type=str),
            OpenApiParameter(name="dateFrom", description="Issue date on or after", required=False, type=str),
            OpenApiParameter(name="dateTo", description="Issue date on or before", required=False, type=str),
            OpenApiParameter(name="search", description="Search number, notes and client name", required=False, type=str),
        ],
    ),
))
class InvoiceViewSet(ServiceViewSet):
    service_class = InvoiceService
    sort_fields = ("invoice_number", "issue_date", "due_date", "total", "balance", "status", "created_at")

    def list(self, request: Request, version: Optional[str] = None) -> Response:
        params = self.query(InvoiceQuerySerializer)
        paging = self.paging(params)
        return APIResponse.paginated(self.service().list_invoices(params, **paging))

    def retrieve(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().get_invoice(pk))

    def create(self, request: Request, version: Optional[str] = None) -> Response:
        invoice = self.service().create_invoice(self.payload(InvoiceSerializer))
        return APIResponse.created(invoice, message="Invoice created.")

    def update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        invoice = self.service().update_invoice(pk, self.payload(InvoiceSerializer))
        return APIResponse.success(invoice, message="Invoice updated.")

    def partial_update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        invoice = self.service().update_invoice(pk, self.payload(InvoiceSerializer, partial=True))
        return APIResponse.success(invoice, message="Invoice updated.")

    def destroy(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        self.service().delete_invoice(pk)
        return APIResponse.success(message="Invoice deleted.")

    @extend_schema(
        summary="Update invoice status",
        description="Move an invoice to draft, sent, paid or cancelled. Overdue is derived and cannot be set.",
        request=InvoiceStatusSerializer,
        parameters=[ID_PARAM],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        status = self.payload(InvoiceStatusSerializer)["status"]
        invoice = self.service().change_status(pk, status)
        return APIResponse.success(invoice, message="Invoice status updated.")

    @extend_schema(summary="Get available status transitions", parameters=[ID_PARAM])
    @action(detail=True, methods=["get"], url_path="transitions")
    def transitions(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        service = self.service()
        invoice = service.get_invoice(pk)
        return APIResponse.success({
            "currentStatus": invoice.status.value,
            "availableTransitions": [status.value for status in service.transitions(pk)],
        })

    @extend_schema(summary="List an invoice's payments", parameters=[ID_PARAM])
    @action(detail=True, methods=["get"], url_path="payments")
    def payments(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().list_payments(pk))

    @extend_schema(summary="Get invoice history", parameters=[ID_PARAM])
    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        service = self.service()
        service.get_invoice(pk)
        return APIResponse.success(service.activity.for_entity(EntityType.INVOICE, pk))

    @extend_schema(
        summary="Reconcile invoice",
        description="Re-derive paid amount, balance and status from the invoice's stored payments.",
        request=None,
        parameters=[ID_PARAM],
    )
    @action(detail=True, methods=["post"], url_path="reconcile")
    def reconcile(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().reconcile(pk), message="Invoice reconciled.")


# ------------------------------
# Payments
# ------------------------------
@extend_schema_view(**crud_schema("payment"))
class PaymentViewSet(ServiceViewSet):
    service_class = PaymentService
    sort_fields = ("payment_date", "amount", "created_at")

    def list(self, request: Request, version: Optional[str] = None) -> Response:
        params = self.query(PaymentQuerySerializer)
        paging = self.paging(params)
        return APIResponse.paginated(self.service().list_payments(params, **paging))

    def retrieve(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().get_payment(pk))

    def create(self, request: Request, version: Optional[str] = None) -> Response:
        payment = self.service().record_payment(self.payload(PaymentSerializer))
        return APIResponse.created(payment, message="Payment recorded.")

    def update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        payment = self.service().update_payment(pk, self.payload(PaymentSerializer))
        return APIResponse.success(payment, message="Payment updated.")

    def partial_update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        payment = self.service().update_payment(pk, self.payload(PaymentSerializer, partial=True))
        return APIResponse.success(payment, message="Payment updated.")

    def destroy(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        invoice = self.service().delete_payment(pk)
        return APIResponse.success({"invoice": invoice.to_record()}, message="Payment deleted.")


# ------------------------------
# Templates
# ------------------------------
@extend_schema_view(**crud_schema(
    "template",
    list=extend_schema(
        summary="List invoice templates",
        parameters=[OpenApiParameter(name="active", description="Only active templates", required=False, type=bool)],
    ),
))
class TemplateViewSet(ServiceViewSet):
    service_class = TemplateService

    def list(self, request: Request, version: Optional[str] = None) -> Response:
        active_only = request.query_params.get("active", "").lower() in ("1", "true", "yes")
        return APIResponse.success(self.service().list_templates(active_only=active_only))

    def retrieve(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().get_template(pk))

    def create(self, request: Request, version: Optional[str] = None) -> Response:
        template = self.service().create_template(self.payload(TemplateSerializer))
        return APIResponse.created(template, message="Template created.")

    def update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        template = self.service().update_template(pk, self.payload(TemplateSerializer))
        return APIResponse.success(template, message="Template updated.")

    def partial_update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        template = self.service().update_template(pk, self.payload(TemplateSerializer, partial=True))
        return APIResponse.success(template, message="Template updated.")

    def destroy(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        self.service().delete_template(pk)
        return APIResponse.success(message="Template deleted.")


# ------------------------------
# Projects, tasks and time entries
# ------------------------------
@extend_schema_view(**crud_schema("project"))
class ProjectViewSet(ServiceViewSet):
    service_class = ProjectService

    def list(self, request: Request, version: Optional[str] = None) -> Response:
        projects = self.service().list_projects(
            client_id=request.query_params.get("clientId"),
            status=request.query_params.get("status"),
        )
        return APIResponse.success(projects)

    def retrieve(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().get_project(pk))

    def create(self, request: Request, version: Optional[str] = None) -> Response:
        project = self.service().create_project(self.payload(ProjectSerializer))
        return APIResponse.created(project, message="Project created.")

    def update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        project = self.service().update_project(pk, self.payload(ProjectSerializer))
        return APIResponse.success(project, message="Project updated.")

    def partial_update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        project = self.service().update_project(pk, self.payload(ProjectSerializer, partial=True))
        return APIResponse.success(project, message="Project updated.")

    def destroy(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        self.service().delete_project(pk)
        return APIResponse.success(message="Project deleted.")

    @extend_schema(summary="List a project's tasks", parameters=[ID_PARAM])
    @action(detail=True, methods=["get"], url_path="tasks")
    def tasks(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        service = self.service()
        service.get_project(pk)
        return APIResponse.success(service.list_tasks(project_id=pk))


@extend_schema_view(**crud_schema("task"))
class TaskViewSet(ServiceViewSet):
    service_class = ProjectService

    def list(self, request: Request, version: Optional[str] = None) -> Response:
        tasks = self.service().list_tasks(
            project_id=request.query_params.get("projectId"),
            status=request.query_params.get("status"),
        )
        return APIResponse.success(tasks)

    def retrieve(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().get_task(pk))

    def create(self, request: Request, version: Optional[str] = None) -> Response:
        task = self.service().create_task(self.payload(TaskSerializer))
        return APIResponse.created(task, message="Task created.")

    def update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        task = self.service().update_task(pk, self.payload(TaskSerializer))
        return APIResponse.success(task, message="Task updated.")

    def partial_update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        task = self.service().update_task(pk, self.payload(TaskSerializer, partial=True))
        return APIResponse.success(task, message="Task updated.")

    def destroy(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        self.service().delete_task(pk)
        return APIResponse.success(message="Task deleted.")

    @extend_schema(summary="List a task's time entries", parameters=[ID_PARAM])
    @action(detail=True, methods=["get"], url_path="time-entries")
    def time_entries(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        service = self.service()
        service.get_task(pk)
        return APIResponse.success(service.list_time_entries(task_id=pk))


@extend_schema_view(**crud_schema("time entry"))
class TimeEntryViewSet(ServiceViewSet):
    service_class = ProjectService

    def list(self, request: Request, version: Optional[str] = None) -> Response:
        entries = self.service().list_time_entries(
            task_id=request.query_params.get("taskId"),
            project_id=request.query_params.get("projectId"),
        )
        return APIResponse.success(entries)

    def retrieve(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().get_time_entry(pk))

    def create(self, request: Request, version: Optional[str] = None) -> Response:
        entry = self.service().create_time_entry(self.payload(TimeEntrySerializer))
        return APIResponse.created(entry, message="Time entry created.")

    def update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        entry = self.service().update_time_entry(pk, self.payload(TimeEntrySerializer))
        return APIResponse.success(entry, message="Time entry updated.")

    def partial_update(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        entry = self.service().update_time_entry(pk, self.payload(TimeEntrySerializer, partial=True))
        return APIResponse.success(entry, message="Time entry updated.")

    def destroy(self, request: Request, pk: Optional[str] = None, version: Optional[str] = None) -> Response:
        self.service().delete_time_entry(pk)
        return APIResponse.success(message="Time entry deleted.")


# ------------------------------
# Settings
# ------------------------------
class SettingsViewSet(ServiceViewSet):
    service_class = SettingsService

    @extend_schema(summary="Get or update company settings", request=CompanySettingsSerializer)
    @action(detail=False, methods=["get", "put", "patch"], url_path="company")
    def company(self, request: Request, version: Optional[str] = None) -> Response:
        service = self.service()
        if request.method == "GET":
            return APIResponse.success(service.get_company())
        data = self.payload(CompanySettingsSerializer, partial=True)
        return APIResponse.success(service.update_company(data), message="Company settings updated.")

    @extend_schema(summary="Get or update application settings", request=AppSettingsSerializer)
    @action(detail=False, methods=["get", "put", "patch"], url_path="app")
    def app(self, request: Request, version: Optional[str] = None) -> Response:
        service = self.service()
        if request.method == "GET":
            return APIResponse.success(service.get_app())
        data = self.payload(AppSettingsSerializer, partial=True)
        return APIResponse.success(service.update_app(data), message="Application settings updated.")


# ------------------------------
# Reports
# ------------------------------
class ReportViewSet(ServiceViewSet):
    service_class = ReportsService

    @extend_schema(summary="Dashboard metrics")
    @action(detail=False, methods=["get"], url_path="dashboard")
    def dashboard(self, request: Request, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().dashboard())

    @extend_schema(
        summary="Revenue by period",
        description="Cash-basis revenue grouped by month, quarter or year of payment date.",
        parameters=[
            OpenApiParameter(name="period", description="month, quarter or year", required=False, type=str),
            OpenApiParameter(name="dateFrom", required=False, type=str),
            OpenApiParameter(name="dateTo", required=False, type=str),
            OpenApiParameter(name="range", description="Preset range, e.g. this_year", required=False, type=str),
        ],
    )
    @action(detail=False, methods=["get"], url_path="revenue")
    def revenue(self, request: Request, version: Optional[str] = None) -> Response:
        params = self.query(RevenueQuerySerializer)
        return APIResponse.success(self.service().revenue(**params))

    @extend_schema(summary="Totals per client")
    @action(detail=False, methods=["get"], url_path="clients")
    def clients(self, request: Request, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().clients())

    @extend_schema(summary="Invoice count and amount per status")
    @action(detail=False, methods=["get"], url_path="status")
    def statuses(self, request: Request, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().statuses())


# ------------------------------
# Activity
# ------------------------------
@extend_schema_view(list=extend_schema(summary="List activity", parameters=PAGE_PARAMS))
class ActivityViewSet(ServiceViewSet):
    service_class = BillingService

    def list(self, request: Request, version: Optional[str] = None) -> Response:
        params = self.query(ActivityQuerySerializer)
        page, limit = params.pop("page", 1), params.pop("limit", 20)
        params.pop("sort_by", None)
        params.pop("sort_order", None)
        return APIResponse.paginated(self.service().activity.list_activity(params, page=page, limit=limit))


# ------------------------------
# Recurring invoices
# ------------------------------
class RecurringViewSet(ServiceViewSet):
    service_class = RecurringService

    @extend_schema(summary="List recurring invoice templates")
    def list(self, request: Request, version: Optional[str] = None) -> Response:
        return APIResponse.success(self.service().recurring_invoices())

    @extend_schema(
        summary="Generate due recurring invoices",
        description="Runs every due schedule, or only invoiceId's. Re-running for the same period creates nothing.",
        request=RecurringRunSerializer,
    )
    @action(detail=False, methods=["post"], url_path="process")
    def process(self, request: Request, version: Optional[str] = None) -> Response:
        params = self.payload(RecurringRunSerializer)
        service = self.service()
        if params.get("invoice_id"):
            run = service.process_schedule(params["invoice_id"], params.get("date"), dry_run=params["dry_run"])
            return APIResponse.success(run)
        result = service.process_due(params.get("date"), dry_run=params["dry_run"])
        return APIResponse.success(result)
