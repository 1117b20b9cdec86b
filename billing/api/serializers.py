"""
Request serializers.

Field names follow the camelCase exchange format; ``source`` maps each one
to the snake_case key the services expect in ``validated_data``. Responses
are rendered from the entities' ``to_record()``.
"""

from decimal import Decimal

from rest_framework import serializers

from billing.domain.entities import (
    InvoiceStatus,
    PaymentMethod,
    ProjectStatus,
    RecurringFrequency,
    TaskPriority,
    TaskStatus,
)
from billing.domain.filters import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from billing.domain.reporting import PERIODS

MONEY = {"max_digits": 12, "decimal_places": 2}


def choices(enum):
    return [member.value for member in enum]


class AddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255, allow_blank=True, required=False)
    city = serializers.CharField(max_length=100, allow_blank=True, required=False)
    state = serializers.CharField(max_length=100, allow_blank=True, required=False)
    zipCode = serializers.CharField(source="zip_code", max_length=20, allow_blank=True, required=False)
    country = serializers.CharField(max_length=100, allow_blank=True, required=False)


class ClientSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=50, allow_blank=True, allow_null=True, required=False)
    address = AddressSerializer()


class LineItemSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=32, required=False)
    description = serializers.CharField(max_length=500)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=4, min_value=Decimal("0"))
    rate = serializers.DecimalField(min_value=Decimal("0"), **MONEY)


class RecurringScheduleSerializer(serializers.Serializer):
    frequency = serializers.ChoiceField(choices=choices(RecurringFrequency))
    interval = serializers.IntegerField(min_value=1, default=1)
    startDate = serializers.DateField(source="start_date")
    endDate = serializers.DateField(source="end_date", allow_null=True, required=False)
    nextInvoiceDate = serializers.DateField(source="next_invoice_date", required=False)
    isActive = serializers.BooleanField(source="is_active", default=True)


class InvoiceSerializer(serializers.Serializer):
    clientId = serializers.CharField(source="client_id", max_length=32)
    templateId = serializers.CharField(source="template_id", max_length=32, allow_null=True, required=False)
    lineItems = LineItemSerializer(source="line_items", many=True, required=False)
    taskIds = serializers.ListField(source="task_ids", child=serializers.CharField(max_length=32), required=False)
    defaultRate = serializers.DecimalField(source="default_rate", min_value=Decimal("0"), required=False, **MONEY)
    taxRate = serializers.DecimalField(
        source="tax_rate", max_digits=7, decimal_places=4, min_value=Decimal("0"), required=False
    )
    issueDate = serializers.DateField(source="issue_date", required=False)
    dueDate = serializers.DateField(source="due_date", required=False)
    notes = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    isRecurring = serializers.BooleanField(source="is_recurring", required=False)
    recurringSchedule = RecurringScheduleSerializer(source="recurring_schedule", allow_null=True, required=False)

    def validate(self, attrs):
        issue_date, due_date = attrs.get("issue_date"), attrs.get("due_date")
        if issue_date and due_date and due_date < issue_date:
            raise serializers.ValidationError({"dueDate": "Due date cannot be before issue date."})
        return attrs


class InvoiceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=choices(InvoiceStatus))


class PaymentSerializer(serializers.Serializer):
    invoiceId = serializers.CharField(source="invoice_id", max_length=32)
    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    paymentDate = serializers.DateField(source="payment_date", required=False)
    paymentMethod = serializers.ChoiceField(
        source="payment_method", choices=choices(PaymentMethod), default=PaymentMethod.OTHER.value
    )
    notes = serializers.CharField(allow_blank=True, allow_null=True, required=False)


class TemplateLineItemSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=500)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=4, min_value=Decimal("0"))
    rate = serializers.DecimalField(min_value=Decimal("0"), **MONEY)


class TemplateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    lineItems = TemplateLineItemSerializer(source="line_items", many=True, required=False)
    taxRate = serializers.DecimalField(
        source="tax_rate", max_digits=7, decimal_places=4, min_value=Decimal("0"), required=False
    )
    notes = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    isActive = serializers.BooleanField(source="is_active", required=False)


class ProjectSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    clientId = serializers.CharField(source="client_id", max_length=32)
    status = serializers.ChoiceField(choices=choices(ProjectStatus), required=False)
    startDate = serializers.DateField(source="start_date", required=False)
    endDate = serializers.DateField(source="end_date", allow_null=True, required=False)
    budget = serializers.DecimalField(min_value=Decimal("0"), allow_null=True, required=False, **MONEY)
    hourlyRate = serializers.DecimalField(
        source="hourly_rate", min_value=Decimal("0"), allow_null=True, required=False, **MONEY
    )
    isActive = serializers.BooleanField(source="is_active", required=False)


class TaskSerializer(serializers.Serializer):
    projectId = serializers.CharField(source="project_id", max_length=32)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    status = serializers.ChoiceField(choices=choices(TaskStatus), required=False)
    priority = serializers.ChoiceField(choices=choices(TaskPriority), required=False)
    assignedTo = serializers.CharField(source="assigned_to", allow_blank=True, allow_null=True, required=False)
    dueDate = serializers.DateField(source="due_date", allow_null=True, required=False)
    estimatedHours = serializers.DecimalField(
        source="estimated_hours", max_digits=8, decimal_places=2, min_value=Decimal("0"),
        allow_null=True, required=False,
    )
    isBillable = serializers.BooleanField(source="is_billable", required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)


class TimeEntrySerializer(serializers.Serializer):
    taskId = serializers.CharField(source="task_id", max_length=32)
    projectId = serializers.CharField(source="project_id", max_length=32, required=False)
    description = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    startTime = serializers.DateTimeField(source="start_time")
    endTime = serializers.DateTimeField(source="end_time", allow_null=True, required=False)
    duration = serializers.IntegerField(min_value=0, required=False)
    isBillable = serializers.BooleanField(source="is_billable", required=False)
    hourlyRate = serializers.DecimalField(
        source="hourly_rate", min_value=Decimal("0"), allow_null=True, required=False, **MONEY
    )


class CompanySettingsSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, allow_blank=True, required=False)
    email = serializers.EmailField(allow_blank=True, required=False)
    phone = serializers.CharField(max_length=50, allow_blank=True, allow_null=True, required=False)
    address = AddressSerializer(required=False)
    logo = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    taxRate = serializers.DecimalField(
        source="tax_rate", max_digits=7, decimal_places=4, min_value=Decimal("0"), required=False
    )
    paymentTerms = serializers.IntegerField(source="payment_terms", min_value=0, required=False)
    invoiceTemplate = serializers.CharField(source="invoice_template", max_length=50, required=False)
    currency = serializers.CharField(max_length=3, required=False)
    dateFormat = serializers.CharField(source="date_format", max_length=20, required=False)
    timeZone = serializers.CharField(source="time_zone", max_length=50, required=False)


class AppSettingsSerializer(serializers.Serializer):
    isSetupComplete = serializers.BooleanField(source="is_setup_complete", required=False)
    lastBackup = serializers.DateTimeField(source="last_backup", allow_null=True, required=False)
    autoBackup = serializers.BooleanField(source="auto_backup", required=False)
    backupFrequency = serializers.ChoiceField(
        source="backup_frequency", choices=["daily", "weekly", "monthly"], required=False
    )
    theme = serializers.ChoiceField(choices=["light", "dark", "system"], required=False)
    colorTheme = serializers.CharField(source="color_theme", max_length=30, required=False)


# Query parameters

class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=MAX_PAGE_SIZE, default=DEFAULT_PAGE_SIZE)
    sortBy = serializers.CharField(source="sort_by", required=False)
    sortOrder = serializers.ChoiceField(source="sort_order", choices=["asc", "desc"], required=False)


class DateRangeQuerySerializer(serializers.Serializer):
    dateFrom = serializers.DateField(source="date_from", required=False)
    dateTo = serializers.DateField(source="date_to", required=False)

    def validate(self, attrs):
        if attrs.get("date_from") and attrs.get("date_to") and attrs["date_to"] < attrs["date_from"]:
            raise serializers.ValidationError({"dateTo": "End date cannot be before start date."})
        return attrs


class InvoiceQuerySerializer(PageQuerySerializer, DateRangeQuerySerializer):
    status = serializers.ChoiceField(choices=choices(InvoiceStatus), required=False)
    clientId = serializers.CharField(source="client_id", required=False)
    search = serializers.CharField(required=False)


class ClientQuerySerializer(PageQuerySerializer):
    search = serializers.CharField(required=False)
    country = serializers.CharField(required=False)
    state = serializers.CharField(required=False)


class PaymentQuerySerializer(PageQuerySerializer, DateRangeQuerySerializer):
    invoiceId = serializers.CharField(source="invoice_id", required=False)
    paymentMethod = serializers.ChoiceField(source="payment_method", choices=choices(PaymentMethod), required=False)


class ActivityQuerySerializer(PageQuerySerializer, DateRangeQuerySerializer):
    type = serializers.CharField(required=False)
    entityType = serializers.CharField(source="entity_type", required=False)
    entityId = serializers.CharField(source="entity_id", required=False)
    userId = serializers.CharField(source="user_id", required=False)
    search = serializers.CharField(required=False)


class RevenueQuerySerializer(DateRangeQuerySerializer):
    period = serializers.ChoiceField(choices=list(PERIODS), default="month")
    range = serializers.CharField(source="preset", required=False)


class RecurringRunSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    dryRun = serializers.BooleanField(source="dry_run", default=False)
    invoiceId = serializers.CharField(source="invoice_id", required=False)
