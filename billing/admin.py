from django.contrib import admin
from .models import (
    ActivityLog, AppSettings, Client, CompanySettings, Invoice, LineItem,
    Payment, Project, Task, Template, TimeEntry,
)


class LineItemInline(admin.TabularInline):
    model = LineItem
    extra = 0
    readonly_fields = ('amount',)


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    readonly_fields = ('amount', 'payment_date', 'payment_method', 'created_at')
    can_delete = False


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'city', 'country', 'created_at')
    search_fields = ('name', 'email')
    list_filter = ('country',)


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('invoice_number', 'client', 'status', 'total', 'balance', 'due_date', 'is_recurring')
    list_filter = ('status', 'is_recurring')
    search_fields = ('invoice_number', 'client__name')
    readonly_fields = ('subtotal', 'tax_amount', 'total', 'paid_amount', 'balance', 'created_at', 'updated_at')
    date_hierarchy = 'issue_date'
    inlines = [LineItemInline, PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('invoice', 'amount', 'payment_date', 'payment_method')
    list_filter = ('payment_method',)
    search_fields = ('invoice__invoice_number',)


@admin.register(Template)
class TemplateAdmin(admin.ModelAdmin):
    list_display = ('name', 'tax_rate', 'is_active', 'updated_at')
    list_filter = ('is_active',)


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('name', 'client', 'status', 'start_date', 'end_date', 'is_active')
    list_filter = ('status', 'is_active')
    search_fields = ('name', 'client__name')


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ('title', 'project', 'status', 'priority', 'actual_hours', 'billable_hours')
    list_filter = ('status', 'priority', 'is_billable')
    search_fields = ('title', 'project__name')


@admin.register(TimeEntry)
class TimeEntryAdmin(admin.ModelAdmin):
    list_display = ('task', 'project', 'start_time', 'duration', 'is_billable')
    list_filter = ('is_billable',)


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ('type', 'entity_type', 'entity_name', 'user_id', 'timestamp')
    list_filter = ('type', 'entity_type')
    search_fields = ('description', 'entity_name')
    readonly_fields = ('timestamp',)


admin.site.register(CompanySettings)
admin.site.register(AppSettings)
