from __future__ import annotations

from decimal import Decimal

from django.db import models

from billing.domain.entities import new_id


def _id_field():
    return models.CharField(max_length=32, primary_key=True, default=new_id, editable=False)


class Client(models.Model):
    id = _id_field()
    name = models.CharField(max_length=255)
    email = models.EmailField()
    phone = models.CharField(max_length=50, blank=True, null=True)

    street = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    zip_code = models.CharField(max_length=20)
    country = models.CharField(max_length=100)

    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['email']),
        ]

    def __str__(self):
        return self.name


class Invoice(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SENT = "sent", "Sent"
        PAID = "paid", "Paid"
        OVERDUE = "overdue", "Overdue"
        CANCELLED = "cancelled", "Cancelled"

    id = _id_field()
    invoice_number = models.CharField(max_length=50, unique=True)
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="invoices")
    template_id = models.CharField(max_length=32, blank=True, null=True)
    # "overdue" is only ever present on legacy rows
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT, db_index=True)

    issue_date = models.DateField()
    due_date = models.DateField(db_index=True)
    sent_date = models.DateTimeField(null=True, blank=True)

    tax_rate = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0.0000'))
    # Cached; always re-derived from line items and payments on read.
    subtotal = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    balance = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))

    notes = models.TextField(blank=True, null=True)

    is_recurring = models.BooleanField(default=False)
    recurring_schedule = models.JSONField(null=True, blank=True)
    recurring_parent_id = models.CharField(max_length=32, blank=True, null=True)
    recurring_period = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['client', 'status']),
            models.Index(fields=['is_recurring']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['recurring_parent_id', 'recurring_period'],
                condition=models.Q(recurring_parent_id__isnull=False),
                name='unique_recurring_instance',
            ),
        ]

    def __str__(self):
        return self.invoice_number


class LineItem(models.Model):
    id = _id_field()
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    description = models.CharField(max_length=500)
    quantity = models.DecimalField(max_digits=15, decimal_places=4, default=Decimal('1.0000'))
    rate = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ['sort_order', 'id']


class Payment(models.Model):
    class Method(models.TextChoices):
        CASH = "cash", "Cash"
        CHECK = "check", "Check"
        CREDIT_CARD = "credit_card", "Credit Card"
        BANK_TRANSFER = "bank_transfer", "Bank Transfer"
        PAYPAL = "paypal", "PayPal"
        OTHER = "other", "Other"

    id = _id_field()
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    payment_date = models.DateField()
    payment_method = models.CharField(max_length=20, choices=Method.choices, default=Method.OTHER)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField()

    class Meta:
        ordering = ['-payment_date', '-created_at']

    def __str__(self):
        return f"Payment {self.id} for Invoice {self.invoice_id}"


class Template(models.Model):
    id = _id_field()
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    line_items = models.JSONField(default=list, blank=True)
    tax_rate = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0.0000'))
    notes = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class Project(models.Model):
    class Status(models.TextChoices):
        PLANNING = "planning", "Planning"
        ACTIVE = "active", "Active"
        ON_HOLD = "on-hold", "On Hold"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    id = _id_field()
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="projects")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PLANNING)
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    budget = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    hourly_rate = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class Task(models.Model):
    class Status(models.TextChoices):
        TODO = "todo", "To Do"
        IN_PROGRESS = "in-progress", "In Progress"
        REVIEW = "review", "Review"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"

    id = _id_field()
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="tasks")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.TODO)
    priority = models.CharField(max_length=20, choices=Priority.choices, default=Priority.MEDIUM)
    assigned_to = models.CharField(max_length=255, blank=True, null=True)
    due_date = models.DateField(null=True, blank=True)
    estimated_hours = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    actual_hours = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    billable_hours = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    is_billable = models.BooleanField(default=True)
    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class TimeEntry(models.Model):
    id = _id_field()
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="time_entries")
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="time_entries")
    description = models.TextField(blank=True, null=True)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    duration = models.PositiveIntegerField(default=0, help_text="Minutes")
    is_billable = models.BooleanField(default=True)
    hourly_rate = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        ordering = ['-start_time']
        verbose_name_plural = "Time entries"


class SingletonModel(models.Model):
    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj


class CompanySettings(SingletonModel):
    name = models.CharField(max_length=255, blank=True, default="")
    email = models.CharField(max_length=255, blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, null=True)
    street = models.CharField(max_length=255, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(max_length=100, blank=True, default="")
    zip_code = models.CharField(max_length=20, blank=True, default="")
    country = models.CharField(max_length=100, blank=True, default="")
    logo = models.TextField(blank=True, null=True)
    tax_rate = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal('0.0000'))
    payment_terms = models.PositiveIntegerField(default=30)
    invoice_template = models.CharField(max_length=50, default="default")
    currency = models.CharField(max_length=3, default="USD")
    date_format = models.CharField(max_length=20, default="MM/dd/yyyy")
    time_zone = models.CharField(max_length=50, default="UTC")

    class Meta:
        verbose_name_plural = "Company settings"


class AppSettings(SingletonModel):
    class BackupFrequency(models.TextChoices):
        DAILY = "daily", "Daily"
        WEEKLY = "weekly", "Weekly"
        MONTHLY = "monthly", "Monthly"

    class Theme(models.TextChoices):
        LIGHT = "light", "Light"
        DARK = "dark", "Dark"
        SYSTEM = "system", "System"

    is_setup_complete = models.BooleanField(default=False)
    last_backup = models.DateTimeField(null=True, blank=True)
    auto_backup = models.BooleanField(default=False)
    backup_frequency = models.CharField(max_length=20, choices=BackupFrequency.choices, default=BackupFrequency.WEEKLY)
    theme = models.CharField(max_length=20, choices=Theme.choices, default=Theme.SYSTEM)
    color_theme = models.CharField(max_length=50, default="default")

    class Meta:
        verbose_name_plural = "App settings"


class ActivityLog(models.Model):
    id = _id_field()
    type = models.CharField(max_length=50, db_index=True)
    description = models.TextField()
    entity_type = models.CharField(max_length=20, blank=True, null=True)
    entity_id = models.CharField(max_length=32, blank=True, null=True)
    entity_name = models.CharField(max_length=255, blank=True, null=True)
    user_id = models.CharField(max_length=255, blank=True, null=True)
    amount = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    previous_value = models.TextField(blank=True, null=True)
    new_value = models.TextField(blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(db_index=True)

    class Meta:
        ordering = ['-timestamp']
        verbose_name_plural = "Activity log"
        indexes = [
            models.Index(fields=['entity_type', 'entity_id']),
        ]
