from datetime import date
from decimal import Decimal

import factory
from django.utils import timezone
from factory.django import DjangoModelFactory

from billing import models
from billing.domain import entities
from billing.domain.entities import InvoiceStatus, PaymentMethod, RecurringFrequency, new_id


class ClientFactory(DjangoModelFactory):
    class Meta:
        model = models.Client

    id = factory.LazyFunction(new_id)
    name = factory.Sequence(lambda n: f"Client {n}")
    email = factory.Sequence(lambda n: f"client{n}@example.com")
    phone = "555-0100"
    street = "1 Main St"
    city = "Springfield"
    state = "IL"
    zip_code = "62701"
    country = "US"
    created_at = factory.LazyFunction(timezone.now)
    updated_at = factory.LazyFunction(timezone.now)


class InvoiceFactory(DjangoModelFactory):
    class Meta:
        model = models.Invoice

    id = factory.LazyFunction(new_id)
    invoice_number = factory.Sequence(lambda n: f"INV-2024-{n + 1:04d}")
    client = factory.SubFactory(ClientFactory)
    status = "draft"
    issue_date = date(2024, 1, 1)
    due_date = date(2024, 1, 31)
    tax_rate = Decimal("0.0800")
    created_at = factory.LazyFunction(timezone.now)
    updated_at = factory.LazyFunction(timezone.now)


class LineItemFactory(DjangoModelFactory):
    class Meta:
        model = models.LineItem

    id = factory.LazyFunction(new_id)
    invoice = factory.SubFactory(InvoiceFactory)
    description = factory.Sequence(lambda n: f"Service {n}")
    quantity = Decimal("1")
    rate = Decimal("100.00")
    amount = Decimal("100.00")


class PaymentFactory(DjangoModelFactory):
    class Meta:
        model = models.Payment

    id = factory.LazyFunction(new_id)
    invoice = factory.SubFactory(InvoiceFactory)
    amount = Decimal("50.00")
    payment_date = date(2024, 1, 15)
    payment_method = "bank_transfer"
    created_at = factory.LazyFunction(timezone.now)


# Domain entities, for the pure functions


class LineItemDataFactory(factory.Factory):
    class Meta:
        model = entities.LineItem

    id = factory.LazyFunction(new_id)
    description = factory.Sequence(lambda n: f"Item {n}")
    quantity = Decimal("1")
    rate = Decimal("100.00")


class InvoiceDataFactory(factory.Factory):
    class Meta:
        model = entities.Invoice

    id = factory.LazyFunction(new_id)
    invoice_number = factory.Sequence(lambda n: f"INV-2024-{n + 1:04d}")
    client_id = factory.LazyFunction(new_id)
    issue_date = date(2024, 1, 1)
    due_date = date(2024, 1, 31)
    status = InvoiceStatus.DRAFT
    line_items = factory.LazyFunction(lambda: [
        LineItemDataFactory(quantity=Decimal("2"), rate=Decimal("50.00")),
        LineItemDataFactory(quantity=Decimal("1"), rate=Decimal("25.00")),
    ])
    tax_rate = Decimal("0.08")


class PaymentDataFactory(factory.Factory):
    class Meta:
        model = entities.Payment

    id = factory.LazyFunction(new_id)
    invoice_id = factory.LazyFunction(new_id)
    amount = Decimal("50.00")
    payment_date = date(2024, 1, 15)
    payment_method = PaymentMethod.BANK_TRANSFER


class ScheduleFactory(factory.Factory):
    class Meta:
        model = entities.RecurringSchedule

    frequency = RecurringFrequency.MONTHLY
    interval = 1
    start_date = date(2024, 1, 1)
    next_invoice_date = factory.SelfAttribute("start_date")
    end_date = None
    is_active = True


class ClientDataFactory(factory.Factory):
    class Meta:
        model = entities.Client

    id = factory.LazyFunction(new_id)
    name = factory.Sequence(lambda n: f"Client {n}")
    email = factory.Sequence(lambda n: f"client{n}@example.com")
    address = factory.LazyFunction(
        lambda: entities.Address(street="1 Main St", city="Springfield", state="IL", zip_code="62701", country="US")
    )
