from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from billing import models
from billing.domain.entities import ActivityType, EntityType, InvoiceStatus
from billing.services import InvoiceService, PaymentService, ProjectService, SettingsService, TemplateService
from billing.validation.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError


@pytest.mark.django_db
class TestCreateInvoice:
    @pytest.fixture
    def service(self, store):
        return InvoiceService(store, user_id="1")

    def test_computes_totals(self, invoice):
        assert invoice.subtotal == Decimal("125.00")
        assert invoice.tax_amount == Decimal("10.00")
        assert invoice.total == Decimal("135.00")
        assert invoice.balance == Decimal("135.00")
        assert invoice.status == InvoiceStatus.DRAFT
        assert [item.amount for item in invoice.line_items] == [Decimal("100.00"), Decimal("25.00")]

    def test_numbers_are_sequential_per_year(self, service, invoice_data, today):
        first = service.create_invoice(invoice_data)
        second = service.create_invoice(invoice_data)

        assert first.invoice_number == f"INV-{today.year}-0001"
        assert second.invoice_number == f"INV-{today.year}-0002"

    def test_numbering_restarts_each_year(self, service, invoice_data, today):
        service.create_invoice(invoice_data)
        last_year = today.replace(year=today.year - 1, month=6, day=1)
        older = service.create_invoice(dict(invoice_data, issue_date=last_year, due_date=last_year))

        assert older.invoice_number == f"INV-{last_year.year}-0001"

    def test_unknown_client(self, service, invoice_data):
        with pytest.raises(ValidationError) as exc_info:
            service.create_invoice(dict(invoice_data, client_id="missing"))
        assert exc_info.value.fields[0].field == "clientId"

    def test_due_date_before_issue_date(self, service, invoice_data, today):
        with pytest.raises(ValidationError):
            service.create_invoice(dict(invoice_data, due_date=today - timedelta(days=1)))

    def test_defaults_from_company_settings(self, service, store, invoice_data, today):
        SettingsService(store).update_company({"tax_rate": Decimal("0.10"), "payment_terms": 14})
        data = {k: v for k, v in invoice_data.items() if k not in ("tax_rate", "due_date")}

        invoice = service.create_invoice(data)

        assert invoice.due_date == today + timedelta(days=14)
        assert invoice.tax_amount == Decimal("12.50")

    def test_from_template(self, service, store, client_record):
        template = TemplateService(store).create_template({
            "name": "Retainer",
            "line_items": [{"description": "Support", "quantity": "10", "rate": "90.00"}],
            "tax_rate": Decimal("0"),
            "notes": "Thank you",
        })

        invoice = service.create_invoice({"client_id": client_record.id, "template_id": template.id})

        assert invoice.template_id == template.id
        assert invoice.total == Decimal("900.00")
        assert invoice.notes == "Thank you"

    def test_recurring_requires_schedule(self, service, invoice_data):
        with pytest.raises(ValidationError) as exc_info:
            service.create_invoice(dict(invoice_data, is_recurring=True))
        assert exc_info.value.fields[0].field == "recurringSchedule"

    def test_from_logged_time(self, service, store, client_record):
        projects = ProjectService(store, user_id="1")
        project = projects.create_project({
            "name": "Website", "client_id": client_record.id, "hourly_rate": Decimal("80.00"),
        })
        task = projects.create_task({"project_id": project.id, "title": "Build pages"})
        projects.create_time_entry({
            "task_id": task.id,
            "start_time": datetime(2024, 3, 1, 9, 0, tzinfo=dt_timezone.utc),
            "end_time": datetime(2024, 3, 1, 10, 30, tzinfo=dt_timezone.utc),
        })

        invoice = service.create_invoice({"client_id": client_record.id, "task_ids": [task.id], "tax_rate": Decimal("0")})

        assert len(invoice.line_items) == 1
        item = invoice.line_items[0]
        assert item.description == "Build pages"
        assert item.quantity == Decimal("1.50")
        assert item.rate == Decimal("80.00")
        assert invoice.total == Decimal("120.00")

    def test_records_activity(self, store, invoice):
        entries = store.list_activity()
        created = [e for e in entries if e.type == ActivityType.INVOICE_CREATED]

        assert len(created) == 1
        assert created[0].entity_type == EntityType.INVOICE
        assert created[0].entity_id == invoice.id
        assert created[0].user_id == "1"
        assert created[0].new_value is not None


@pytest.mark.django_db
class TestUpdateInvoice:
    def test_line_items_recompute_totals(self, store, invoice):
        service = InvoiceService(store, user_id="1")

        updated = service.update_invoice(invoice.id, {
            "line_items": [{"description": "Audit", "quantity": Decimal("3"), "rate": Decimal("100.00")}],
        })

        assert updated.subtotal == Decimal("300.00")
        assert updated.total == Decimal("324.00")

    def test_keeps_payments_in_balance(self, store, invoice):
        PaymentService(store, user_id="1").record_payment({"invoice_id": invoice.id, "amount": Decimal("35.00")})

        updated = InvoiceService(store).update_invoice(invoice.id, {"notes": "Updated"})

        assert updated.notes == "Updated"
        assert updated.paid_amount == Decimal("35.00")
        assert updated.balance == Decimal("100.00")

    def test_unknown_invoice(self, store):
        with pytest.raises(NotFoundError):
            InvoiceService(store).update_invoice("missing", {"notes": "x"})


@pytest.mark.django_db
class TestDeleteInvoice:
    def test_delete(self, store, invoice):
        service = InvoiceService(store)
        service.delete_invoice(invoice.id)

        with pytest.raises(NotFoundError):
            service.get_invoice(invoice.id)

    def test_refused_while_payments_exist(self, store, invoice):
        PaymentService(store).record_payment({"invoice_id": invoice.id, "amount": Decimal("10.00")})

        with pytest.raises(ConflictError):
            InvoiceService(store).delete_invoice(invoice.id)
        assert models.Invoice.objects.filter(pk=invoice.id).exists()


@pytest.mark.django_db
class TestStatus:
    @pytest.fixture
    def service(self, store):
        return InvoiceService(store, user_id="1")

    def test_send(self, service, store, invoice):
        result = service.change_status(invoice.id, "sent")

        assert result.status == InvoiceStatus.SENT
        assert result.sent_date is not None
        assert any(e.type == ActivityType.INVOICE_SENT for e in store.list_activity())

    def test_unknown_status(self, service, invoice):
        with pytest.raises(ValidationError):
            service.change_status(invoice.id, "archived")

    def test_overdue_cannot_be_set(self, service, invoice):
        with pytest.raises(InvalidTransitionError):
            service.change_status(invoice.id, "overdue")

    def test_same_status_writes_nothing(self, service, store, invoice):
        before = len(store.list_activity())
        result = service.change_status(invoice.id, "draft")

        assert result.status == InvoiceStatus.DRAFT
        assert len(store.list_activity()) == before

    def test_transitions(self, service, invoice):
        assert service.transitions(invoice.id) == [
            InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.CANCELLED,
        ]
        service.change_status(invoice.id, "cancelled")
        assert service.transitions(invoice.id) == []

    def test_overdue_is_derived_not_stored(self, service, invoice_data, today):
        invoice = service.create_invoice(dict(
            invoice_data, issue_date=today - timedelta(days=40), due_date=today - timedelta(days=10),
        ))
        service.change_status(invoice.id, "sent")

        assert service.get_invoice(invoice.id).status == InvoiceStatus.OVERDUE
        assert models.Invoice.objects.get(pk=invoice.id).status == "sent"

        page = service.list_invoices({"status": "overdue"})
        assert [i.id for i in page.items] == [invoice.id]

    def test_legacy_overdue_row_reads_as_derived_status(self, service, invoice):
        models.Invoice.objects.filter(pk=invoice.id).update(status="overdue")

        assert service.get_invoice(invoice.id).status == InvoiceStatus.SENT


@pytest.mark.django_db
class TestReconcile:
    def test_repairs_drifted_cached_fields(self, store, invoice):
        PaymentService(store).record_payment({"invoice_id": invoice.id, "amount": Decimal("35.00")})
        models.Invoice.objects.filter(pk=invoice.id).update(paid_amount=Decimal("999.00"), balance=Decimal("0.00"))

        result = InvoiceService(store).reconcile(invoice.id)

        assert result.paid_amount == Decimal("35.00")
        row = models.Invoice.objects.get(pk=invoice.id)
        assert row.paid_amount == Decimal("35.00")
        assert row.balance == Decimal("100.00")

    def test_reconcile_all(self, store, invoice, invoice_data):
        InvoiceService(store).create_invoice(invoice_data)

        assert InvoiceService(store).reconcile_all() == {"total": 2, "success": 2, "failed": 0}


@pytest.mark.django_db
class TestListInvoices:
    def test_search_matches_client_name(self, store, invoice):
        page = InvoiceService(store).list_invoices({"search": "acme"})
        assert page.total == 1

    def test_filter_by_client(self, store, invoice):
        assert InvoiceService(store).list_invoices({"client_id": "someone-else"}).total == 0

    def test_pagination(self, store, invoice_data):
        service = InvoiceService(store)
        for _ in range(3):
            service.create_invoice(invoice_data)

        page = service.list_invoices(page=2, limit=2, sort_by="invoice_number", sort_order="asc")

        assert page.total == 3
        assert len(page.items) == 1
        assert page.items[0].invoice_number.endswith("-0003")
        assert not page.has_more
