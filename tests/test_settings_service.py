from decimal import Decimal
from unittest import mock

import pytest

from billing.domain.entities import ActivityType
from billing.services import ClientService, SettingsService
from billing.validation.errors import StorageError, ValidationError


@pytest.mark.django_db
class TestSettingsService:
    @pytest.fixture
    def service(self, store):
        return SettingsService(store, user_id="1")

    def test_company_defaults(self, service):
        company = service.get_company()

        assert company.payment_terms == 30
        assert company.currency == "USD"
        assert company.tax_rate == Decimal("0")

    def test_partial_update_keeps_other_fields(self, service):
        service.update_company({"name": "BillingMonk LLC", "address": {"city": "Austin"}})
        company = service.update_company({"currency": "EUR"})

        assert company.name == "BillingMonk LLC"
        assert company.address.city == "Austin"
        assert company.currency == "EUR"

    def test_negative_payment_terms(self, service):
        with pytest.raises(ValidationError):
            service.update_company({"payment_terms": -1})

    def test_update_is_logged(self, service, store):
        service.update_company({"name": "BillingMonk LLC"})

        entry = store.list_activity()[0]
        assert entry.type == ActivityType.SETTINGS_UPDATED
        assert entry.entity_id == "company"

    def test_app_settings(self, service):
        app = service.update_app({"theme": "dark", "backup_frequency": "daily"})

        assert app.theme == "dark"
        assert service.get_app().backup_frequency == "daily"

    def test_app_rejects_unknown_backup_frequency(self, service):
        with pytest.raises(ValidationError):
            service.update_app({"backup_frequency": "hourly"})


@pytest.mark.django_db
class TestActivity:
    def test_failed_activity_write_does_not_fail_mutation(self, store):
        with mock.patch.object(store, "append_activity", side_effect=StorageError("down")):
            client = ClientService(store, user_id="1").create_client({
                "name": "Initech",
                "email": "ap@initech.test",
                "address": {"street": "4 Oak", "city": "Austin", "state": "TX", "zip_code": "73301", "country": "US"},
            })

        assert store.get_client(client.id) is not None
        assert store.list_activity() == []

    def test_list_filters_by_entity(self, store, invoice, client_record):
        service = ClientService(store, user_id="1")

        page = service.activity.list_activity({"entity_type": "invoice"})

        assert page.total == 1
        assert page.items[0].entity_id == invoice.id
        assert service.activity.list_activity({"user_id": "nobody"}).total == 0
