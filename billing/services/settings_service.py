from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict

from billing.domain.entities import ActivityType, AppSettings, CompanySettings, EntityType, as_decimal
from billing.validation.errors import ValidationError

from .base import BillingService
from .client_service import ADDRESS_FIELDS

logger = logging.getLogger(__name__)

COMPANY_FIELDS = ("name", "email", "phone", "logo", "invoice_template", "currency", "date_format", "time_zone")
APP_FIELDS = ("is_setup_complete", "last_backup", "auto_backup", "backup_frequency", "theme", "color_theme")
BACKUP_FREQUENCIES = ("daily", "weekly", "monthly")


class SettingsService(BillingService):
    """Company profile and application preferences, one record each."""

    def get_company(self) -> CompanySettings:
        return self.store.get_company_settings()

    def update_company(self, data: Dict[str, Any]) -> CompanySettings:
        existing = self.get_company()
        changes: Dict[str, Any] = {k: data[k] for k in COMPANY_FIELDS if k in data}
        if "address" in data:
            changes["address"] = replace(
                existing.address, **{k: v for k, v in (data["address"] or {}).items() if k in ADDRESS_FIELDS}
            )
        if data.get("tax_rate") is not None:
            changes["tax_rate"] = as_decimal(data["tax_rate"])
            if changes["tax_rate"] < 0:
                raise ValidationError.for_field("taxRate", "Tax rate cannot be negative")
        if data.get("payment_terms") is not None:
            changes["payment_terms"] = int(data["payment_terms"])
            if changes["payment_terms"] < 0:
                raise ValidationError.for_field("paymentTerms", "Payment terms cannot be negative")

        company = self.store.save_company_settings(replace(existing, **changes))
        logger.info(f"Company settings updated: {', '.join(sorted(changes)) or 'no changes'}")
        self.activity.record(
            ActivityType.SETTINGS_UPDATED,
            "Company settings updated",
            entity_type=EntityType.SETTINGS,
            entity_id="company",
            entity_name=company.name,
            previous=existing,
            new=company,
        )
        return company

    def get_app(self) -> AppSettings:
        return self.store.get_app_settings()

    def update_app(self, data: Dict[str, Any]) -> AppSettings:
        existing = self.get_app()
        changes = {k: data[k] for k in APP_FIELDS if k in data}
        if changes.get("backup_frequency") and changes["backup_frequency"] not in BACKUP_FREQUENCIES:
            raise ValidationError.for_field(
                "backupFrequency", f"Backup frequency must be one of: {', '.join(BACKUP_FREQUENCIES)}"
            )

        app = self.store.save_app_settings(replace(existing, **changes))
        logger.info("Application settings updated")
        self.activity.record(
            ActivityType.SETTINGS_UPDATED,
            "Application settings updated",
            entity_type=EntityType.SETTINGS,
            entity_id="app",
            previous=existing,
            new=app,
        )
        return app
