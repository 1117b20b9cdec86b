from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from billing.domain.entities import ZERO, ActivityType, EntityType, Template, TemplateLineItem, as_decimal, new_id
from billing.validation.errors import NotFoundError, ValidationError

from .base import BillingService

logger = logging.getLogger(__name__)


def build_template_items(items: List[Dict[str, Any]]) -> List[TemplateLineItem]:
    result = []
    for index, item in enumerate(items):
        line = TemplateLineItem.from_record(item)
        if line.quantity < 0 or line.rate < 0:
            raise ValidationError.for_field(f"lineItems.{index}", "Quantity and rate cannot be negative")
        result.append(line)
    return result


class TemplateService(BillingService):

    def get_template(self, template_id: str) -> Template:
        template = self.store.get_template(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    def list_templates(self, active_only: bool = False) -> List[Template]:
        templates = self.store.list_templates()
        if active_only:
            templates = [t for t in templates if t.is_active]
        return sorted(templates, key=lambda t: t.name.lower())

    def create_template(self, data: Dict[str, Any]) -> Template:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError.for_field("name", "Name is required")
        now = self.now()
        template = self.store.create_template(Template(
            id=new_id(),
            name=name,
            description=data.get("description"),
            line_items=build_template_items(data.get("line_items") or []),
            tax_rate=as_decimal(data.get("tax_rate"), ZERO),
            notes=data.get("notes"),
            is_active=data.get("is_active", True),
            created_at=now,
            updated_at=now,
        ))
        logger.info(f"Template {template.id} created")
        self.activity.record(
            ActivityType.TEMPLATE_CREATED,
            f"Template {template.name} created",
            entity_type=EntityType.TEMPLATE,
            entity_id=template.id,
            entity_name=template.name,
            new=template,
        )
        return template

    def update_template(self, template_id: str, data: Dict[str, Any]) -> Template:
        existing = self.get_template(template_id)
        changes: Dict[str, Any] = {k: data[k] for k in ("name", "description", "notes", "is_active") if k in data}
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValidationError.for_field("name", "Name is required")
        if "line_items" in data:
            changes["line_items"] = build_template_items(data["line_items"])
        if data.get("tax_rate") is not None:
            changes["tax_rate"] = as_decimal(data["tax_rate"])

        template = self.store.update_template(replace(existing, updated_at=self.now(), **changes))
        logger.info(f"Template {template_id} updated")
        self.activity.record(
            ActivityType.TEMPLATE_UPDATED,
            f"Template {template.name} updated",
            entity_type=EntityType.TEMPLATE,
            entity_id=template.id,
            entity_name=template.name,
            previous=existing,
            new=template,
        )
        return template

    def delete_template(self, template_id: str) -> None:
        template = self.get_template(template_id)
        if not self.store.delete_template(template_id):
            raise NotFoundError("Template", template_id)
        logger.info(f"Template {template_id} deleted")
        self.activity.record(
            ActivityType.TEMPLATE_DELETED,
            f"Template {template.name} deleted",
            entity_type=EntityType.TEMPLATE,
            entity_id=template.id,
            entity_name=template.name,
            previous=template,
        )
