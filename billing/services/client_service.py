from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from billing.domain.entities import ActivityType, Address, Client, EntityType, new_id
from billing.domain.filters import Page, filter_clients, paginate
from billing.validation.errors import ConflictError, FieldError, NotFoundError, ValidationError

from .base import BillingService

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")
ADDRESS_RECORD_NAMES = {"zip_code": "zipCode"}


def validate_client(client: Client) -> None:
    errors: List[FieldError] = []
    if not (client.name or "").strip():
        errors.append(FieldError(field="name", code="FIELD_REQUIRED", message="Name is required"))
    if not (client.email or "").strip():
        errors.append(FieldError(field="email", code="FIELD_REQUIRED", message="Email is required"))
    for name in ADDRESS_FIELDS:
        if not (getattr(client.address, name) or "").strip():
            errors.append(FieldError(
                field=f"address.{ADDRESS_RECORD_NAMES.get(name, name)}",
                code="FIELD_REQUIRED",
                message=f"{name.replace('_', ' ').capitalize()} is required",
            ))
    if errors:
        raise ValidationError("Client data is invalid", fields=errors)


class ClientService(BillingService):

    def get_client(self, client_id: str) -> Client:
        client = self.store.get_client(client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    def list_clients(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: Optional[str] = "name",
        sort_order: str = "asc",
    ) -> Page:
        clients = filter_clients(self.store.list_clients(), **(filters or {}))
        return paginate(clients, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)

    def create_client(self, data: Dict[str, Any]) -> Client:
        now = self.now()
        client = Client(
            id=new_id(),
            name=(data.get("name") or "").strip(),
            email=(data.get("email") or "").strip(),
            phone=data.get("phone") or None,
            address=Address(**{name: (data.get("address") or {}).get(name, "") for name in ADDRESS_FIELDS}),
            created_at=now,
            updated_at=now,
        )
        validate_client(client)
        client = self.store.create_client(client)
        logger.info(f"Client {client.id} created")
        self.activity.record(
            ActivityType.CLIENT_ADDED,
            f"Client {client.name} added",
            entity_type=EntityType.CLIENT,
            entity_id=client.id,
            entity_name=client.name,
            new=client,
        )
        return client

    def update_client(self, client_id: str, data: Dict[str, Any]) -> Client:
        existing = self.get_client(client_id)
        address = existing.address
        if "address" in data:
            address = replace(address, **{k: v for k, v in data["address"].items() if k in ADDRESS_FIELDS})
        changes = {k: data[k] for k in ("name", "email", "phone") if k in data}
        client = replace(existing, address=address, updated_at=self.now(), **changes)
        validate_client(client)

        client = self.store.update_client(client)
        logger.info(f"Client {client.id} updated")
        self.activity.record(
            ActivityType.CLIENT_UPDATED,
            f"Client {client.name} updated",
            entity_type=EntityType.CLIENT,
            entity_id=client.id,
            entity_name=client.name,
            previous=existing,
            new=client,
        )
        return client

    def delete_client(self, client_id: str) -> None:
        client = self.get_client(client_id)
        if any(i.client_id == client_id for i in self.store.list_invoices()):
            raise ConflictError(f"Client {client.name} has invoices and cannot be deleted")
        if any(p.client_id == client_id for p in self.store.list_projects()):
            raise ConflictError(f"Client {client.name} has projects and cannot be deleted")

        if not self.store.delete_client(client_id):
            raise NotFoundError("Client", client_id)
        logger.info(f"Client {client_id} deleted")
        self.activity.record(
            ActivityType.CLIENT_DELETED,
            f"Client {client.name} deleted",
            entity_type=EntityType.CLIENT,
            entity_id=client.id,
            entity_name=client.name,
            previous=client,
        )
