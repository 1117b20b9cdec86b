from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from billing.domain.entities import ActivityLog, ActivityType, EntityType, new_id
from billing.domain.filters import Page, filter_activity, paginate
from billing.storage import BillingStore
from billing.validation.errors import StorageError

logger = logging.getLogger(__name__)


def snapshot(entity: Any) -> Optional[str]:
    """Serialize an entity for the previous/new value columns."""
    if entity is None:
        return None
    record = entity.to_record() if hasattr(entity, "to_record") else entity
    return json.dumps(record, cls=DjangoJSONEncoder)


class ActivityService:
    """Append-only audit trail of mutations."""

    def __init__(self, store: BillingStore, user_id: Optional[str] = None):
        self.store = store
        self.user_id = user_id

    def record(
        self,
        type: ActivityType,
        description: str,
        entity_type: Optional[EntityType] = None,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        amount: Optional[Decimal] = None,
        previous: Any = None,
        new: Any = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityLog]:
        entry = ActivityLog(
            id=new_id(),
            type=type,
            description=description,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            user_id=self.user_id,
            amount=amount,
            previous_value=snapshot(previous),
            new_value=snapshot(new),
            metadata=json.loads(json.dumps(metadata or {}, cls=DjangoJSONEncoder)),
            timestamp=timezone.now(),
        )
        try:
            return self.store.append_activity(entry)
        except StorageError:
            # The mutation itself already succeeded.
            logger.exception(f"Failed to record activity {type.value} for {entity_type} {entity_id}")
            return None

    def list_activity(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page:
        entries = filter_activity(self.store.list_activity(), **(filters or {}))
        return paginate(entries, page=page, limit=limit, sort_by="timestamp", sort_order="desc")

    def for_entity(self, entity_type: EntityType, entity_id: str) -> List[ActivityLog]:
        entries = filter_activity(self.store.list_activity(), entity_type=entity_type.value, entity_id=entity_id)
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)
