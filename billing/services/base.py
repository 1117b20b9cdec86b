from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from django.utils import timezone

from billing.storage import BillingStore, get_store

from .activity_service import ActivityService


class BillingService:
    """Common wiring: the store, the acting user and the audit trail."""

    def __init__(self, store: Optional[BillingStore] = None, user_id: Optional[str] = None):
        self.store = store or get_store()
        self.user_id = user_id
        self.activity = ActivityService(self.store, user_id=user_id)

    def now(self) -> datetime:
        return timezone.now()

    def today(self) -> date:
        return timezone.localdate()
