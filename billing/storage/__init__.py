from django.conf import settings
from django.utils.module_loading import import_string

from .base import BillingStore


def get_store() -> BillingStore:
    """Instantiate the store class named by ``BILLING["STORE"]``."""
    path = settings.BILLING.get("STORE", "billing.storage.django_store.DjangoBillingStore")
    return import_string(path)()


__all__ = ["BillingStore", "get_store"]
