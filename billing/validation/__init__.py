"""
Centralized error handling.

Every failure raised by the billing core is a ``BillingError``; the DRF
exception handler and the error middleware turn it into the standard
``{success: false, error: {...}, request_id}`` envelope.
"""

from .errors import (
    BillingError,
    ConflictError,
    ErrorCode,
    ErrorResponse,
    FieldError,
    InvalidTransitionError,
    NotFoundError,
    ReconciliationError,
    StorageError,
    ValidationError,
    format_validation_errors,
)

__all__ = [
    "BillingError",
    "ConflictError",
    "ErrorCode",
    "ErrorResponse",
    "FieldError",
    "InvalidTransitionError",
    "NotFoundError",
    "ReconciliationError",
    "StorageError",
    "ValidationError",
    "format_validation_errors",
]
