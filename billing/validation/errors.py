"""
Standardized Error Handling

Provides consistent error format:
API: { success: false, error: { code, message, fields? }, request_id }

Failure kinds raised by the billing core:
- ValidationError: malformed or out-of-range input (not retryable)
- NotFoundError: referenced entity id is absent (not retryable)
- InvalidTransitionError: status change not allowed from the current state
- ConflictError: request conflicts with existing data
- ReconciliationError: a multi-step mutation completed only partially
- StorageError: the backing store is unavailable (retryable by the caller)

HTTP Status Code Standards:
- 400: Bad Request (validation errors, malformed input)
- 404: Not Found
- 409: Conflict (state conflict, reconciliation required)
- 422: Unprocessable Entity (invalid state transition)
- 503: Service Unavailable (storage failure)
"""

from __future__ import annotations

import uuid
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from django.http import JsonResponse

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FIELD_REQUIRED = "FIELD_REQUIRED"
    FIELD_INVALID = "FIELD_INVALID"
    FIELD_TOO_SHORT = "FIELD_TOO_SHORT"
    FIELD_TOO_LONG = "FIELD_TOO_LONG"
    FIELD_OUT_OF_RANGE = "FIELD_OUT_OF_RANGE"
    FIELD_INVALID_FORMAT = "FIELD_INVALID_FORMAT"

    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    NOT_FOUND = "NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"

    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    RECONCILIATION_REQUIRED = "RECONCILIATION_REQUIRED"

    RATE_LIMITED = "RATE_LIMITED"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class FieldError:
    field: str
    code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "field": self.field,
            "code": self.code,
            "message": self.message,
        }


@dataclass
class ErrorDetail:
    code: str
    message: str
    fields: Optional[List[FieldError]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code,
            "message": self.message,
        }
        if self.fields:
            result["fields"] = [f.to_dict() for f in self.fields]
        return result


@dataclass
class ErrorResponse:
    success: bool = False
    error: Optional[ErrorDetail] = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error.to_dict() if self.error else None,
            "request_id": self.request_id,
        }

    def to_json_response(self, status: int = 400) -> JsonResponse:
        return JsonResponse(self.to_dict(), status=status)


class BillingError(Exception):
    status = 400
    default_code: Union[ErrorCode, str] = ErrorCode.INTERNAL_ERROR
    retryable = False

    def __init__(
        self,
        message: str,
        code: Optional[Union[ErrorCode, str]] = None,
        fields: Optional[List[FieldError]] = None,
        request_id: Optional[str] = None,
    ):
        code = code or self.default_code
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.fields = fields
        self.request_id = request_id or str(uuid.uuid4())
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            success=False,
            error=ErrorDetail(
                code=self.code,
                message=self.message,
                fields=self.fields,
            ),
            request_id=self.request_id,
        )

    def to_json_response(self) -> JsonResponse:
        return self.to_response().to_json_response(self.status)


class ValidationError(BillingError):
    status = 400
    default_code = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str = "Validation failed",
        fields: Optional[List[FieldError]] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message, fields=fields, request_id=request_id)

    @classmethod
    def for_field(cls, field_name: str, message: str) -> "ValidationError":
        return cls(message, fields=[FieldError(
            field=field_name,
            code=_infer_error_code(message),
            message=message,
        )])


class NotFoundError(BillingError):
    status = 404
    default_code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, entity_id: str, request_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", request_id=request_id)


class InvalidTransitionError(BillingError):
    status = 422
    default_code = ErrorCode.INVALID_STATE_TRANSITION

    def __init__(self, from_status: str, to_status: str, reason: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        message = f"Cannot transition invoice from '{from_status}' to '{to_status}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConflictError(BillingError):
    status = 409
    default_code = ErrorCode.RESOURCE_CONFLICT


class ReconciliationError(BillingError):
    status = 409
    default_code = ErrorCode.RECONCILIATION_REQUIRED

    def __init__(self, message: str, invoice_id: Optional[str] = None):
        self.invoice_id = invoice_id
        super().__init__(message)


class StorageError(BillingError):
    status = 503
    default_code = ErrorCode.STORAGE_UNAVAILABLE
    retryable = True


def format_validation_errors(
    errors: Dict[str, Any],
    prefix: str = "",
) -> List[FieldError]:
    field_errors = []

    for field_name, error_list in errors.items():
        full_field = f"{prefix}{field_name}" if prefix else field_name

        if isinstance(error_list, dict):
            field_errors.extend(format_validation_errors(error_list, f"{full_field}."))
        elif isinstance(error_list, list):
            for index, error in enumerate(error_list):
                if isinstance(error, dict):
                    field_errors.extend(format_validation_errors(error, f"{full_field}.{index}."))
                else:
                    error_str = str(error)
                    field_errors.append(FieldError(
                        field=full_field,
                        code=_infer_error_code(error_str),
                        message=error_str,
                    ))
        else:
            field_errors.append(FieldError(
                field=full_field,
                code=ErrorCode.FIELD_INVALID.value,
                message=str(error_list),
            ))

    return field_errors


def _infer_error_code(message: str) -> str:
    message_lower = message.lower()

    if "required" in message_lower or "blank" in message_lower or "null" in message_lower:
        return ErrorCode.FIELD_REQUIRED.value
    elif "too short" in message_lower or "at least" in message_lower:
        return ErrorCode.FIELD_TOO_SHORT.value
    elif "too long" in message_lower or "at most" in message_lower or "maximum" in message_lower:
        return ErrorCode.FIELD_TOO_LONG.value
    elif "greater than" in message_lower or "less than" in message_lower or "between" in message_lower:
        return ErrorCode.FIELD_OUT_OF_RANGE.value
    elif "format" in message_lower or "valid" in message_lower or "invalid" in message_lower:
        return ErrorCode.FIELD_INVALID_FORMAT.value
    else:
        return ErrorCode.FIELD_INVALID.value
