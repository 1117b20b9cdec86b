from typing import Any, Optional

from rest_framework.response import Response

from billing.domain.filters import Page
from billing.validation.errors import ErrorCode


def to_data(value: Any) -> Any:
    """Entities and report rows to their camelCase records."""
    if isinstance(value, (list, tuple)):
        return [to_data(item) for item in value]
    if hasattr(value, "to_record"):
        return value.to_record()
    return value


class APIResponse:
    """Standardized API response format."""

    @staticmethod
    def success(
        data: Any = None,
        message: Optional[str] = None,
        status_code: int = 200,
        meta: Optional[dict] = None,
    ) -> Response:
        """Return a successful API response."""
        response_data = {"success": True}
        if data is not None:
            response_data["data"] = to_data(data)
        if message:
            response_data["message"] = message
        if meta:
            response_data["meta"] = meta
        return Response(response_data, status=status_code)

    @staticmethod
    def created(data: Any, message: Optional[str] = None) -> Response:
        return APIResponse.success(data=data, message=message, status_code=201)

    @staticmethod
    def error(
        code: str = ErrorCode.INTERNAL_ERROR,
        message: str = "An error occurred",
        status_code: int = 400,
        fields: Optional[list] = None,
    ) -> Response:
        """Return an error API response."""
        response_data = {
            "success": False,
            "error": {
                "code": getattr(code, "value", code),
                "message": message,
            },
        }
        if fields:
            response_data["error"]["fields"] = fields
        return Response(response_data, status=status_code)

    @staticmethod
    def paginated(page: Page, message: Optional[str] = None, status_code: int = 200) -> Response:
        """Return a page of items with total/page/limit/hasMore metadata."""
        return APIResponse.success(data=to_data(page.items), message=message, status_code=status_code, meta=page.meta())
