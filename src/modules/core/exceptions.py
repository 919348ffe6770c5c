"""API error formatting.

Domain errors are translated explicitly in each view with
``error_response``.  Framework errors (authentication, parsing, throttling,
serializer validation) go through ``api_exception_handler``, which uses
*drf-standardized-errors* for the ``{type, errors[{code, detail, attr}]}``
body.  Both shapes carry a top-level ``detail`` and ``code``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from drf_standardized_errors.formatter import ExceptionFormatter
from drf_standardized_errors.handler import exception_handler
from drf_standardized_errors.types import ErrorResponse
from rest_framework.response import Response

logger = structlog.get_logger(__name__)


def error_response(detail: str, code: str, http_status: int, **extra: Any) -> Response:
    body: Dict[str, Any] = {"detail": detail, "code": code}
    body.update(extra)
    return Response(body, status=http_status)


class StorefrontExceptionFormatter(ExceptionFormatter):
    """Standardized body plus the first error's ``detail`` and ``code`` at top level."""

    def format_error_response(self, error_response: ErrorResponse) -> Dict[str, Any]:
        body = super().format_error_response(error_response)
        first = body["errors"][0] if body["errors"] else {}
        body["detail"] = first.get("detail", "")
        body["code"] = first.get("code", "error")
        return body


def api_exception_handler(exc, context) -> Optional[Response]:
    """DRF ``EXCEPTION_HANDLER``."""
    response = exception_handler(exc, context)
    if response is not None:
        logger.info(
            "api.request_rejected",
            status_code=response.status_code,
            code=response.data.get("code"),
        )
    return response
