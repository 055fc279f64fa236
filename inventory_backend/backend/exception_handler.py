# backend/exception_handler.py

"""
API ERROR ENVELOPE

Every error leaves the API as:

    {"error": "<human readable message>"}

- Domain errors (StockEngineError and app-level service errors) carry
  their own HTTP status
- DRF validation errors are flattened into one message
- 401/403/404/405/429 keep their status in the same envelope
- Anything unhandled is logged and rendered as a generic 500
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from inventory.services.exceptions import StockEngineError

logger = logging.getLogger(__name__)


def _flatten(detail, prefix: str = "") -> list[str]:
    if isinstance(detail, dict):
        messages = []
        for key, value in detail.items():
            label = "" if key in ("non_field_errors", "__all__", "detail") else f"{key}"
            nested = f"{prefix}.{label}" if prefix and label else (label or prefix)
            messages.extend(_flatten(value, nested))
        return messages

    if isinstance(detail, (list, tuple)):
        messages = []
        for i, value in enumerate(detail):
            nested = prefix
            if isinstance(value, dict) and prefix:
                nested = f"{prefix}[{i}]"
            messages.extend(_flatten(value, nested))
        return messages

    text = str(detail)
    return [f"{prefix}: {text}" if prefix else text]


def error_message(detail) -> str:
    messages = _flatten(detail)
    return "; ".join(messages) if messages else "Invalid request"


def api_exception_handler(exc, context):
    if isinstance(exc, StockEngineError):
        return Response({"error": exc.message}, status=exc.status_code)

    # app-level service errors that declare their own status
    status_code = getattr(exc, "http_status", None)
    if status_code is not None:
        return Response({"error": str(exc)}, status=status_code)

    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(
            exc.message_dict if hasattr(exc, "message_dict") else exc.messages
        )

    response = drf_exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, Http404):
            message = "Not found"
        else:
            message = error_message(response.data)
        response.data = {"error": message}
        return response

    view = context.get("view")
    logger.exception(
        "Unhandled API error",
        extra={"view": view.__class__.__name__ if view else None},
    )
    return Response(
        {"error": "Internal server error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
