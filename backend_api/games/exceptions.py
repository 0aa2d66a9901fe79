from __future__ import annotations

import logging
from typing import Any, Dict

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class MediaStorageError(APIException):
    """Raised when uploading or removing game media fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Media storage operation failed."
    default_code = "media_storage_error"


def _message_from_detail(detail: Any) -> str:
    """Pick a human readable message out of a DRF error detail."""
    if isinstance(detail, dict):
        if "detail" in detail:
            return str(detail["detail"])
        for key, value in detail.items():
            if isinstance(value, list) and value:
                value = value[0]
            return f"{key}: {value}" if key != "non_field_errors" else str(value)
        return "Invalid request."
    if isinstance(detail, list):
        return str(detail[0]) if detail else "Invalid request."
    return str(detail)


# PUBLIC_INTERFACE
def envelope_exception_handler(exc, context) -> Any:
    """DRF exception handler producing {status_code, message, errors} bodies.

    Exceptions DRF does not know about are left to Django (500 page / test
    client re-raise), matching the default handler.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    if response.status_code >= 500:
        logger.error("Request failed with %s: %s", response.status_code, exc)

    body: Dict[str, Any] = {
        "status_code": response.status_code,
        "message": _message_from_detail(response.data),
        "errors": response.data,
    }
    response.data = body
    return response
