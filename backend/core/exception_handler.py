from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .errors import (
    ExpiredError,
    LimitExceededError,
    NotFoundError,
    SamudraError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ExpiredError, status.HTTP_410_GONE),
    (LimitExceededError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
)


def samudra_exception_handler(exc, context):
    """Map domain errors to `{"error": {...}}` responses; defer the rest to DRF."""
    if isinstance(exc, SamudraError):
        http_status = status.HTTP_400_BAD_REQUEST
        for err_cls, mapped in STATUS_BY_ERROR:
            if isinstance(exc, err_cls):
                http_status = mapped
                break
        view = context.get("view")
        logger.info(f"{exc.code} in {type(view).__name__ if view else 'unknown view'}: {exc.message}")
        return Response({"success": False, "error": exc.as_dict()}, status=http_status)
    return exception_handler(exc, context)
