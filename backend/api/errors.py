"""Mapping from domain exceptions to HTTP errors."""

import logging

from fastapi import HTTPException, status
from pydantic import ValidationError

from models.exceptions import (
    InvalidTransitionError,
    ModelNotFoundError,
    ModelValidationError,
    VersionConflictError,
)


logger = logging.getLogger(__name__)


def to_http_exception(exc: Exception, context: str) -> HTTPException:
    """Translate an exception raised by a service call into an `HTTPException`.

    Unexpected errors are logged with `context` and surface as 500.
    """
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, (ModelValidationError, ValidationError, ValueError)):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, ModelNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (VersionConflictError, InvalidTransitionError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    logger.error("%s failed: %s", context, exc, exc_info=exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
