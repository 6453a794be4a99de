# roster/core/remote_errors.py
import logging

import httpx
from postgrest.exceptions import APIError

from roster.core.errors import FetchError, PermissionDenied, RosterError, ValidationError

logger = logging.getLogger(__name__)

# Postgres SQLSTATE classes
_INSUFFICIENT_PRIVILEGE = "42501"
_DATA_EXCEPTION_CLASS = "22"
_INTEGRITY_CONSTRAINT_CLASS = "23"


def classify_remote_error(exc: Exception, action: str) -> RosterError:
    """
    Downgrade an exception raised by the row store client to the taxonomy.

    Mapping:
      - 42501 (RLS / privilege)           -> PermissionDenied
      - 22xxx, 23xxx (bad value/constraint) -> ValidationError
      - any other APIError, transport errors,
        anything unexpected                -> FetchError
    """
    if isinstance(exc, APIError):
        code = str(exc.code or "")
        message = exc.message or str(exc)
        logger.warning(f"{action} rejected by remote store ({code}): {message}")
        if code == _INSUFFICIENT_PRIVILEGE:
            return PermissionDenied(message)
        if code.startswith((_DATA_EXCEPTION_CLASS, _INTEGRITY_CONSTRAINT_CLASS)):
            return ValidationError(message)
        return FetchError(f"Failed to {action}: {message}")

    if isinstance(exc, httpx.HTTPError):
        logger.warning(f"{action} failed in transport: {exc}")
        return FetchError(f"Failed to {action}: network error")

    logger.exception(f"Unexpected error while trying to {action}")
    return FetchError(f"Failed to {action}")
