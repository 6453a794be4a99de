# roster/core/errors.py
"""
Error taxonomy shared by the session store, the repositories and the API.

Expected failures never escape a component as exceptions: they travel inside
an `Outcome` (see roster.core.outcome). The classes still derive from
Exception so `Outcome.unwrap()` can raise them and so the API layer can map
them to HTTP errors in one place.
"""
from fastapi import HTTPException, status


class RosterError(Exception):
    """Base class for every expected failure."""

    code = "error"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ValidationError(RosterError):
    """
    Client or server field-constraint violation (user-correctable).

    `errors` maps a field name to its message; it may be empty when the
    remote store rejected the row without naming a field.
    """

    code = "validation_error"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.errors = dict(errors or {})


class PermissionDenied(RosterError):
    code = "permission_denied"
    http_status = status.HTTP_403_FORBIDDEN


class NotFound(RosterError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class FetchError(RosterError):
    """Transport or unclassified backend failure. Retryable by the user."""

    code = "fetch_error"
    http_status = status.HTTP_502_BAD_GATEWAY


class RequestInFlight(RosterError):
    """A submission from the same form is still awaiting the remote store."""

    code = "request_in_flight"
    http_status = status.HTTP_409_CONFLICT


# ----- Auth -----


class AuthFailure(RosterError):
    code = "auth_error"


class InvalidCredentials(AuthFailure):
    code = "invalid_credentials"
    http_status = status.HTTP_401_UNAUTHORIZED


class EmailInUse(AuthFailure):
    code = "email_in_use"
    http_status = status.HTTP_409_CONFLICT


class WeakCredentials(AuthFailure):
    code = "weak_credentials"
    http_status = status.HTTP_400_BAD_REQUEST


class UnexpectedAuthError(AuthFailure):
    code = "unexpected_auth_error"
    http_status = status.HTTP_502_BAD_GATEWAY


def to_http_exception(error: RosterError) -> HTTPException:
    """
    Map a domain error to an HTTPException for the API layer.

    Body shape:
        {"error": "<code>", "message": "...", "fields": {...}}
    """
    detail: dict = {"error": error.code, "message": error.message}
    if isinstance(error, ValidationError) and error.errors:
        detail["fields"] = error.errors
    return HTTPException(status_code=error.http_status, detail=detail)
