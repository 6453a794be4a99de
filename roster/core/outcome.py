# roster/core/outcome.py
from dataclasses import dataclass
from typing import Generic, TypeVar

from roster.core.errors import RosterError, to_http_exception

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Discriminated success/error result.

    Exactly one of `value` / `error` is meaningful: check `ok` first.
    A successful Outcome may still carry `value=None` (e.g. delete).
    """

    value: T | None = None
    error: RosterError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: RosterError) -> "Outcome[T]":
        return cls(error=error)

    def unwrap(self) -> T | None:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value

    def unwrap_http(self) -> T | None:
        """Return the value or raise the matching HTTPException (API layer)."""
        if self.error is not None:
            raise to_http_exception(self.error)
        return self.value
