# roster/services/form.py
from datetime import date
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from roster.core.validators import REQUIRED_FIELDS, accepts_keystroke, validate_student_fields
from roster.schemas.student import StudentCreate, StudentRead, StudentUpdate, parse_calendar_date

FORM_FIELDS: tuple[str, ...] = REQUIRED_FIELDS + ("notes",)


def errors_from_schema(exc: SchemaValidationError) -> dict[str, str]:
    """Flatten pydantic errors into {field: message} for inline display."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err.get("loc") else "__all__"
        message = err.get("msg", "Invalid value")
        errors.setdefault(field, message.removeprefix("Value error, "))
    return errors


def _coerce_date(value: Any) -> date | str | None:
    """Keep unparseable input as-is so validation can report it."""
    if value is None or value == "":
        return None
    try:
        return parse_calendar_date(value)
    except ValueError:
        return str(value)


class StudentForm:
    """
    Registration / edit form state.

    - values: current field values (course_date is a date once parsed)
    - errors: {field: message}; editing a field clears its error
    - editing: the Student being edited, or None for a new registration
    """

    def __init__(self):
        self.values: dict[str, Any] = {}
        self.errors: dict[str, str] = {}
        self.editing: StudentRead | None = None
        self.reset()

    def reset(self) -> None:
        self.values = {field: "" for field in FORM_FIELDS}
        self.values["course_date"] = None
        self.errors = {}
        self.editing = None

    @property
    def is_editing(self) -> bool:
        return self.editing is not None

    # ----- Input -----

    def set_field(self, field: str, value: Any) -> bool:
        """
        Keystroke-level update.

        Digit fields refuse input that would exceed 10 characters or contain
        a non-digit; the previous value is kept and False is returned.
        """
        if field not in self.values:
            raise KeyError(f"Unknown form field: {field}")

        if field == "course_date":
            value = _coerce_date(value)
        else:
            value = "" if value is None else str(value)
            if not accepts_keystroke(field, value):
                return False

        self.values[field] = value
        self.errors.pop(field, None)
        return True

    def fill(self, values: dict[str, Any]) -> None:
        """
        Bulk assignment (API payloads). No keystroke filter: whatever was
        submitted is validated as-is so the caller gets the precise message.
        """
        for field, value in values.items():
            if field not in self.values:
                raise KeyError(f"Unknown form field: {field}")
            if field == "course_date":
                self.values[field] = _coerce_date(value)
            else:
                self.values[field] = "" if value is None else str(value)
            self.errors.pop(field, None)

    def load(self, student: StudentRead) -> None:
        """Prefill from an existing Student for editing."""
        self.reset()
        self.editing = student
        for field in FORM_FIELDS:
            current = getattr(student, field)
            self.values[field] = current if field == "course_date" else (current or "")

    # ----- Validation -----

    def validate(self) -> bool:
        self.errors = validate_student_fields(self.values)
        return not self.errors

    def _payload(self) -> dict[str, Any]:
        payload = {
            field: value.strip() if isinstance(value, str) else value
            for field, value in self.values.items()
        }
        payload["notes"] = payload.get("notes") or None
        return payload

    def to_create(self) -> StudentCreate:
        """
        Build the insert candidate. Call validate() first.

        Raises:
            pydantic.ValidationError: if the values do not form a Student.
        """
        return StudentCreate(**self._payload())

    def to_update(self) -> StudentUpdate:
        """
        Patch holding only the fields that differ from the Student being
        edited.

        Raises:
            pydantic.ValidationError: if a changed value is invalid.
        """
        if self.editing is None:
            raise RuntimeError("to_update() needs a form loaded with load()")
        changed = {
            field: value
            for field, value in self._payload().items()
            if value != getattr(self.editing, field)
        }
        return StudentUpdate(**changed)
