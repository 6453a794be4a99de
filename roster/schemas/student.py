# roster/schemas/student.py
from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict, ValidationInfo, field_validator
from sqlmodel import SQLModel, Field

from roster.core.validators import check_email, check_required, check_ten_digits

IconType = Literal["user", "user-round", "user-plus", "book-open", "mail", "phone", "id-card"]

ICON_TYPES: tuple[str, ...] = ("user", "user-round", "user-plus", "book-open", "mail", "phone", "id-card")

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


# ----- Calendar dates on the wire -----


def parse_calendar_date(value: object) -> date:
    """
    Parse a wire date into a calendar date.

    The wire form is "YYYY-MM-DD" (a timestamp suffix is tolerated and
    dropped). The date is built from its three integer parts, so no
    timezone conversion can move it to the neighbouring day.

    Raises:
        ValueError: if the value is not a calendar date.
    """
    if isinstance(value, datetime):
        return date(value.year, value.month, value.day)
    if isinstance(value, date):
        return value
    text = str(value).strip()[:10]
    parts = text.split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid calendar date: {value!r}")
    year, month, day = (int(p) for p in parts)
    return date(year, month, day)


def format_calendar_date(value: date) -> str:
    """Wire form: YYYY-MM-DD, calendar-day granularity."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_long_date(value: date) -> str:
    """Detail view form, e.g. 'March 15, 2024'."""
    return f"{_MONTHS[value.month - 1]} {value.day}, {value.year}"


# ----- Payloads -----


class StudentCreate(SQLModel):
    """
    Candidate Student for insertion.

    Validation rules mirror the registration form:
      - name, course_name, age: required, trimmed
      - id_number, mobile: exactly 10 ASCII digits
      - email: <non-space>@<non-space>.<non-space>
      - course_date: calendar date ("YYYY-MM-DD" accepted)
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    id_number: str
    mobile: str
    email: str
    course_name: str = Field(max_length=200)
    course_date: date
    age: str = Field(max_length=20)
    accepted: bool = False
    notes: str | None = None
    icon_type: IconType | None = None

    @field_validator("name", "course_name", "age")
    @classmethod
    def required_text(cls, v: str, info: ValidationInfo) -> str:
        message = check_required(info.field_name, v)
        if message:
            raise ValueError(message)
        return v.strip()

    @field_validator("id_number", "mobile")
    @classmethod
    def ten_digits(cls, v: str, info: ValidationInfo) -> str:
        v = v.strip()
        message = check_ten_digits(info.field_name, v)
        if message:
            raise ValueError(message)
        return v

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        v = v.strip()
        message = check_email(v)
        if message:
            raise ValueError(message)
        return v

    @field_validator("course_date", mode="before")
    @classmethod
    def calendar_date(cls, v: object) -> date:
        return parse_calendar_date(v)


class StudentUpdate(SQLModel):
    """
    Partial patch. Only fields explicitly supplied are sent to the store
    (dump with exclude_unset=True).
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    id_number: str | None = None
    mobile: str | None = None
    email: str | None = None
    course_name: str | None = Field(default=None, max_length=200)
    course_date: date | None = None
    age: str | None = Field(default=None, max_length=20)
    accepted: bool | None = None
    notes: str | None = None
    icon_type: IconType | None = None

    @field_validator("name", "course_name", "age")
    @classmethod
    def required_text(cls, v: str | None, info: ValidationInfo) -> str | None:
        if v is None:
            return v
        message = check_required(info.field_name, v)
        if message:
            raise ValueError(message)
        return v.strip()

    @field_validator("id_number", "mobile")
    @classmethod
    def ten_digits(cls, v: str | None, info: ValidationInfo) -> str | None:
        if v is None:
            return v
        v = v.strip()
        message = check_ten_digits(info.field_name, v)
        if message:
            raise ValueError(message)
        return v

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        message = check_email(v)
        if message:
            raise ValueError(message)
        return v

    @field_validator("course_date", mode="before")
    @classmethod
    def calendar_date(cls, v: object) -> date | None:
        if v is None:
            return v
        return parse_calendar_date(v)


class StudentRead(SQLModel):
    """
    Normalized Student as returned by the remote store (canonical record).

    Read models are lenient: the remote store is authoritative, so rows
    written by older clients are not re-validated here.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    id_number: str
    mobile: str
    email: str
    course_name: str
    course_date: date
    age: str
    accepted: bool = False
    notes: str | None = None
    icon_type: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    owner_id: str | None = None

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def as_text(cls, v: object) -> str | None:
        return None if v is None else str(v)

    @field_validator("age", mode="before")
    @classmethod
    def age_as_text(cls, v: object) -> str:
        return "" if v is None else str(v)

    @field_validator("accepted", mode="before")
    @classmethod
    def null_is_pending(cls, v: object) -> bool:
        return bool(v)

    @field_validator("course_date", mode="before")
    @classmethod
    def calendar_date(cls, v: object) -> date:
        return parse_calendar_date(v)


class StudentDetail(StudentRead):
    """Detail view payload: the record plus its display-formatted date."""

    course_date_display: str
    notes_expanded: bool = False


class StudentFormInput(SQLModel):
    """
    Raw registration/edit form submission. Validation happens in the form
    layer so every field gets its own message.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = ""
    id_number: str = ""
    mobile: str = ""
    email: str = ""
    course_name: str = ""
    course_date: str | None = None
    age: str = ""
    notes: str | None = None
