# roster/core/validators.py
"""
Field rules shared by the registration form and the Student schemas.

Each check returns an error message or None. Messages are field-scoped so
the form can render them inline next to the offending input.
"""
import re
from datetime import date

DIGIT_FIELD_LENGTH = 10

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
_DIGITS = re.compile(r"[0-9]*")

FIELD_LABELS: dict[str, str] = {
    "name": "Name",
    "id_number": "ID number",
    "mobile": "Mobile number",
    "email": "Email",
    "course_name": "Course name",
    "course_date": "Course date",
    "age": "Age",
}

REQUIRED_FIELDS: tuple[str, ...] = (
    "name",
    "id_number",
    "mobile",
    "email",
    "course_name",
    "course_date",
    "age",
)

DIGIT_FIELDS: frozenset[str] = frozenset({"id_number", "mobile"})


def is_ascii_digits(value: str) -> bool:
    # str.isdigit() also accepts e.g. Arabic-Indic digits
    return _DIGITS.fullmatch(value) is not None


def required_message(field: str) -> str:
    return f"{FIELD_LABELS.get(field, field)} is required"


def check_required(field: str, value: object) -> str | None:
    if value is None:
        return required_message(field)
    if isinstance(value, str) and not value.strip():
        return required_message(field)
    return None


def check_ten_digits(field: str, value: str) -> str | None:
    """
    id_number / mobile rule: exactly 10 ASCII digits.

    Length is checked first, so "12a" reports the length problem and
    "12345abcde" reports the non-digit problem.
    """
    label = FIELD_LABELS.get(field, field)
    if len(value) != DIGIT_FIELD_LENGTH:
        return f"{label} must be exactly {DIGIT_FIELD_LENGTH} digits"
    if not is_ascii_digits(value):
        return f"{label} must contain digits only"
    return None


def check_email(value: str) -> str | None:
    if not EMAIL_PATTERN.search(value):
        return "Invalid email address"
    return None


def accepts_keystroke(field: str, value: str) -> bool:
    """
    Input-layer filter: digit fields never hold more than 10 characters or
    a non-digit character. Other fields accept anything.
    """
    if field not in DIGIT_FIELDS:
        return True
    return len(value) <= DIGIT_FIELD_LENGTH and is_ascii_digits(value)


def validate_student_fields(values: dict[str, object]) -> dict[str, str]:
    """
    Run every rule for a creation candidate.

    Returns:
        {field: message} for each failing field (empty when valid).
    """
    errors: dict[str, str] = {}
    for field in REQUIRED_FIELDS:
        message = check_required(field, values.get(field))
        if message:
            errors[field] = message

    for field in DIGIT_FIELDS:
        if field in errors:
            continue
        message = check_ten_digits(field, str(values[field]).strip())
        if message:
            errors[field] = message

    if "email" not in errors:
        message = check_email(str(values["email"]).strip())
        if message:
            errors["email"] = message

    if "course_date" not in errors and not isinstance(values["course_date"], date):
        errors["course_date"] = "Course date must be a calendar date"

    return errors
